"""Reporter port and run event DTOs.

The engine itself only emits abstract callbacks; `suitetree.suite.Suite`
turns those callbacks into the events defined here and hands them to a
`Reporter`. Formatting the events is the reporter's business.

Contract overview
-----------------
- Every event carries the `run_id` of the run that produced it and an
  `ordinal` that increases by one per event within that run, starting at 1.
- Scope events come in symmetric `ScopeOpened`/`ScopeClosed` pairs, even for
  scopes in which no test ran.
- Each executed test produces `TestStarting` followed by exactly one of
  `TestSucceeded`, `TestFailed`, `TestCanceled` or `TestPending`.
- Ignored tests produce a single `TestIgnored` and no `TestStarting`.
- A run ends with `RunCompleted`, or `RunStopped` when a stop was requested.
"""

import abc
from dataclasses import dataclass
from typing import Any

from suitetree.domain.nodes import Path

# --- Events ---


@dataclass(frozen=True, slots=True)
class Event:
    """Base class for run events."""

    run_id: str
    ordinal: int
    suite_name: str


@dataclass(frozen=True, slots=True)
class RunStarting(Event):
    """A run is about to start."""

    expected_test_count: int


@dataclass(frozen=True, slots=True)
class RunCompleted(Event):
    """A run finished normally."""

    succeeded: int
    failed: int
    canceled: int
    pending: int
    ignored: int


@dataclass(frozen=True, slots=True)
class RunStopped(Event):
    """A run ended early because a stop was requested."""


@dataclass(frozen=True, slots=True)
class ScopeOpened(Event):
    """Traversal entered a branch."""

    description: str
    path: Path


@dataclass(frozen=True, slots=True)
class ScopeClosed(Event):
    """Traversal left a branch."""

    description: str
    path: Path


@dataclass(frozen=True, slots=True)
class TestEvent(Event):
    """Base class for events about one test."""

    __test__ = False  # not a pytest test class

    test_name: str
    test_text: str
    path: Path


@dataclass(frozen=True, slots=True)
class TestStarting(TestEvent):
    """A test body is about to be invoked."""


@dataclass(frozen=True, slots=True)
class TestIgnored(TestEvent):
    """A test registered as ignored was reached."""


@dataclass(frozen=True, slots=True)
class TestSucceeded(TestEvent):
    """A test body returned normally."""

    duration: float


@dataclass(frozen=True, slots=True)
class TestFailed(TestEvent):
    """A test body raised an unexpected exception."""

    duration: float
    error: BaseException


@dataclass(frozen=True, slots=True)
class TestCanceled(TestEvent):
    """A test body canceled itself."""

    duration: float
    error: BaseException


@dataclass(frozen=True, slots=True)
class TestPending(TestEvent):
    """A test body declared itself pending."""

    duration: float


@dataclass(frozen=True, slots=True)
class InfoProvided(Event):
    """An info message, recorded at registration or emitted by a running test.

    ``test_name`` is set only when the message came from a running test body.
    """

    message: str
    payload: Any
    path: Path
    test_name: str | None = None


# --- Reporter Interface ---


class Reporter(abc.ABC):
    """Receives the events of a run, in ordinal order."""

    # pylint: disable=too-few-public-methods

    @abc.abstractmethod
    def apply(self, event: Event) -> None:
        """Handle one event.

        Args:
            event: The event to handle. Implementations must not raise for
                event types they do not care about.
        """
