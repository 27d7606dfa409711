"""Reporter implementations.

- `RecordingReporter` keeps every event in memory; intended for tests and for
  hosts that post-process a run (diffing two runs, for instance).
- `LoggingReporter` writes one log line per event through `logging`, so run
  output follows whatever handlers the host configured (see
  `suitetree.logging`).
"""

import logging
import threading
from typing import TypeVar

from suitetree.interfaces.reporter import (
    Event,
    InfoProvided,
    Reporter,
    RunCompleted,
    RunStarting,
    RunStopped,
    ScopeOpened,
    TestCanceled,
    TestEvent,
    TestFailed,
    TestIgnored,
    TestPending,
    TestStarting,
    TestSucceeded,
)

E = TypeVar("E", bound=Event)


class RecordingReporter(Reporter):
    """In-memory reporter.

    Thread-safe: events may be applied from the thread running the suite while
    another thread reads them.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[Event] = []

    def apply(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[Event]:
        """A copy of every event received so far, in arrival order."""
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: type[E]) -> list[E]:
        """Events that are instances of ``event_type``."""
        return [e for e in self.events if isinstance(e, event_type)]

    def test_names(self, event_type: type[TestEvent] = TestStarting) -> list[str]:
        """Names of the tests that produced ``event_type`` events, in order."""
        return [e.test_name for e in self.of_type(event_type)]

    def clear(self) -> None:
        """Forget every recorded event."""
        with self._lock:
            self._events.clear()


class LoggingReporter(Reporter):
    """Reporter that renders each event as an indented log line.

    Args:
        logger: Where to log; defaults to this module's logger.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def apply(self, event: Event) -> None:
        level, message = self._render(event)
        if message is not None:
            self._logger.log(level, message)

    @staticmethod
    def _indent(path: tuple[int, ...]) -> str:
        return "  " * max(len(path) - 1, 0)

    def _render(  # pylint: disable=too-many-return-statements
        self, event: Event
    ) -> tuple[int, str | None]:
        match event:
            case RunStarting():
                return logging.INFO, (
                    f"Run {event.run_id} of {event.suite_name}: "
                    f"{event.expected_test_count} test(s) expected"
                )
            case RunCompleted():
                return logging.INFO, (
                    f"Run {event.run_id} completed: {event.succeeded} succeeded, "
                    f"{event.failed} failed, {event.canceled} canceled, "
                    f"{event.pending} pending, {event.ignored} ignored"
                )
            case RunStopped():
                return logging.WARNING, f"Run {event.run_id} stopped"
            case ScopeOpened():
                return logging.INFO, f"{self._indent(event.path)}{event.description}"
            case TestSucceeded():
                return logging.INFO, f"{self._indent(event.path)}- {event.test_text}"
            case TestFailed():
                return logging.ERROR, (
                    f"{self._indent(event.path)}- {event.test_text} *** FAILED *** "
                    f"{event.error!r}"
                )
            case TestCanceled():
                return logging.WARNING, (
                    f"{self._indent(event.path)}- {event.test_text} !!! CANCELED !!!"
                )
            case TestPending():
                return logging.INFO, (
                    f"{self._indent(event.path)}- {event.test_text} (pending)"
                )
            case TestIgnored():
                return logging.INFO, (
                    f"{self._indent(event.path)}- {event.test_text} !!! IGNORED !!!"
                )
            case InfoProvided():
                return logging.INFO, f"{self._indent(event.path)}+ {event.message}"
            case _:
                return logging.DEBUG, None
