"""Outcomes of invoking a test body.

A body's own failure never surfaces as an engine error: it is captured here
and handed back to whoever ran the test.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class TestPendingError(Exception):
    """Raised from a test body to mark the test as pending."""

    __test__ = False  # not a pytest test class


class TestCanceledError(Exception):
    """Raised from a test body when a precondition for running it is not met."""

    __test__ = False  # not a pytest test class


def pending(message: str = "Test is pending.") -> None:
    """Mark the calling test body as pending."""
    raise TestPendingError(message)


def cancel(message: str = "Test was canceled.") -> None:
    """Cancel the calling test body."""
    raise TestCanceledError(message)


@dataclass(frozen=True)
class Outcome:
    """Base class for test outcomes."""

    @property
    def exception(self) -> BaseException | None:
        """The exception carried by the outcome, if any."""
        return None


@dataclass(frozen=True)
class Succeeded(Outcome):
    """The body returned normally."""


@dataclass(frozen=True)
class Failed(Outcome):
    """The body raised an unexpected exception."""

    error: BaseException

    @property
    def exception(self) -> BaseException | None:
        return self.error


@dataclass(frozen=True)
class Canceled(Outcome):
    """The body raised `TestCanceledError`."""

    error: TestCanceledError

    @property
    def exception(self) -> BaseException | None:
        return self.error


@dataclass(frozen=True)
class Pending(Outcome):
    """The body raised `TestPendingError`."""

    error: TestPendingError

    @property
    def exception(self) -> BaseException | None:
        return self.error


SUCCEEDED = Succeeded()


def outcome_of(fn: Callable[[], Any]) -> Outcome:
    """Invoke ``fn`` and classify how it finished.

    Only `Exception` subclasses are captured; `KeyboardInterrupt` and
    `SystemExit` propagate.
    """
    try:
        fn()
    except TestPendingError as e:
        return Pending(e)
    except TestCanceledError as e:
        return Canceled(e)
    except Exception as e:  # pylint: disable=broad-except
        return Failed(e)
    return SUCCEEDED
