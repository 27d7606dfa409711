"""Contract tests for the event stream a Suite hands to a Reporter.

Every reporter sees the same stream, so these properties are asserted on the
events themselves; `LoggingReporter` is checked to accept the full stream.
"""

from __future__ import annotations

import pytest

from suitetree.adapters.reporters import LoggingReporter, RecordingReporter
from suitetree.domain.outcomes import cancel, pending
from suitetree.interfaces.reporter import (
    Reporter,
    RunCompleted,
    RunStarting,
    ScopeClosed,
    ScopeOpened,
    TestCanceled,
    TestEvent,
    TestFailed,
    TestIgnored,
    TestPending,
    TestStarting,
    TestSucceeded,
)
from suitetree.suite import Suite

# pylint: disable=redefined-outer-name

OUTCOME_EVENTS = (TestSucceeded, TestFailed, TestCanceled, TestPending)


class Tee(Reporter):
    """Forward every event to several reporters."""

    def __init__(self, *reporters: Reporter) -> None:
        self.reporters = reporters

    def apply(self, event):
        for reporter in self.reporters:
            reporter.apply(event)


def _fail():
    raise AssertionError("boom")


@pytest.fixture
def busy_suite(make_suite) -> Suite:
    """A suite exercising every outcome, nesting, ignore and info."""
    suite = make_suite("BusySpec")

    @suite.describe("outer")
    def _():
        suite.test("passes", lambda: None)
        suite.info("note")

        @suite.describe("inner")
        def _():
            suite.test("fails", _fail)
            suite.ignore("later", lambda: None)

        @suite.describe("empty")
        def _():
            suite.test("filtered", lambda: None, tags=["Slow"])

    suite.test("cancels", lambda: cancel())
    suite.test("pends", pending)
    return suite


@pytest.fixture
def events(busy_suite: Suite, caplog):
    """Events of one run excluding Slow tests, also fed to a LoggingReporter."""
    recording = RecordingReporter()
    with caplog.at_level("DEBUG"):
        busy_suite.run(Tee(recording, LoggingReporter()), tags_to_exclude=["Slow"])
    return recording.events


def test_run_brackets(events):
    """A run starts with RunStarting and ends with RunCompleted."""
    assert isinstance(events[0], RunStarting)
    assert isinstance(events[-1], RunCompleted)
    assert events[0].expected_test_count == 4


def test_ordinals_and_run_id(events):
    """Ordinals count up from 1 by one; every event carries the same run id."""
    assert [e.ordinal for e in events] == list(range(1, len(events) + 1))
    assert len({e.run_id for e in events}) == 1


def test_scopes_are_balanced(events):
    """Scope events nest like parentheses, including scopes with nothing run."""
    stack = []
    for event in events:
        if isinstance(event, ScopeOpened):
            stack.append(event.path)
        elif isinstance(event, ScopeClosed):
            assert stack.pop() == event.path
    assert not stack
    assert [e.description for e in events if isinstance(e, ScopeOpened)] == [
        "outer",
        "inner",
        "empty",
    ]


def test_each_started_test_has_one_outcome(events):
    """TestStarting is followed by exactly one outcome for the same test."""
    started = [e.test_name for e in events if isinstance(e, TestStarting)]
    finished = [e.test_name for e in events if isinstance(e, OUTCOME_EVENTS)]
    assert started == finished
    for index, event in enumerate(events):
        if isinstance(event, TestStarting):
            following = [
                e for e in events[index + 1 :] if isinstance(e, TestEvent)
            ][0]
            assert isinstance(following, OUTCOME_EVENTS)
            assert following.test_name == event.test_name


def test_ignored_not_started(events):
    """Ignored tests produce TestIgnored only."""
    ignored = [e.test_name for e in events if isinstance(e, TestIgnored)]
    started = {e.test_name for e in events if isinstance(e, TestStarting)}
    assert ignored == ["outer inner later"]
    assert not started & set(ignored)


def test_completed_counts_match(events):
    """RunCompleted counts agree with the outcome events."""
    completed = events[-1]
    assert completed.succeeded == 1
    assert completed.failed == 1
    assert completed.canceled == 1
    assert completed.pending == 1
    assert completed.ignored == 1
