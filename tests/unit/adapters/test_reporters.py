"""Unit tests for the bundled reporters."""

import logging

import pytest

from suitetree.adapters.reporters import LoggingReporter, RecordingReporter
from suitetree.interfaces.reporter import (
    InfoProvided,
    RunCompleted,
    RunStarting,
    RunStopped,
    ScopeClosed,
    ScopeOpened,
    TestFailed,
    TestIgnored,
    TestStarting,
    TestSucceeded,
)

# pylint: disable=magic-value-comparison

COMMON = {"run_id": "run-1", "suite_name": "StackSpec"}


def starting(ordinal: int, name: str) -> TestStarting:
    """A TestStarting event for a top-level test."""
    return TestStarting(ordinal=ordinal, test_name=name, test_text=name, path=(0,), **COMMON)


class TestRecordingReporter:
    """Tests for RecordingReporter."""

    @staticmethod
    def test_records_in_order():
        """Events come back in arrival order."""
        reporter = RecordingReporter()
        events = [starting(1, "a"), starting(2, "b")]
        for event in events:
            reporter.apply(event)
        assert reporter.events == events
        assert reporter.test_names() == ["a", "b"]

    @staticmethod
    def test_events_is_a_copy():
        """Mutating the returned list does not affect the reporter."""
        reporter = RecordingReporter()
        reporter.apply(starting(1, "a"))
        reporter.events.clear()
        assert len(reporter.events) == 1

    @staticmethod
    def test_of_type_and_clear():
        """of_type() filters by class; clear() forgets everything."""
        reporter = RecordingReporter()
        reporter.apply(RunStarting(ordinal=1, expected_test_count=1, **COMMON))
        reporter.apply(starting(2, "a"))
        assert len(reporter.of_type(RunStarting)) == 1
        assert reporter.of_type(TestIgnored) == []
        reporter.clear()
        assert reporter.events == []


class TestLoggingReporter:
    """Tests for LoggingReporter."""

    @staticmethod
    @pytest.mark.parametrize(
        ("event", "level", "text"),
        [
            (
                RunStarting(ordinal=1, expected_test_count=3, **COMMON),
                logging.INFO,
                "Run run-1 of StackSpec: 3 test(s) expected",
            ),
            (
                ScopeOpened(ordinal=2, description="A Stack", path=(0,), **COMMON),
                logging.INFO,
                "A Stack",
            ),
            (
                TestSucceeded(
                    ordinal=3,
                    test_name="A Stack should pop",
                    test_text="should pop",
                    path=(0, 0),
                    duration=0.1,
                    **COMMON,
                ),
                logging.INFO,
                "  - should pop",
            ),
            (
                TestFailed(
                    ordinal=4,
                    test_name="A Stack should push",
                    test_text="should push",
                    path=(0, 1),
                    duration=0.1,
                    error=AssertionError("x"),
                    **COMMON,
                ),
                logging.ERROR,
                "  - should push *** FAILED *** AssertionError('x')",
            ),
            (
                TestIgnored(
                    ordinal=5,
                    test_name="peek",
                    test_text="peek",
                    path=(1,),
                    **COMMON,
                ),
                logging.INFO,
                "- peek !!! IGNORED !!!",
            ),
            (
                InfoProvided(ordinal=6, message="note", payload=None, path=(0, 2), **COMMON),
                logging.INFO,
                "  + note",
            ),
            (RunStopped(ordinal=7, **COMMON), logging.WARNING, "Run run-1 stopped"),
            (
                RunCompleted(
                    ordinal=8,
                    succeeded=1,
                    failed=1,
                    canceled=0,
                    pending=0,
                    ignored=1,
                    **COMMON,
                ),
                logging.INFO,
                "Run run-1 completed: 1 succeeded, 1 failed, 0 canceled, "
                "0 pending, 1 ignored",
            ),
        ],
    )
    def test_renders_event(caplog, event, level, text):
        """Each event type is logged at its level with indentation by depth."""
        with caplog.at_level(logging.DEBUG, logger="suitetree.adapters.reporters"):
            LoggingReporter().apply(event)
        (record,) = caplog.records
        assert record.levelno == level
        assert record.getMessage() == text

    @staticmethod
    def test_silent_events(caplog):
        """Bookkeeping events are not logged."""
        with caplog.at_level(logging.DEBUG, logger="suitetree.adapters.reporters"):
            LoggingReporter().apply(starting(1, "a"))
            LoggingReporter().apply(
                ScopeClosed(ordinal=2, description="A", path=(0,), **COMMON)
            )
        assert not caplog.records

    @staticmethod
    def test_custom_logger(caplog):
        """A caller-supplied logger is used."""
        with caplog.at_level(logging.INFO, logger="myhost.report"):
            LoggingReporter(logging.getLogger("myhost.report")).apply(
                RunStopped(ordinal=1, **COMMON)
            )
        assert caplog.records[0].name == "myhost.report"
