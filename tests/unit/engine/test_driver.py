"""Unit tests for the execution driver.

The driver is exercised directly against hand-built registries; every hook
appends to a shared log so ordering can be asserted exactly.
"""

from __future__ import annotations

import pytest

from suitetree.domain.filter import Filter
from suitetree.domain.nodes import ROOT_PATH
from suitetree.domain.registry import Registry
from suitetree.engine.driver import RunHooks, run_registry

# pylint: disable=magic-value-comparison
# pylint: disable=redefined-outer-name


def body() -> None:
    """Placeholder test body."""


@pytest.fixture
def registry() -> Registry:
    """Tree used by most tests.

    A Stack
      should pop          (Slow)
      when empty
        should be empty
        (info) empty stack
      should peek         (ignored)
    top level
    """
    registry, stack = Registry().with_branch(ROOT_PATH, "A Stack")
    registry, _ = registry.with_test(stack, "should pop", body, ["Slow"])
    registry, empty = registry.with_branch(stack, "when empty")
    registry, _ = registry.with_test(empty, "should be empty", body)
    registry = registry.with_info(empty, "empty stack")
    registry, _ = registry.with_test(stack, "should peek", body, ignored=True)
    registry, _ = registry.with_test(ROOT_PATH, "top level", body)
    return registry


def recording_hooks(log: list[str], stop_after: int | None = None) -> RunHooks:
    """Hooks appending one entry per callback to ``log``."""
    ran: list[str] = []

    def _run(leaf):
        ran.append(leaf.name)
        log.append(f"run {leaf.name}")

    return RunHooks(
        run_one_test=_run,
        on_enter_branch=lambda b, p: log.append(f"enter {b.description} {p}"),
        on_exit_branch=lambda b, p: log.append(f"exit {b.description} {p}"),
        on_test_ignored=lambda t, p: log.append(f"ignored {t.name}"),
        on_test_starting=lambda t, p: log.append(f"starting {t.name} {p}"),
        on_info=lambda i, p: log.append(f"info {i.message} {p}"),
        should_stop=lambda: stop_after is not None and len(ran) >= stop_after,
    )


def test_full_run_order(registry: Registry):
    """Depth first, registration order, symmetric branch brackets."""
    log: list[str] = []
    run_registry(registry, Filter(), recording_hooks(log))
    assert log == [
        "enter A Stack (0,)",
        "starting A Stack should pop (0, 0)",
        "run A Stack should pop",
        "enter when empty (0, 1)",
        "starting A Stack when empty should be empty (0, 1, 0)",
        "run A Stack when empty should be empty",
        "info empty stack (0, 1, 1)",
        "exit when empty (0, 1)",
        "ignored A Stack should peek",
        "exit A Stack (0,)",
        "starting top level (1,)",
        "run top level",
    ]


def test_include_filter_keeps_brackets_and_ignored(registry: Registry):
    """Filtered-out tests vanish; branches and ignored tests are still reported."""
    log: list[str] = []
    run_registry(registry, Filter.of(["Slow"]), recording_hooks(log))
    assert [entry for entry in log if entry.startswith("run")] == [
        "run A Stack should pop"
    ]
    assert "ignored A Stack should peek" in log
    assert log.count("enter when empty (0, 1)") == 1
    assert log.count("exit when empty (0, 1)") == 1


def test_exclude_filter(registry: Registry):
    """Excluded tests are not run."""
    log: list[str] = []
    run_registry(registry, Filter.of(None, ["Slow"]), recording_hooks(log))
    assert "run A Stack should pop" not in log
    assert "run top level" in log


def test_should_stop_halts_new_tests(registry: Registry):
    """Once should_stop() is true no further test or info starts."""
    log: list[str] = []
    run_registry(registry, Filter(), recording_hooks(log, stop_after=1))
    assert [entry for entry in log if entry.startswith(("run", "info", "ignored"))] == [
        "run A Stack should pop"
    ]
    # brackets stay balanced
    enters = [e for e in log if e.startswith("enter")]
    exits = [e for e in log if e.startswith("exit")]
    assert len(enters) == len(exits) == 2


def test_exit_branch_called_when_test_raises(registry: Registry):
    """A run_one_test that raises still closes every open branch."""
    log: list[str] = []

    def _explode(leaf):
        raise RuntimeError(leaf.name)

    hooks = RunHooks(
        run_one_test=_explode,
        on_exit_branch=lambda b, p: log.append(f"exit {b.description}"),
    )
    with pytest.raises(RuntimeError):
        run_registry(registry, Filter(), hooks)
    assert log == ["exit A Stack"]


def test_repeat_runs_identical(registry: Registry):
    """Running the same snapshot twice gives the same callback sequence."""
    first: list[str] = []
    second: list[str] = []
    run_registry(registry, Filter(), recording_hooks(first))
    run_registry(registry, Filter(), recording_hooks(second))
    assert first == second


def test_default_hooks_only_run_tests(registry: Registry):
    """Only run_one_test is required."""
    ran: list[str] = []
    run_registry(registry, Filter(), RunHooks(run_one_test=lambda t: ran.append(t.name)))
    assert ran == [
        "A Stack should pop",
        "A Stack when empty should be empty",
        "top level",
    ]


def test_empty_registry():
    """An empty registry produces no callbacks."""
    log: list[str] = []
    run_registry(Registry(), Filter(), recording_hooks(log))
    assert not log
