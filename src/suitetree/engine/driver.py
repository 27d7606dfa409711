"""Execution driver: walks a published registry in registration order.

The driver keeps no state besides the recursion stack. Siblings are visited in
registration order, so running the same registry twice produces identical
callback sequences.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from suitetree.domain.filter import Filter, Verdict
from suitetree.domain.nodes import (
    ROOT_PATH,
    BranchNode,
    InfoLeaf,
    Path,
    TestLeaf,
)
from suitetree.domain.registry import Registry

logger = logging.getLogger(__name__)

BranchCallback = Callable[[BranchNode, Path], None]
LeafCallback = Callable[[TestLeaf, Path], None]
InfoCallback = Callable[[InfoLeaf, Path], None]


def _noop(*_args: Any) -> None:
    return None


def _never() -> bool:
    return False


@dataclass(frozen=True, slots=True)
class RunHooks:
    """Host-supplied callbacks for one run.

    Only ``run_one_test`` is required; every notification defaults to a no-op.
    ``should_stop`` is polled before each test and info is started.
    """

    # pylint: disable=too-many-instance-attributes

    run_one_test: Callable[[TestLeaf], Any]
    on_enter_branch: BranchCallback = _noop
    on_exit_branch: BranchCallback = _noop
    on_test_ignored: LeafCallback = _noop
    on_test_starting: LeafCallback = _noop
    on_info: InfoCallback = _noop
    should_stop: Callable[[], bool] = _never


def run_registry(registry: Registry, test_filter: Filter, hooks: RunHooks) -> None:
    """Run every test of ``registry`` that ``test_filter`` lets through.

    Branches are bracketed by ``on_enter_branch``/``on_exit_branch`` whether or
    not anything beneath them runs. Ignored tests are always reported through
    ``on_test_ignored``; tests filtered out by tags are skipped silently.

    Args:
        registry: The snapshot to walk; the root branch is not announced.
        test_filter: Include/exclude decision for each test.
        hooks: The host callbacks.
    """
    _run_branch(registry.root, ROOT_PATH, test_filter, hooks)


def _run_branch(
    branch: BranchNode, path: Path, test_filter: Filter, hooks: RunHooks
) -> None:
    for index, child in enumerate(branch.children):
        child_path = (*path, index)
        match child:
            case BranchNode():
                hooks.on_enter_branch(child, child_path)
                try:
                    _run_branch(child, child_path, test_filter, hooks)
                finally:
                    hooks.on_exit_branch(child, child_path)
            case TestLeaf():
                _run_leaf(child, child_path, test_filter, hooks)
            case InfoLeaf():
                if not hooks.should_stop():
                    hooks.on_info(child, child_path)


def _run_leaf(leaf: TestLeaf, path: Path, test_filter: Filter, hooks: RunHooks) -> None:
    if hooks.should_stop():
        logger.debug("Stop requested; not starting %r", leaf.name)
        return
    match test_filter.verdict(leaf):
        case Verdict.IGNORE:
            hooks.on_test_ignored(leaf, path)
        case Verdict.SKIP:
            logger.debug("Filtered out %r", leaf.name)
        case Verdict.RUN:
            hooks.on_test_starting(leaf, path)
            hooks.run_one_test(leaf)
