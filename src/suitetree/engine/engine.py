"""Registration/execution engine.

The engine owns one `AtomicReference[EngineState]`. Every registration reads
the current state, computes a new immutable state from it, and installs the
result with compare-and-set. The phase flag lives in the same state value, so
a run that starts while a registration is being computed makes that
registration's publish fail instead of slipping in after the run began.

State machine:
    REGISTERING --(first run_tests)--> RUNNING

There are no other transitions.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from suitetree import messages
from suitetree.config import EngineConfig
from suitetree.domain.errors import (
    ConcurrentRegistrationError,
    RegistrationClosedError,
)
from suitetree.domain.filter import Filter
from suitetree.domain.nodes import ROOT_PATH, Path, SourceRef, TestLeaf
from suitetree.domain.registry import Registry
from suitetree.domain.tags import TagSet

from .atomic import AtomicReference
from .driver import RunHooks, run_registry

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Phase(enum.Enum):
    """Lifecycle phase of an engine."""

    REGISTERING = "registering"
    RUNNING = "running"


@dataclass(frozen=True, eq=False)
class EngineState:
    """The value an engine publishes atomically."""

    registry: Registry = field(default_factory=Registry)
    current_path: Path = ROOT_PATH
    phase: Phase = Phase.REGISTERING


class Engine:
    """Builds the registry during suite construction and runs it afterwards.

    Registration is expected to happen on the thread constructing the suite,
    possibly reentrantly through `register_branch` callbacks. Queries and runs
    may happen on any thread; concurrent runs each track their own running
    test, but info or registrations from threads a test body starts itself
    are not attributed to that test.

    Args:
        config: Diagnostic names and the publish retry limit.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._state: AtomicReference[EngineState] = AtomicReference(EngineState())
        # per thread, so concurrent runs each see their own running test
        self._running = threading.local()

    # --------------------------------------------------------------------- #
    # Queries
    # --------------------------------------------------------------------- #

    @property
    def phase(self) -> Phase:
        """Current lifecycle phase."""
        return self._state.get().phase

    @property
    def registry(self) -> Registry:
        """The currently published registry snapshot."""
        return self._state.get().registry

    @property
    def current_path(self) -> Path:
        """Path of the branch new registrations land under."""
        return self._state.get().current_path

    @property
    def running_test_name(self) -> str | None:
        """Name of the test whose body is executing on this thread, if any."""
        return getattr(self._running, "test_name", None)

    def test_names(self) -> tuple[str, ...]:
        """Composed test names in registration order."""
        return self.registry.test_names()

    def tags(self) -> dict[str, TagSet]:
        """Test name → tag set, for tests carrying at least one tag."""
        return self.registry.tags()

    def expected_test_count(
        self,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
    ) -> int:
        """Number of tests a full run with these tag sets would invoke."""
        return Filter.of(tags_to_include, tags_to_exclude).runnable_test_count(
            self.registry
        )

    # --------------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------------- #

    def register_test(
        self,
        text: str,
        body: Callable[..., Any],
        *,
        tags: Iterable[str] = (),
        message_key: str = "test_inside_test",
        location: SourceRef | None = None,
    ) -> str:
        """Register a test under the current branch.

        Args:
            text: The test's own text; the composed name prefixes it with the
                enclosing branch descriptions.
            body: Callable taking no arguments or the fixture value.
            tags: Tag names for the test.
            message_key: Message rendered if this call happens inside a running test.
            location: Registration call site, for error messages.

        Returns:
            str: The composed test name.

        Raises:
            RegistrationClosedError: If a run has started.
            IllegalNameError: If ``text`` is empty or blank.
            DuplicateNameError: If the composed name is already registered.
            ConcurrentRegistrationError: If another thread mutated the engine
                while this registration was being published.
        """
        return self._register_test(
            text, body, tags, ignored=False, message_key=message_key, location=location
        )

    def register_ignored_test(
        self,
        text: str,
        body: Callable[..., Any],
        *,
        tags: Iterable[str] = (),
        message_key: str = "ignore_inside_test",
        location: SourceRef | None = None,
    ) -> str:
        """Register a test that every run reports as ignored.

        Same contract as `register_test`; the body is kept but never invoked.
        """
        return self._register_test(
            text, body, tags, ignored=True, message_key=message_key, location=location
        )

    def register_branch(
        self,
        description: str,
        fun: Callable[[], Any],
        *,
        child_prefix: str | None = None,
        message_key: str = "describe_inside_test",
        location: SourceRef | None = None,
    ) -> Path:
        """Register a branch and run ``fun`` with it as the current branch.

        Registrations made by ``fun`` land under the new branch. The parent is
        restored as the current branch once ``fun`` returns or raises; an
        exception from ``fun`` propagates after the restore.

        Returns:
            Path: The new branch's path.

        Raises:
            RegistrationClosedError: If a run has started.
            IllegalNameError: If ``description`` is empty or blank.
            ConcurrentRegistrationError: If a publish raced another thread.
        """

        def _open(state: EngineState) -> tuple[EngineState, tuple[Path, Path]]:
            self._check_open(state, "branch", message_key, location)
            registry, child_path = state.registry.with_branch(
                state.current_path, description, child_prefix, location
            )
            return (
                replace(state, registry=registry, current_path=child_path),
                (state.current_path, child_path),
            )

        parent_path, child_path = self._publish(_open, location)
        logger.debug("Registered branch %r at %s", description, child_path)
        try:
            fun()
        finally:
            self._publish(
                lambda state: (replace(state, current_path=parent_path), None), location
            )
        return child_path

    def register_info(
        self,
        message: str,
        payload: Any = None,
        *,
        message_key: str = "info_inside_test",
        location: SourceRef | None = None,
    ) -> None:
        """Record an info message under the current branch, replayed on every full run."""

        def _add(state: EngineState) -> tuple[EngineState, None]:
            self._check_open(state, "info", message_key, location)
            registry = state.registry.with_info(
                state.current_path, message, payload, location
            )
            return replace(state, registry=registry), None

        self._publish(_add, location)

    # --------------------------------------------------------------------- #
    # Execution
    # --------------------------------------------------------------------- #

    def run_tests(  # pylint: disable=too-many-arguments
        self,
        run_one_test: Callable[[TestLeaf], Any],
        *,
        selected_name: str | None = None,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
        on_enter_branch: Callable[..., None] | None = None,
        on_exit_branch: Callable[..., None] | None = None,
        on_test_ignored: Callable[..., None] | None = None,
        on_test_starting: Callable[..., None] | None = None,
        on_info: Callable[..., None] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> None:
        """Close registration and run the published registry.

        With ``selected_name`` only that test is run, bypassing tag filters
        and branch notifications; if it was registered as ignored it is
        reported through ``on_test_ignored`` instead. Otherwise every test is
        visited in registration order (see `run_registry`).

        Raises:
            TestNotFoundError: If ``selected_name`` is not registered.
            ConcurrentRegistrationError: If a registration raced the phase change.
        """
        registry = self._start_running().registry
        callbacks = {
            "on_enter_branch": on_enter_branch,
            "on_exit_branch": on_exit_branch,
            "on_test_ignored": on_test_ignored,
            "on_test_starting": on_test_starting,
            "on_info": on_info,
            "should_stop": should_stop,
        }
        hooks = RunHooks(
            run_one_test=self._tracking(run_one_test),
            **{name: fn for name, fn in callbacks.items() if fn is not None},
        )

        if selected_name is None:
            run_registry(registry, Filter.of(tags_to_include, tags_to_exclude), hooks)
            return

        leaf = registry.lookup(selected_name)
        path = registry.path_of(selected_name)
        if leaf.ignored:
            hooks.on_test_ignored(leaf, path)
        else:
            hooks.on_test_starting(leaf, path)
            hooks.run_one_test(leaf)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _register_test(  # pylint: disable=too-many-arguments
        self,
        text: str,
        body: Callable[..., Any],
        tags: Iterable[str],
        *,
        ignored: bool,
        message_key: str,
        location: SourceRef | None,
    ) -> str:
        tag_list = list(tags) if not isinstance(tags, str) else [tags]

        def _add(state: EngineState) -> tuple[EngineState, str]:
            self._check_open(state, "test", message_key, location)
            registry, test_name = state.registry.with_test(
                state.current_path,
                text,
                body,
                tag_list,
                ignored=ignored,
                location=location,
            )
            return replace(state, registry=registry), test_name

        test_name = self._publish(_add, location)
        logger.debug(
            "Registered %stest %r", "ignored " if ignored else "", test_name
        )
        return test_name

    def _check_open(
        self,
        state: EngineState,
        kind: str,
        message_key: str,
        location: SourceRef | None,
    ) -> None:
        if state.phase is Phase.REGISTERING:
            return
        if self.running_test_name is not None:
            message = messages.render(message_key)
        else:
            message = messages.registration_closed(kind)
        raise RegistrationClosedError(message, location)

    def _publish(
        self,
        compute: Callable[[EngineState], tuple[EngineState, R]],
        location: SourceRef | None = None,
    ) -> R:
        """Compute a new state from the current one and install it atomically.

        ``compute`` is pure: it may be re-run against a fresher snapshot up to
        ``cas_retry_limit`` times. Errors it raises propagate untouched.
        """
        attempts = 0
        while True:
            snapshot = self._state.get()
            new_state, result = compute(snapshot)
            if self._state.compare_and_set(snapshot, new_state):
                return result
            if attempts >= self.config.cas_retry_limit:
                logger.error(
                    "Concurrent modification of %s detected after %d attempt(s)",
                    self.config.simple_class_name,
                    attempts + 1,
                )
                raise ConcurrentRegistrationError(
                    self.config.concurrent_mod_resource_name,
                    self.config.simple_class_name,
                    location,
                )
            attempts += 1
            logger.warning(
                "Snapshot publish lost a race; recomputing (attempt %d)", attempts + 1
            )

    def _start_running(self) -> EngineState:
        snapshot = self._state.get()
        if snapshot.phase is Phase.RUNNING:
            return snapshot
        running = replace(snapshot, phase=Phase.RUNNING)
        if self._state.compare_and_set(snapshot, running):
            logger.info(
                "%s entering running phase with %d registered test(s)",
                self.config.simple_class_name,
                len(running.registry),
            )
            return running
        # Another thread either started the run first or registered concurrently.
        if (current := self._state.get()).phase is Phase.RUNNING:
            return current
        logger.error("Registration raced the start of a run")
        raise ConcurrentRegistrationError(
            self.config.concurrent_mod_resource_name, self.config.simple_class_name
        )

    def _tracking(
        self, run_one_test: Callable[[TestLeaf], Any]
    ) -> Callable[[TestLeaf], Any]:
        def _run(leaf: TestLeaf) -> Any:
            previous = self.running_test_name
            self._running.test_name = leaf.name
            try:
                return run_one_test(leaf)
            finally:
                self._running.test_name = previous

        return _run
