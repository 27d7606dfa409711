"""Builder front-end over the engine.

A `Suite` registers its scopes and tests through ordinary method calls, either
directly or as decorators::

    suite = Suite("StackSpec")

    @suite.describe("A Stack")
    def _():
        @suite.test("should pop", tags=["Slow"])
        def _(stack):
            ...

        suite.ignore("should peek", lambda: None)

Test bodies with no parameters are called as is; bodies with one parameter
receive the value produced by the suite's fixture for that test.

`Suite.run` closes registration, walks the registry and reports each step to a
`Reporter` as events stamped with a run id.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterable, Iterator
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from typing import Any, TypeVar

from suitetree.adapters.id_generators import ULIDGenerator
from suitetree.config import EngineConfig
from suitetree.domain.nodes import BranchNode, InfoLeaf, Path, TestLeaf, locate_caller
from suitetree.domain.outcomes import (
    Canceled,
    Failed,
    Outcome,
    Pending,
    outcome_of,
)
from suitetree.domain.tags import TagSet
from suitetree.engine import Engine
from suitetree.interfaces.id_generator import IdGenerator
from suitetree.interfaces.reporter import (
    Event,
    InfoProvided,
    Reporter,
    RunCompleted,
    RunStarting,
    RunStopped,
    ScopeClosed,
    ScopeOpened,
    TestCanceled,
    TestFailed,
    TestIgnored,
    TestPending,
    TestStarting,
    TestSucceeded,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
FixtureFactory = Callable[[TestLeaf], AbstractContextManager[Any]]


@dataclass(frozen=True)
class RunSummary:
    """Counts of what one `Suite.run` did."""

    run_id: str
    succeeded: int = 0
    failed: int = 0
    canceled: int = 0
    pending: int = 0
    ignored: int = 0
    stopped: bool = False

    @property
    def ok(self) -> bool:
        """True when no test failed and the run was not stopped."""
        return not self.failed and not self.stopped


@dataclass
class _RunContext:
    """Mutable bookkeeping for one run; lives only while the run does."""

    run_id: str
    reporter: Reporter
    ordinals: Iterator[int] = field(default_factory=lambda: itertools.count(1))
    counts: Counter[str] = field(default_factory=Counter)
    paths: dict[str, Path] = field(default_factory=dict)

    def next_ordinal(self) -> int:
        return next(self.ordinals)


class Suite:
    """A suite whose tests are registered through explicit builder calls.

    Args:
        name: Suite name used in events; defaults to the class name.
        fixture: Called with each executed test's leaf; must return a context
            manager whose value is passed to one-parameter test bodies.
        config: Engine configuration; defaults to `EngineConfig.from_env`.
        id_generator: Source of run ids; defaults to ULIDs.
    """

    style_name = "Suite"

    def __init__(
        self,
        name: str | None = None,
        *,
        fixture: FixtureFactory | None = None,
        config: EngineConfig | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self.suite_name = name or type(self).__name__
        self._engine = Engine(config or EngineConfig.from_env(self.style_name))
        self._fixture = fixture
        self._id_generator = id_generator or ULIDGenerator()
        self._local = threading.local()

    @property
    def engine(self) -> Engine:
        """The engine holding this suite's registry."""
        return self._engine

    # --------------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------------- #

    def describe(
        self,
        text: str,
        fn: Callable[[], Any] | None = None,
        *,
        child_prefix: str | None = None,
    ) -> Any:
        """Register a scope; ``fn`` registers the scope's contents.

        Without ``fn``, returns a decorator that registers the decorated
        function as the scope body and returns it unchanged.
        """
        location = locate_caller()

        def _register(fun: F) -> F:
            self._engine.register_branch(
                text,
                fun,
                child_prefix=child_prefix,
                message_key="describe_inside_test",
                location=location,
            )
            return fun

        return _register(fn) if fn is not None else _register

    def test(
        self,
        text: str,
        fn: Callable[..., Any] | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> Any:
        """Register a test under the current scope, directly or as a decorator."""
        location = locate_caller()

        def _register(fun: F) -> F:
            self._engine.register_test(
                text,
                fun,
                tags=tags,
                message_key="test_inside_test",
                location=location,
            )
            return fun

        return _register(fn) if fn is not None else _register

    def ignore(
        self,
        text: str,
        fn: Callable[..., Any] | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> Any:
        """Register a test that is reported as ignored and never invoked."""
        location = locate_caller()

        def _register(fun: F) -> F:
            self._engine.register_ignored_test(
                text,
                fun,
                tags=tags,
                message_key="ignore_inside_test",
                location=location,
            )
            return fun

        return _register(fn) if fn is not None else _register

    def info(self, message: str, payload: Any = None) -> None:
        """Provide an informational message.

        Before a run the message is recorded in the tree and replayed by every
        full run; from inside a running test body it is reported immediately.

        Raises:
            RegistrationClosedError: If called after the run started but
                outside any test body.
        """
        ctx = self._active_run()
        test_name = self._engine.running_test_name
        if ctx is not None and test_name is not None:
            self._emit(
                ctx,
                InfoProvided,
                message=message,
                payload=payload,
                path=ctx.paths.get(test_name, ()),
                test_name=test_name,
            )
            return
        self._engine.register_info(message, payload, location=locate_caller())

    # --------------------------------------------------------------------- #
    # Queries
    # --------------------------------------------------------------------- #

    @property
    def test_names(self) -> tuple[str, ...]:
        """Composed test names in registration order."""
        return self._engine.test_names()

    @property
    def tags(self) -> dict[str, TagSet]:
        """Test name → tag set, for tests carrying at least one tag."""
        return self._engine.tags()

    def expected_test_count(
        self,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
    ) -> int:
        """Number of tests a full run with these tag sets would invoke."""
        return self._engine.expected_test_count(tags_to_include, tags_to_exclude)

    # --------------------------------------------------------------------- #
    # Fixture
    # --------------------------------------------------------------------- #

    def with_fixture(self, leaf: TestLeaf) -> AbstractContextManager[Any]:
        """Context manager providing the fixture value for one test.

        Subclasses may override this instead of passing ``fixture``.
        """
        if self._fixture is None:
            return nullcontext(None)
        return self._fixture(leaf)

    # --------------------------------------------------------------------- #
    # Execution
    # --------------------------------------------------------------------- #

    def run(  # pylint: disable=too-many-arguments
        self,
        reporter: Reporter,
        *,
        test_name: str | None = None,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> RunSummary:
        """Run the suite, reporting every step to ``reporter``.

        Args:
            reporter: Receives the run's events.
            test_name: Run only this test, ignoring the tag sets.
            tags_to_include: Run only tests carrying one of these tags.
            tags_to_exclude: Never run tests carrying one of these tags.
            should_stop: Polled before each test; once it returns True no
                further test is started.

        Returns:
            RunSummary: What the run did.

        Raises:
            TestNotFoundError: If ``test_name`` is not registered.
        """
        tags_to_include = list(tags_to_include or ())
        tags_to_exclude = list(tags_to_exclude or ())
        ctx = _RunContext(run_id=self._id_generator.new_id(), reporter=reporter)
        if test_name is not None:
            # unknown names fail here, before any event is emitted
            selected = self._engine.registry.lookup(test_name)
            expected = 0 if selected.ignored else 1
        else:
            expected = self.expected_test_count(tags_to_include, tags_to_exclude)
        logger.debug("Starting run %s of %s", ctx.run_id, self.suite_name)
        self._emit(ctx, RunStarting, expected_test_count=expected)

        previous = self._active_run()
        self._local.run = ctx
        try:
            self._engine.run_tests(
                lambda leaf: self._run_one_test(ctx, leaf),
                selected_name=test_name,
                tags_to_include=tags_to_include,
                tags_to_exclude=tags_to_exclude,
                on_enter_branch=lambda branch, path: self._scope(
                    ctx, ScopeOpened, branch, path
                ),
                on_exit_branch=lambda branch, path: self._scope(
                    ctx, ScopeClosed, branch, path
                ),
                on_test_ignored=lambda leaf, path: self._ignored(ctx, leaf, path),
                on_test_starting=lambda leaf, path: self._starting(ctx, leaf, path),
                on_info=lambda info, path: self._replay_info(ctx, info, path),
                should_stop=should_stop,
            )
        finally:
            self._local.run = previous

        stopped = bool(should_stop and should_stop())
        summary = RunSummary(
            run_id=ctx.run_id,
            succeeded=ctx.counts["succeeded"],
            failed=ctx.counts["failed"],
            canceled=ctx.counts["canceled"],
            pending=ctx.counts["pending"],
            ignored=ctx.counts["ignored"],
            stopped=stopped,
        )
        if stopped:
            self._emit(ctx, RunStopped)
        else:
            self._emit(
                ctx,
                RunCompleted,
                succeeded=summary.succeeded,
                failed=summary.failed,
                canceled=summary.canceled,
                pending=summary.pending,
                ignored=summary.ignored,
            )
        return summary

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _active_run(self) -> _RunContext | None:
        """The run executing on this thread, if any."""
        return getattr(self._local, "run", None)

    def _emit(self, ctx: _RunContext, event_type: type[Event], **fields: Any) -> None:
        ctx.reporter.apply(
            event_type(
                run_id=ctx.run_id,
                ordinal=ctx.next_ordinal(),
                suite_name=self.suite_name,
                **fields,
            )
        )

    def _scope(
        self,
        ctx: _RunContext,
        event_type: type[ScopeOpened] | type[ScopeClosed],
        branch: BranchNode,
        path: Path,
    ) -> None:
        self._emit(ctx, event_type, description=branch.description, path=path)

    def _ignored(self, ctx: _RunContext, leaf: TestLeaf, path: Path) -> None:
        ctx.counts["ignored"] += 1
        self._emit(
            ctx, TestIgnored, test_name=leaf.name, test_text=leaf.text, path=path
        )

    def _starting(self, ctx: _RunContext, leaf: TestLeaf, path: Path) -> None:
        ctx.paths[leaf.name] = path
        self._emit(
            ctx, TestStarting, test_name=leaf.name, test_text=leaf.text, path=path
        )

    def _replay_info(self, ctx: _RunContext, info: InfoLeaf, path: Path) -> None:
        self._emit(
            ctx, InfoProvided, message=info.message, payload=info.payload, path=path
        )

    def _run_one_test(self, ctx: _RunContext, leaf: TestLeaf) -> Outcome:
        start = time.perf_counter()
        outcome = outcome_of(lambda: self._invoke(leaf))
        duration = time.perf_counter() - start
        common = {
            "test_name": leaf.name,
            "test_text": leaf.text,
            "path": ctx.paths.get(leaf.name, ()),
            "duration": duration,
        }
        match outcome:
            case Failed(error=error):
                ctx.counts["failed"] += 1
                logger.debug("Test %r failed: %r", leaf.name, error)
                self._emit(ctx, TestFailed, error=error, **common)
            case Canceled(error=error):
                ctx.counts["canceled"] += 1
                self._emit(ctx, TestCanceled, error=error, **common)
            case Pending():
                ctx.counts["pending"] += 1
                self._emit(ctx, TestPending, **common)
            case _:
                ctx.counts["succeeded"] += 1
                self._emit(ctx, TestSucceeded, **common)
        return outcome

    def _invoke(self, leaf: TestLeaf) -> None:
        with self.with_fixture(leaf) as fixture_value:
            if _accepts_fixture(leaf.body):
                leaf.body(fixture_value)
            else:
                leaf.body()


def _accepts_fixture(body: Callable[..., Any]) -> bool:
    """True if ``body`` has a required positional parameter for the fixture.

    Parameters with defaults do not count, so ``pending`` and ``cancel`` can be
    registered as bodies directly.
    """
    try:
        parameters = inspect.signature(body).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    )
    return any(
        p.kind is inspect.Parameter.VAR_POSITIONAL
        or (p.kind in positional and p.default is inspect.Parameter.empty)
        for p in parameters
    )
