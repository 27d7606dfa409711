"""Reflection-driven registration.

`MethodSuite` turns its ``test_*`` methods into tests. Discovery only produces
the same registration calls a hand-written suite would make; the engine never
learns how the names were found.

Methods are registered in definition order, base classes first. A method
overridden in a subclass keeps the position of the original definition.
Annotations are plain function attributes set by the `tagged` and `ignore`
decorators.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from suitetree.domain.nodes import SourceRef
from suitetree.domain.tags import TagSet, make_tags
from suitetree.engine import Engine
from suitetree.interfaces.reporter import Reporter
from suitetree.suite import RunSummary, Suite

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TAGS_ATTR = "__suitetree_tags__"
IGNORED_ATTR = "__suitetree_ignored__"
DEFAULT_PREFIX = "test_"


def tagged(*tags: str) -> Callable[[F], F]:
    """Decorator adding tags to a discovered test method. Stackable."""
    new_tags = make_tags(tags)

    def _decorate(fn: F) -> F:
        existing: TagSet = getattr(fn, TAGS_ATTR, frozenset())
        setattr(fn, TAGS_ATTR, existing | new_tags)
        return fn

    return _decorate


def ignore(fn: F) -> F:
    """Decorator marking a discovered test method as ignored."""
    setattr(fn, IGNORED_ATTR, True)
    return fn


@dataclass(frozen=True, slots=True)
class DiscoveredTest:
    """One test method found on an object."""

    name: str
    method: Callable[..., Any]
    tags: TagSet
    ignored: bool
    location: SourceRef | None


def discover_methods(
    obj: object,
    prefix: str = DEFAULT_PREFIX,
    skip: Iterable[type] = (),
) -> list[DiscoveredTest]:
    """List the test methods of ``obj``.

    Args:
        obj: The instance to inspect.
        prefix: Method name prefix identifying tests.
        skip: Classes whose own attributes are never treated as tests.

    Returns:
        list[DiscoveredTest]: One entry per test method, in definition order.
    """
    skipped = set(skip)
    functions: dict[str, Callable[..., Any]] = {}
    for klass in reversed(type(obj).__mro__):
        if klass in skipped or klass is object:
            continue
        for name, attr in vars(klass).items():
            if name.startswith(prefix) and inspect.isfunction(attr):
                functions[name] = attr

    discovered = []
    for name, function in functions.items():
        code = function.__code__
        discovered.append(
            DiscoveredTest(
                name=name,
                method=getattr(obj, name),
                tags=getattr(function, TAGS_ATTR, frozenset()),
                ignored=getattr(function, IGNORED_ATTR, False),
                location=SourceRef(code.co_filename, code.co_firstlineno, name),
            )
        )
    return discovered


def register_discovered(engine: Engine, tests: Sequence[DiscoveredTest]) -> list[str]:
    """Register discovered tests with ``engine``, in order.

    Returns:
        list[str]: The composed test names.
    """
    names = []
    for test in tests:
        register = engine.register_ignored_test if test.ignored else engine.register_test
        names.append(
            register(test.name, test.method, tags=test.tags, location=test.location)
        )
    logger.debug("Registered %d discovered test method(s)", len(names))
    return names


class MethodSuite(Suite):
    """A suite whose tests are its ``test_*`` methods.

    Methods are discovered lazily, on first access to `test_names`, `tags`,
    `expected_test_count` or `run`, and always before the run starts. A test
    method taking a parameter receives the fixture value.
    """

    style_name = "MethodSuite"
    test_method_prefix = DEFAULT_PREFIX

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._discovery_lock = threading.Lock()
        self._discovered = False

    def _ensure_discovered(self) -> None:
        with self._discovery_lock:
            if self._discovered:
                return
            tests = discover_methods(
                self, self.test_method_prefix, skip=MethodSuite.__mro__
            )
            register_discovered(self.engine, tests)
            self._discovered = True

    @property
    def test_names(self) -> tuple[str, ...]:
        self._ensure_discovered()
        return super().test_names

    @property
    def tags(self) -> dict[str, TagSet]:
        self._ensure_discovered()
        return super().tags

    def expected_test_count(
        self,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
    ) -> int:
        self._ensure_discovered()
        return super().expected_test_count(tags_to_include, tags_to_exclude)

    def run(self, reporter: Reporter, **kwargs: Any) -> RunSummary:
        self._ensure_discovered()
        return super().run(reporter, **kwargs)
