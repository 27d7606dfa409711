"""Immutable registry of branches and tests.

A `Registry` is a value: every insert returns a new registry that shares the
untouched parts of the tree with its predecessor, and leaves the receiver
unchanged. That makes a registry safe to hand to another thread as soon as it
is published.

Invariants:
- `ordered_test_names` holds no duplicates and follows registration order.
- Every name in `ordered_test_names` maps to a leaf reachable from `root`.
- `tags_by_name` only holds entries for tests with at least one tag; ignored
  tests always carry `IGNORE_TAG`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from suitetree.domain.errors import (
    DuplicateNameError,
    IllegalNameError,
    TestNotFoundError,
)
from suitetree.domain.nodes import (
    ROOT_PATH,
    BranchNode,
    InfoLeaf,
    Node,
    Path,
    SourceRef,
    TestLeaf,
)
from suitetree.domain.tags import TagSet, make_tags


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True, eq=False)
class Registry:
    """The tree of registered nodes plus derived, read-only indexes."""

    root: BranchNode = field(default_factory=lambda: BranchNode(""))
    ordered_test_names: tuple[str, ...] = ()
    tests_by_name: Mapping[str, TestLeaf] = field(default_factory=_empty_mapping)
    tags_by_name: Mapping[str, TagSet] = field(default_factory=_empty_mapping)

    # --- queries ---

    def test_names(self) -> tuple[str, ...]:
        """Composed test names in registration order."""
        return self.ordered_test_names

    def tags(self) -> dict[str, TagSet]:
        """Test name → tag set, for tests carrying at least one tag."""
        return dict(self.tags_by_name)

    def lookup(self, test_name: str) -> TestLeaf:
        """Return the leaf registered under ``test_name``.

        Raises:
            TestNotFoundError: If no such test is registered.
        """
        try:
            return self.tests_by_name[test_name]
        except KeyError:
            raise TestNotFoundError(test_name) from None

    def branch_at(self, path: Path) -> BranchNode:
        """Return the branch addressed by ``path``.

        Raises:
            ValueError: If ``path`` does not address a branch.
        """
        branch = self.root
        for depth, index in enumerate(path):
            try:
                child = branch.children[index]
            except IndexError:
                raise ValueError(f"no node at path {path[: depth + 1]}") from None
            if not isinstance(child, BranchNode):
                raise ValueError(f"node at path {path[: depth + 1]} is not a branch")
            branch = child
        return branch

    @staticmethod
    def parent_path(path: Path) -> Path:
        """Path of the branch owning the node at ``path``.

        Raises:
            ValueError: For the root path, which has no parent.
        """
        if not path:
            raise ValueError("the root branch has no parent")
        return path[:-1]

    def walk(self) -> Iterator[tuple[Path, Node]]:
        """Yield ``(path, node)`` pairs depth first, in registration order.

        The root branch itself is not yielded.
        """

        def _walk(branch: BranchNode, prefix: Path) -> Iterator[tuple[Path, Node]]:
            for index, child in enumerate(branch.children):
                child_path = (*prefix, index)
                yield child_path, child
                if isinstance(child, BranchNode):
                    yield from _walk(child, child_path)

        yield from _walk(self.root, ROOT_PATH)

    def path_of(self, test_name: str) -> Path:
        """Return the path of the leaf registered under ``test_name``.

        Raises:
            TestNotFoundError: If no such test is registered.
        """
        leaf = self.lookup(test_name)
        for path, node in self.walk():
            if node is leaf:
                return path
        raise TestNotFoundError(test_name)  # pragma: no cover (index out of sync)

    def __len__(self) -> int:
        return len(self.ordered_test_names)

    def __contains__(self, test_name: object) -> bool:
        return test_name in self.tests_by_name

    # --- inserts ---

    def with_test(  # pylint: disable=too-many-arguments
        self,
        path: Path,
        text: str,
        body: Callable[..., Any],
        tags: Iterable[str] = (),
        *,
        ignored: bool = False,
        location: SourceRef | None = None,
    ) -> tuple[Registry, str]:
        """Return a registry with a new test appended under the branch at ``path``.

        Args:
            path: Path of the owning branch.
            text: The leaf's own text.
            body: The test body.
            tags: User tags for the test.
            ignored: Register the test as ignored.
            location: Registration call site, for error messages.

        Returns:
            tuple[Registry, str]: The new registry and the composed test name.

        Raises:
            IllegalNameError: If ``text`` is empty or whitespace.
            DuplicateNameError: If the composed name is already registered.
            ValueError: If ``path`` does not address a branch.
        """
        _check_text(text, location)
        test_name = self.compose_name(path, text)
        if test_name in self.tests_by_name:
            raise DuplicateNameError(test_name, location)

        try:
            user_tags = make_tags(tags)
        except ValueError as e:
            raise IllegalNameError(text, str(e), location) from e
        recorded_tags = make_tags(user_tags, ignored=ignored)
        leaf = TestLeaf(
            name=test_name,
            text=text,
            body=body,
            tags=user_tags,
            ignored=ignored,
            location=location,
        )

        tests_by_name = dict(self.tests_by_name)
        tests_by_name[test_name] = leaf
        tags_by_name = dict(self.tags_by_name)
        if recorded_tags:
            tags_by_name[test_name] = recorded_tags

        registry = Registry(
            root=_append_at(self.root, path, leaf),
            ordered_test_names=(*self.ordered_test_names, test_name),
            tests_by_name=MappingProxyType(tests_by_name),
            tags_by_name=MappingProxyType(tags_by_name),
        )
        return registry, test_name

    def with_branch(
        self,
        path: Path,
        description: str,
        child_prefix: str | None = None,
        location: SourceRef | None = None,
    ) -> tuple[Registry, Path]:
        """Return a registry with a new branch appended under the branch at ``path``.

        Colliding names below the new branch are detected as each leaf is
        registered, not here.

        Returns:
            tuple[Registry, Path]: The new registry and the new branch's path.

        Raises:
            IllegalNameError: If ``description`` is empty or whitespace.
            ValueError: If ``path`` does not address a branch.
        """
        _check_text(description, location)
        child_path = (*path, len(self.branch_at(path).children))
        branch = BranchNode(description, child_prefix=child_prefix, location=location)
        return self._with_node(path, branch), child_path

    def with_info(
        self,
        path: Path,
        message: str,
        payload: Any = None,
        location: SourceRef | None = None,
    ) -> Registry:
        """Return a registry with an info message appended under ``path``."""
        return self._with_node(path, InfoLeaf(message, payload, location))

    def _with_node(self, path: Path, node: Node) -> Registry:
        return Registry(
            root=_append_at(self.root, path, node),
            ordered_test_names=self.ordered_test_names,
            tests_by_name=self.tests_by_name,
            tags_by_name=self.tags_by_name,
        )

    # --- naming ---

    def compose_name(self, path: Path, text: str) -> str:
        """Compose a test name from the branch path and the leaf's text.

        Ancestor descriptions (outer to inner), their child prefixes, and the
        leaf text are joined with single spaces.
        """
        parts: list[str] = []
        branch = self.root
        for index in path:
            child = branch.children[index] if index < len(branch.children) else None
            if not isinstance(child, BranchNode):
                raise ValueError(f"node at path {path} is not a branch")
            parts.extend(child.name_parts)
            branch = child
        parts.append(text)
        return " ".join(parts)

    # --- tag mapping round trip ---

    def tags_to_mapping(self) -> dict[str, list[str]]:
        """Serialize `tags()` to a JSON-compatible mapping with sorted tag lists."""
        return {name: sorted(tags) for name, tags in self.tags_by_name.items()}

    @staticmethod
    def tags_from_mapping(mapping: Mapping[str, list[str]]) -> dict[str, TagSet]:
        """Rebuild a `tags()` mapping from `tags_to_mapping` output.

        Entries with empty tag lists are dropped, matching how untagged tests
        are absent from `tags()`.
        """
        return {name: frozenset(tags) for name, tags in mapping.items() if tags}


def _check_text(text: str, location: SourceRef | None) -> None:
    if not isinstance(text, str):
        raise IllegalNameError(repr(text), "text must be a string", location)
    if not text.strip():
        raise IllegalNameError(text, "text must not be empty or blank", location)


def _append_at(branch: BranchNode, path: Path, node: Node) -> BranchNode:
    """Rebuild the spine from ``branch`` down to ``path`` with ``node`` appended."""
    if not path:
        return branch.with_child(node)
    index, rest = path[0], path[1:]
    try:
        child = branch.children[index]
    except IndexError:
        raise ValueError(f"no node at index {index} under {branch.description!r}") from None
    if not isinstance(child, BranchNode):
        raise ValueError(f"cannot register under a non-branch node at index {index}")
    return branch.with_replaced_child(index, _append_at(child, rest, node))

