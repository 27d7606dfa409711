"""Tree nodes held by the registry.

Nodes are immutable. A node's position is addressed by a *path*: the tuple of
child indexes leading from the root branch to it. The parent of a node at path
``p`` is the branch at ``p[:-1]``; the root is the branch at ``()``.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from suitetree.domain.tags import EMPTY_TAGS, TagSet

Path: TypeAlias = tuple[int, ...]
ROOT_PATH: Path = ()


@dataclass(frozen=True, slots=True)
class SourceRef:
    """Where a node was registered; used to point error messages at the call site."""

    file_name: str
    line: int
    function: str | None = None

    def __str__(self) -> str:
        return f"{self.file_name}:{self.line}"


def locate_caller(depth: int = 1) -> SourceRef | None:
    """Return the source location ``depth`` frames above the caller.

    Args:
        depth: Number of frames to skip above the function calling this one.
            ``1`` is the caller's caller.

    Returns:
        SourceRef | None: The location, or None if the stack is not that deep.
    """
    try:
        frame = sys._getframe(depth + 1)  # pylint: disable=protected-access
    except ValueError:
        return None
    code = frame.f_code
    return SourceRef(code.co_filename, frame.f_lineno, code.co_name)


@dataclass(frozen=True, slots=True)
class TestLeaf:
    """A single executable test.

    Notes:
      - ``name`` is the composed name, the test's only identity.
      - ``text`` is the leaf's own text as registered.
      - ``body`` accepts either no arguments or the fixture value.
    """

    __test__ = False  # not a pytest test class

    name: str
    text: str
    body: Callable[..., Any]
    tags: TagSet = EMPTY_TAGS
    ignored: bool = False
    location: SourceRef | None = None


@dataclass(frozen=True, slots=True)
class InfoLeaf:
    """An informational message recorded during registration."""

    message: str
    payload: Any = None
    location: SourceRef | None = None


@dataclass(frozen=True, slots=True)
class BranchNode:
    """A named scope grouping nested branches, tests and infos.

    ``child_prefix`` is inserted between this branch's description and the
    text of every descendant when composing test names (e.g. ``"should"``).
    """

    description: str
    children: tuple[Node, ...] = field(default=())
    child_prefix: str | None = None
    location: SourceRef | None = None

    def with_child(self, child: Node) -> BranchNode:
        """Return a copy of this branch with ``child`` appended."""
        return BranchNode(
            description=self.description,
            children=(*self.children, child),
            child_prefix=self.child_prefix,
            location=self.location,
        )

    def with_replaced_child(self, index: int, child: Node) -> BranchNode:
        """Return a copy of this branch with the child at ``index`` replaced."""
        children = list(self.children)
        children[index] = child
        return BranchNode(
            description=self.description,
            children=tuple(children),
            child_prefix=self.child_prefix,
            location=self.location,
        )

    @property
    def name_parts(self) -> tuple[str, ...]:
        """Fragments this branch contributes to descendant names."""
        parts = (self.description,) if self.description else ()
        if self.child_prefix:
            parts = (*parts, self.child_prefix)
        return parts


Node: TypeAlias = BranchNode | TestLeaf | InfoLeaf
