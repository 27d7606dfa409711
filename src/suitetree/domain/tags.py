"""Tag sets attached to test leaves."""

from __future__ import annotations

from collections.abc import Iterable

TagSet = frozenset[str]

IGNORE_TAG = "suitetree.Ignore"
"""Reserved tag recorded for every test registered through the ignore path."""

EMPTY_TAGS: TagSet = frozenset()


def make_tags(tags: Iterable[str] | None = None, *, ignored: bool = False) -> TagSet:
    """Build an immutable tag set.

    Args:
        tags: Tag names; a bare string is treated as a single tag.
        ignored: Add the reserved ignore tag when True.

    Returns:
        TagSet: The frozen set of tag names.

    Raises:
        ValueError: If any tag is empty or whitespace.
    """
    if tags is None:
        names: set[str] = set()
    elif isinstance(tags, str):
        names = {tags}
    else:
        names = set(tags)
    if any(not name.strip() for name in names):
        raise ValueError("tag names must be non-empty")
    if ignored:
        names.add(IGNORE_TAG)
    return frozenset(names)
