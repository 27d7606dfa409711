"""Tag-based include/exclude decisions for a run."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from suitetree.domain.nodes import TestLeaf
from suitetree.domain.registry import Registry
from suitetree.domain.tags import EMPTY_TAGS, TagSet, make_tags


class Verdict(enum.Enum):
    """What a run does with one test."""

    RUN = "run"
    IGNORE = "ignore"  # reported as ignored, body not invoked
    SKIP = "skip"  # filtered out silently


@dataclass(frozen=True, slots=True)
class Filter:
    """Include/exclude tag sets applied to every test of a full run.

    An empty include set makes every test include-eligible. The exclude set
    always applies and wins over the include set. Ignored tests are reported
    as ignored whatever the tag sets say.
    """

    tags_to_include: TagSet = EMPTY_TAGS
    tags_to_exclude: TagSet = EMPTY_TAGS

    @classmethod
    def of(
        cls,
        tags_to_include: Iterable[str] | None = None,
        tags_to_exclude: Iterable[str] | None = None,
    ) -> Filter:
        """Build a filter from any iterables of tag names."""
        return cls(make_tags(tags_to_include), make_tags(tags_to_exclude))

    def verdict(self, leaf: TestLeaf) -> Verdict:
        """Decide whether ``leaf`` runs, is reported ignored, or is skipped."""
        if leaf.ignored:
            return Verdict.IGNORE
        if self.tags_to_include and self.tags_to_include.isdisjoint(leaf.tags):
            return Verdict.SKIP
        if not self.tags_to_exclude.isdisjoint(leaf.tags):
            return Verdict.SKIP
        return Verdict.RUN

    def runnable_test_count(self, registry: Registry) -> int:
        """Number of tests in ``registry`` a full run would invoke."""
        return sum(
            1
            for name in registry.test_names()
            if self.verdict(registry.lookup(name)) is Verdict.RUN
        )
