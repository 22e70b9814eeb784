"""Glob pattern sets and the default-ignore merge step.

Pattern syntax (matched segment by segment on POSIX-style relative paths):
- ``*``, ``?`` and ``[...]`` match within a single path segment (fnmatch)
- ``**`` matches zero or more whole segments
- A leading ``!`` marks an exclusion when building a PatternSet from globs

Patterns are resolved once at startup into typed include/exclude sets; the
default-ignored directories and the source patterns that override them are
merged explicitly into SourcePatterns and WatchPatterns.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from watchrun.core.excludes import default_ignore_patterns, is_default_ignored

__all__ = [
    "PatternSet",
    "SourcePatterns",
    "WatchPatterns",
    "matches_any",
    "matches_glob",
    "normalize_path",
    "resolve_source_patterns",
    "resolve_watch_patterns",
]


def normalize_path(path: str) -> str:
    """Normalize separators to ``/`` and drop a leading ``./``."""
    posix = path.replace("\\", "/")
    while posix.startswith("./"):
        posix = posix[2:]
    return posix


@lru_cache(maxsize=1024)
def _split_pattern(pattern: str) -> tuple[str, ...]:
    parts = [p for p in normalize_path(pattern).split("/") if p]
    # Collapse runs of ** which would otherwise explode the search
    collapsed: list[str] = []
    for part in parts:
        if part == "**" and collapsed and collapsed[-1] == "**":
            continue
        collapsed.append(part)
    return tuple(collapsed)


def _match_segments(parts: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatch.fnmatchcase(parts[0], head) and _match_segments(parts[1:], rest)


def matches_glob(path: str, pattern: str) -> bool:
    """Check if a relative path matches a glob pattern, with ** support."""
    parts = tuple(p for p in normalize_path(path).split("/") if p)
    return _match_segments(parts, _split_pattern(pattern))


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches_glob(path, pattern) for pattern in patterns)


@dataclass(frozen=True)
class PatternSet:
    """Typed include/exclude pair.

    A path matches when it matches at least one include pattern and no
    exclude pattern.
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_globs(cls, patterns: Iterable[str]) -> PatternSet:
        """Split mixed glob strings into includes and ``!``-prefixed excludes."""
        include: list[str] = []
        exclude: list[str] = []
        for pattern in patterns:
            if pattern.startswith("!"):
                exclude.append(pattern[1:])
            else:
                include.append(pattern)
        return cls(include=tuple(include), exclude=tuple(exclude))

    def matches(self, path: str) -> bool:
        return matches_any(path, self.include) and not matches_any(path, self.exclude)

    def with_exclusions(self, patterns: Iterable[str]) -> PatternSet:
        return PatternSet(include=self.include, exclude=(*self.exclude, *patterns))


@dataclass(frozen=True)
class SourcePatterns:
    """Source patterns merged with the default-ignored directories.

    ``overrides`` holds the positive source patterns whose first segment names
    a default-ignored directory; paths they match are not ignored.
    """

    patterns: PatternSet
    ignored: tuple[str, ...]
    overrides: tuple[str, ...]

    def is_ignored(self, path: str) -> bool:
        """Check if a path sits in a default-ignored directory with no override."""
        if not matches_any(path, self.ignored):
            return False
        return not matches_any(path, self.overrides)


@dataclass(frozen=True)
class WatchPatterns:
    """What the watch service should observe.

    A path is watched when it matches an include pattern and is either not
    excluded or explicitly re-included by ``unignore``.
    """

    include: tuple[str, ...]
    exclude: tuple[str, ...]
    unignore: tuple[str, ...]

    def should_watch(self, path: str) -> bool:
        if not matches_any(path, self.include):
            return False
        if not matches_any(path, self.exclude):
            return True
        return matches_any(path, self.unignore)


def _ignore_overrides(include: Iterable[str]) -> tuple[str, ...]:
    return tuple(
        pattern for pattern in include if is_default_ignored(normalize_path(pattern).split("/")[0])
    )


def resolve_source_patterns(sources: Iterable[str], defaults: Iterable[str]) -> SourcePatterns:
    """Merge configured source globs with the defaults and default-ignores."""
    patterns = PatternSet.from_globs(sources)
    if not patterns.include:
        patterns = PatternSet(include=tuple(defaults), exclude=patterns.exclude)
    return SourcePatterns(
        patterns=patterns,
        ignored=tuple(default_ignore_patterns()),
        overrides=_ignore_overrides(patterns.include),
    )


def resolve_watch_patterns(
    files: Iterable[str],
    sources: Iterable[str],
    defaults: Iterable[str],
) -> WatchPatterns:
    """Build the include/exclude pair handed to the watch service.

    Test file patterns are always watched in addition to the sources. A test
    pattern may name a directory, so each one also covers everything below it.
    Source exclusions and the default-ignored directories are excluded, except
    where a source pattern explicitly reaches into an ignored directory.
    """
    source_set = PatternSet.from_globs(sources)
    include = source_set.include or tuple(defaults)
    test_set = PatternSet.from_globs(files)
    below_tests = tuple(f"{pattern.rstrip('/')}/**" for pattern in test_set.include)
    return WatchPatterns(
        include=(*include, *test_set.include, *below_tests),
        exclude=(*default_ignore_patterns(), *source_set.exclude),
        unignore=_ignore_overrides(source_set.include),
    )
