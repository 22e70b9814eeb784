"""Decide whether a changed path is a test file, a tracked source, or neither."""

from __future__ import annotations

from pathlib import PurePosixPath

from watchrun.config.models import DEFAULT_TEST_EXCLUDES, WatchConfig
from watchrun.watch.patterns import (
    PatternSet,
    SourcePatterns,
    normalize_path,
    resolve_source_patterns,
)


class PathClassifier:
    """Pure predicates over project-relative paths.

    A path can be neither a test nor a source; the watch service never
    reports such paths, and dependency reports drop them.
    """

    def __init__(
        self,
        files: list[str],
        sources: list[str],
        *,
        default_sources: list[str],
        test_extensions: list[str],
        excluded_prefix: str = "_",
    ) -> None:
        self._tests = PatternSet.from_globs(files).with_exclusions(DEFAULT_TEST_EXCLUDES)
        self._sources: SourcePatterns = resolve_source_patterns(sources, default_sources)
        self._extensions = frozenset(test_extensions)
        self._excluded_prefix = excluded_prefix

    @classmethod
    def from_config(cls, config: WatchConfig) -> PathClassifier:
        return cls(
            config.files,
            config.sources,
            default_sources=config.default_sources,
            test_extensions=config.test_extensions,
            excluded_prefix=config.excluded_prefix,
        )

    @property
    def test_patterns(self) -> PatternSet:
        return self._tests

    @property
    def source_patterns(self) -> SourcePatterns:
        return self._sources

    def is_test(self, path: str) -> bool:
        """Check if a path is a test file.

        Directory entries in the test patterns (e.g. ``test/unit``) select every
        file below them: each directory prefix of the path that matches a test
        pattern is expanded to ``<prefix>/**/*<ext>`` and the path is checked
        against those expansions, still honoring the exclusions.
        """
        rel = PurePosixPath(normalize_path(path))
        if rel.suffix not in self._extensions:
            return False
        if self._excluded_prefix and rel.name.startswith(self._excluded_prefix):
            return False

        if self._tests.matches(rel.as_posix()):
            return True

        parts = rel.parent.parts
        if not parts:
            return False

        subpaths = ["/".join(parts[: i + 1]) for i in range(len(parts))]
        recursive = tuple(
            f"{subpath}/**/*{rel.suffix}" for subpath in subpaths if self._tests.matches(subpath)
        )
        if not recursive:
            return False
        return PatternSet(include=recursive, exclude=self._tests.exclude).matches(rel.as_posix())

    def is_source(self, path: str) -> bool:
        """Check if a path is a tracked source file.

        Paths outside the project root can never be matched to a pattern and
        are never sources.
        """
        rel = normalize_path(path)
        if rel == ".." or rel.startswith("../"):
            return False
        if not self._sources.patterns.matches(rel):
            return False
        return not self._sources.is_ignored(rel)
