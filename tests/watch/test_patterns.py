"""Tests for glob matching, pattern sets and the default-ignore merge step."""

from __future__ import annotations

import pytest

from watchrun.watch.patterns import (
    PatternSet,
    matches_glob,
    normalize_path,
    resolve_source_patterns,
    resolve_watch_patterns,
)


class TestNormalizePath:
    """Tests for normalize_path."""

    def test_converts_backslashes(self) -> None:
        assert normalize_path("lib\\sub\\util.py") == "lib/sub/util.py"

    def test_strips_leading_dot_slash(self) -> None:
        assert normalize_path("./lib/util.py") == "lib/util.py"

    def test_keeps_parent_traversal(self) -> None:
        assert normalize_path("../outside.py") == "../outside.py"


class TestMatchesGlob:
    """Tests for matches_glob."""

    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("test/a.py", "test/*.py", True),
            ("test/sub/a.py", "test/*.py", False),
            ("test/sub/a.py", "test/**/*.py", True),
            ("test/a.py", "test/**/*.py", True),
            ("a.py", "**/*.py", True),
            ("deep/er/a.py", "**/*.py", True),
            ("node_modules/pkg/index.py", "node_modules/**", True),
            ("lib/node_modules/pkg.py", "node_modules/**", False),
            ("test", "test", True),
            ("tests/test_x.py", "test_*.py", False),
            ("test_x.py", "test_?.py", True),
            ("lib/util.py", "lib/[ua]til.py", True),
        ],
    )
    def test_segment_semantics(self, path: str, pattern: str, expected: bool) -> None:
        """* stays within a segment, ** spans zero or more segments."""
        assert matches_glob(path, pattern) is expected

    def test_windows_separators_match(self) -> None:
        """Backslash paths match forward-slash patterns."""
        assert matches_glob("test\\unit\\a.py", "test/**/*.py")

    def test_repeated_double_star_collapses(self) -> None:
        assert matches_glob("a/b/c.py", "**/**/**/*.py")


class TestPatternSet:
    """Tests for PatternSet."""

    def test_from_globs_splits_negations(self) -> None:
        patterns = PatternSet.from_globs(["lib/**", "!lib/vendor/**", "src/*.py"])

        assert patterns.include == ("lib/**", "src/*.py")
        assert patterns.exclude == ("lib/vendor/**",)

    def test_exclusion_wins(self) -> None:
        patterns = PatternSet.from_globs(["lib/**", "!lib/vendor/**"])

        assert patterns.matches("lib/core.py")
        assert not patterns.matches("lib/vendor/dep.py")

    def test_empty_include_matches_nothing(self) -> None:
        assert not PatternSet.from_globs(["!lib/**"]).matches("src/a.py")

    def test_with_exclusions_appends(self) -> None:
        patterns = PatternSet.from_globs(["**/*.py"]).with_exclusions(["**/fixtures/**"])

        assert patterns.matches("test/a.py")
        assert not patterns.matches("test/fixtures/a.py")


class TestResolveSourcePatterns:
    """Tests for resolve_source_patterns."""

    def test_defaults_when_no_positive_pattern(self) -> None:
        resolved = resolve_source_patterns(["!build/**"], ["pyproject.toml", "**/*.py"])

        assert resolved.patterns.include == ("pyproject.toml", "**/*.py")
        assert resolved.patterns.exclude == ("build/**",)

    def test_configured_patterns_replace_defaults(self) -> None:
        resolved = resolve_source_patterns(["lib/*.py"], ["**/*.py"])

        assert resolved.patterns.include == ("lib/*.py",)

    def test_ignored_directory_without_override(self) -> None:
        resolved = resolve_source_patterns([], ["**/*.py"])

        assert resolved.is_ignored("node_modules/pkg/index.py")
        assert not resolved.is_ignored("lib/util.py")

    def test_override_reaches_into_ignored_directory(self) -> None:
        resolved = resolve_source_patterns(["**/*.py", "node_modules/mine/**"], ["**/*.py"])

        assert resolved.overrides == ("node_modules/mine/**",)
        assert not resolved.is_ignored("node_modules/mine/index.py")
        assert resolved.is_ignored("node_modules/other/index.py")


class TestResolveWatchPatterns:
    """Tests for resolve_watch_patterns."""

    def test_watches_sources_and_tests(self) -> None:
        patterns = resolve_watch_patterns(["test/*.py"], ["lib/*.py"], ["**/*.py"])

        assert patterns.should_watch("lib/util.py")
        assert patterns.should_watch("test/a.py")
        assert not patterns.should_watch("docs/index.md")

    def test_directory_test_pattern_watches_files_below(self) -> None:
        """A test entry naming a directory watches everything beneath it."""
        patterns = resolve_watch_patterns(["test", "checks/unit/"], ["lib/*.py"], [])

        assert patterns.should_watch("test/a.py")
        assert patterns.should_watch("test/nested/deep/b.py")
        assert patterns.should_watch("checks/unit/c.py")
        assert not patterns.should_watch("other/a.py")

    def test_directory_test_pattern_is_anchored_at_root(self) -> None:
        patterns = resolve_watch_patterns(["test"], [], [])

        assert not patterns.should_watch("node_modules/test/a.py")

    def test_defaults_used_without_positive_sources(self) -> None:
        patterns = resolve_watch_patterns(["test/*.py"], [], ["pyproject.toml", "**/*.py"])

        assert patterns.should_watch("pyproject.toml")
        assert patterns.should_watch("anything/module.py")

    def test_default_ignored_directories_are_not_watched(self) -> None:
        patterns = resolve_watch_patterns([], [], ["**/*.py"])

        assert not patterns.should_watch("node_modules/pkg/index.py")
        assert not patterns.should_watch(".venv/lib/site.py")

    def test_source_exclusions_are_not_watched(self) -> None:
        patterns = resolve_watch_patterns([], ["lib/**", "!lib/generated/**"], [])

        assert patterns.should_watch("lib/a.py")
        assert not patterns.should_watch("lib/generated/a.py")

    def test_override_unignores(self) -> None:
        patterns = resolve_watch_patterns([], ["node_modules/mine/**"], [])

        assert patterns.unignore == ("node_modules/mine/**",)
        assert patterns.should_watch("node_modules/mine/index.py")
