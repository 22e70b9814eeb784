"""Tests for PathClassifier."""

from __future__ import annotations

from watchrun.config.models import WatchConfig
from watchrun.watch.classifier import PathClassifier

DEFAULT_SOURCES = ["pyproject.toml", "**/*.py"]


def make_classifier(
    files: list[str],
    sources: list[str] | None = None,
    **kwargs: object,
) -> PathClassifier:
    return PathClassifier(
        files,
        sources or [],
        default_sources=DEFAULT_SOURCES,
        test_extensions=[".py"],
        **kwargs,  # type: ignore[arg-type]
    )


class TestIsTest:
    """Tests for PathClassifier.is_test."""

    def test_direct_pattern_match(self) -> None:
        classifier = make_classifier(["test/*.py"])

        assert classifier.is_test("test/a.py")
        assert not classifier.is_test("lib/a.py")

    def test_extension_must_match(self) -> None:
        classifier = make_classifier(["test/*"])

        assert classifier.is_test("test/a.py")
        assert not classifier.is_test("test/data.json")

    def test_excluded_prefix(self) -> None:
        """Files starting with the excluded prefix are helpers, not tests."""
        classifier = make_classifier(["test/*.py"])

        assert not classifier.is_test("test/_helpers.py")

    def test_custom_excluded_prefix(self) -> None:
        classifier = make_classifier(["test/*.py"], excluded_prefix="skip_")

        assert classifier.is_test("test/_private.py")
        assert not classifier.is_test("test/skip_me.py")

    def test_directory_entry_selects_files_below(self) -> None:
        """A pattern naming a directory covers every file beneath it."""
        classifier = make_classifier(["test/unit"])

        assert classifier.is_test("test/unit/a.py")
        assert classifier.is_test("test/unit/nested/deep/b.py")
        assert not classifier.is_test("test/integration/a.py")

    def test_directory_expansion_honors_exclusions(self) -> None:
        classifier = make_classifier(["test", "!test/slow/**"])

        assert classifier.is_test("test/fast/a.py")
        assert not classifier.is_test("test/slow/a.py")

    def test_default_exclusions_apply(self) -> None:
        classifier = make_classifier(["test/**/*.py"])

        assert not classifier.is_test("test/fixtures/data.py")
        assert not classifier.is_test("test/helpers/util.py")
        assert not classifier.is_test("test/conftest.py")

    def test_root_level_file_without_match(self) -> None:
        classifier = make_classifier(["test/*.py"])

        assert not classifier.is_test("a.py")

    def test_windows_separators(self) -> None:
        classifier = make_classifier(["test/**/*.py"])

        assert classifier.is_test("test\\unit\\a.py")


class TestIsSource:
    """Tests for PathClassifier.is_source."""

    def test_default_sources(self) -> None:
        classifier = make_classifier(["test/*.py"])

        assert classifier.is_source("pyproject.toml")
        assert classifier.is_source("lib/util.py")
        assert not classifier.is_source("README.md")

    def test_configured_sources_replace_defaults(self) -> None:
        classifier = make_classifier(["test/*.py"], ["lib/*.py"])

        assert classifier.is_source("lib/util.py")
        assert not classifier.is_source("pyproject.toml")
        assert not classifier.is_source("other/util.py")

    def test_source_exclusion(self) -> None:
        classifier = make_classifier(["test/*.py"], ["!lib/generated/**"])

        assert classifier.is_source("lib/util.py")
        assert not classifier.is_source("lib/generated/schema.py")

    def test_outside_root_is_never_a_source(self) -> None:
        classifier = make_classifier(["test/*.py"], ["**"])

        assert not classifier.is_source("../elsewhere/util.py")
        assert not classifier.is_source("..")

    def test_default_ignored_directory(self) -> None:
        classifier = make_classifier(["test/*.py"])

        assert not classifier.is_source("node_modules/pkg/index.py")
        assert not classifier.is_source(".venv/lib/site.py")
        assert not classifier.is_source("__pycache__/util.py")
        assert classifier.is_source("lib/node_modules/util.py")

    def test_explicit_override_of_ignored_directory(self) -> None:
        classifier = make_classifier(["test/*.py"], ["**/*.py", "node_modules/mine/**"])

        assert classifier.is_source("node_modules/mine/index.py")
        assert not classifier.is_source("node_modules/other/index.py")

    def test_path_can_be_neither(self) -> None:
        classifier = make_classifier(["test/*.py"], ["lib/*.py"])

        assert not classifier.is_test("docs/guide.md")
        assert not classifier.is_source("docs/guide.md")


class TestFromConfig:
    """Tests for PathClassifier.from_config."""

    def test_uses_watch_config(self) -> None:
        config = WatchConfig(files=["checks/*.py"], sources=["app/*.py"], excluded_prefix="x_")
        classifier = PathClassifier.from_config(config)

        assert classifier.is_test("checks/a.py")
        assert not classifier.is_test("checks/x_a.py")
        assert classifier.is_source("app/main.py")
        assert classifier.test_patterns.include == ("checks/*.py",)
