"""Tests for the watchrun CLI entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from watchrun.cli.main import cli


class TestCli:
    """Tests for option handling before the session starts."""

    def test_help(self) -> None:
        """Help lists the watch options."""
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "--files" in result.output
        assert "--no-input" in result.output

    def test_version(self) -> None:
        """--version prints the program name."""
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "watchrun" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """A missing explicit config file aborts with the error code."""
        result = CliRunner().invoke(
            cli, [str(tmp_path), "--config", str(tmp_path / "missing.yaml")]
        )

        assert result.exit_code == 1
        assert "CONFIG_FILE_NOT_FOUND" in result.output

    def test_invalid_repo_config(self, tmp_path: Path) -> None:
        """An invalid repo config aborts before anything is watched."""
        (tmp_path / ".watchrun.yaml").write_text("watch:\n  debounce_sec: -5\n")

        with patch("watchrun.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            result = CliRunner().invoke(cli, [str(tmp_path)])

        assert result.exit_code == 1
        assert "CONFIG_INVALID_VALUE" in result.output

    def test_nonexistent_root(self, tmp_path: Path) -> None:
        """The project root must exist."""
        result = CliRunner().invoke(cli, [str(tmp_path / "nope")])

        assert result.exit_code == 2
