"""Directories ignored by default when watching and classifying sources.

Paths inside these directories are never treated as sources unless a source
pattern explicitly names a path inside one of them (e.g. ``node_modules/foo/**``).
Only top-level directories are matched; a nested ``lib/node_modules`` is
subject to the ordinary source patterns.
"""

from __future__ import annotations

DEFAULT_IGNORED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".hg",
        ".svn",
        # JavaScript/Node.js ecosystem
        "node_modules",
        "bower_components",
        "jspm_packages",
        ".nyc_output",
        ".sass-cache",
        # Python ecosystem
        "__pycache__",
        ".venv",
        "venv",
        ".tox",
        ".nox",
        ".eggs",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        "site-packages",
        "htmlcov",
        # Coverage reports
        "coverage",
    )
)


def is_default_ignored(dirname: str) -> bool:
    """Check if a top-level directory name is ignored by default."""
    return dirname in DEFAULT_IGNORED_DIRS


def default_ignore_patterns() -> list[str]:
    """Glob patterns matching everything inside a default-ignored directory."""
    return [f"{d}/**" for d in sorted(DEFAULT_IGNORED_DIRS)]
