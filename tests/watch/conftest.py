"""Fixtures for the watch tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import FakeEngine, RecordingLogger

from watchrun.watch.classifier import PathClassifier
from watchrun.watch.orchestrator import RerunOrchestrator


@pytest.fixture
def classifier() -> PathClassifier:
    return PathClassifier(
        ["test/*.py"],
        ["lib/*.py"],
        default_sources=["pyproject.toml", "**/*.py"],
        test_extensions=[".py"],
    )


@pytest.fixture
def engine(tmp_path: Path) -> FakeEngine:
    return FakeEngine(
        known_files=["test/a.py", "test/b.py", "test/c.py"],
        root=tmp_path,
    )


@pytest.fixture
def run_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def orchestrator(
    tmp_path: Path,
    classifier: PathClassifier,
    engine: FakeEngine,
    run_logger: RecordingLogger,
) -> RerunOrchestrator:
    return RerunOrchestrator(
        root=tmp_path,
        files=["test/*.py"],
        classifier=classifier,
        engine=engine,
        run_logger=run_logger,
        debounce_sec=0.01,
    )
