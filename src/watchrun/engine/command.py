"""Execution engine running a test command once per test file.

Each resolved test file runs in its own subprocess, with report flags and the
file path appended to the configured command:
- ``--junitxml``: one TestResult per test case
- pytest-cov (``--cov=<root> --cov-report=xml:...``): the project files the
  test file executed, reported as its dependencies

Without a JUnit report the exit code decides a single per-file outcome:
- 0: passed
- one of skip_exit_codes: skipped (no tests collected)
- one of error_exit_codes: the runner broke, counted as an uncaught exception
- anything else: failed, with the tail of the output as the error message

Files that time out are killed and reported as errors. Without coverage no
dependencies are reported, so source changes fall back to a full rerun.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from watchrun.config.models import RunnerConfig
from watchrun.core.errors import RunError
from watchrun.engine.reports import ParsedTestCase, parse_cobertura_files, parse_junit_xml
from watchrun.watch.classifier import PathClassifier
from watchrun.watch.models import RunObserver, RunOptions, RunStatus, TestResult
from watchrun.watch.patterns import normalize_path

logger = structlog.get_logger()

JUNIT_REPORT = "junit.xml"
COVERAGE_REPORT = "coverage.xml"


def detect_python_venv(root: Path) -> Path | None:
    """Detect a Python virtual environment in the project root."""
    for venv_name in (".venv", "venv", ".env", "env"):
        venv_path = root / venv_name
        if not venv_path.is_dir():
            continue
        if (venv_path / "pyvenv.cfg").exists():
            return venv_path
        # Windows style
        if (venv_path / "Scripts" / "activate").exists():
            return venv_path
        # Unix style
        if (venv_path / "bin" / "activate").exists():
            return venv_path
    return None


def get_python_executable(root: Path) -> str:
    """Python executable for the project, preferring its venv over our own."""
    venv = detect_python_venv(root)
    if venv:
        win_python = venv / "Scripts" / "python.exe"
        if win_python.exists():
            return str(win_python)
        unix_python = venv / "bin" / "python"
        if unix_python.exists():
            return str(unix_python)
    return sys.executable


def default_command(root: Path) -> list[str]:
    return [get_python_executable(root), "-m", "pytest", "-q"]


@dataclass
class CommandEngine:
    """Runs ``command + report flags + [file]`` for every test file, sequentially."""

    root: Path
    classifier: PathClassifier
    command: list[str] = field(default_factory=lambda: [sys.executable, "-m", "pytest", "-q"])
    junit_report: bool = True
    coverage: bool | None = None  # None: use pytest-cov when importable
    timeout_sec: float = 300.0
    output_tail_lines: int = 20
    skip_exit_codes: frozenset[int] = frozenset({5})
    error_exit_codes: frozenset[int] = frozenset({2, 3, 4})

    _coverage_available: bool | None = field(default=None, init=False)

    @classmethod
    def from_config(
        cls, root: Path, classifier: PathClassifier, config: RunnerConfig
    ) -> CommandEngine:
        return cls(
            root=root,
            classifier=classifier,
            command=list(config.command) if config.command else default_command(root),
            junit_report=config.junit_report,
            coverage=config.coverage,
            timeout_sec=config.timeout_sec,
            output_tail_lines=config.output_tail_lines,
            skip_exit_codes=frozenset(config.skip_exit_codes),
            error_exit_codes=frozenset(config.error_exit_codes),
        )

    def resolve(self, entries: Sequence[str]) -> list[str]:
        """Expand files, directories and glob patterns into test files.

        Exclusion patterns (``!``-prefixed) are honored by the classifier and
        are not expanded themselves.
        """
        files: dict[str, None] = {}
        for entry in entries:
            if entry.startswith("!") or Path(entry).is_absolute():
                continue
            candidate = self.root / entry
            if candidate.is_file():
                files.setdefault(normalize_path(entry), None)
                continue
            pattern = f"{entry.rstrip('/')}/**/*" if candidate.is_dir() else entry
            for match in sorted(self.root.glob(pattern)):
                rel_path = match.relative_to(self.root).as_posix()
                if match.is_file() and self.classifier.is_test(rel_path):
                    files.setdefault(rel_path, None)
        return list(files)

    async def run(
        self,
        files: Sequence[str],
        options: RunOptions,
        observer: RunObserver,
    ) -> RunStatus:
        executable = self.command[0]
        if shutil.which(executable) is None:
            raise RunError.command_not_found(executable)

        targets = self.resolve(files)
        if options.run_only_exclusive:
            logger.debug("exclusive_filter_unsupported", engine="command")
        coverage = await self.use_coverage()

        observer.on_run_start(targets)
        status = RunStatus(files=targets)
        for target in targets:
            await self._run_file(target, observer, status, coverage=coverage)
        return status

    async def use_coverage(self) -> bool:
        """Whether test files run under pytest-cov. Detected once when not configured."""
        if self.coverage is not None:
            return self.coverage
        if self._coverage_available is None:
            self._coverage_available = await self._detect_pytest_cov()
            logger.info("coverage_detected", available=self._coverage_available)
        return self._coverage_available

    async def _detect_pytest_cov(self) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.command[0],
                "-c",
                "import pytest_cov",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                cwd=self.root,
            )
        except OSError:
            return False
        return await proc.wait() == 0

    def build_command(self, target: str, report_dir: Path, *, coverage: bool) -> list[str]:
        cmd = list(self.command)
        if self.junit_report:
            cmd.append(f"--junitxml={report_dir / JUNIT_REPORT}")
        if coverage:
            cmd.extend([f"--cov={self.root}", f"--cov-report=xml:{report_dir / COVERAGE_REPORT}"])
        cmd.append(target)
        return cmd

    async def _run_file(
        self,
        target: str,
        observer: RunObserver,
        status: RunStatus,
        *,
        coverage: bool,
    ) -> None:
        with tempfile.TemporaryDirectory(prefix="watchrun-") as tmp:
            report_dir = Path(tmp)
            # Keep coverage data out of the project tree
            env = {**os.environ, "COVERAGE_FILE": str(report_dir / ".coverage")}

            started = time.monotonic()
            proc = await asyncio.create_subprocess_exec(
                *self.build_command(target, report_dir, coverage=coverage),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=self.root,
                env=env,
            )
            try:
                stdout_bytes, _ = await asyncio.wait_for(
                    proc.communicate(), timeout=self.timeout_sec
                )
            except TimeoutError:
                proc.kill()
                await proc.wait()
                logger.warning("test_file_timeout", file=target, timeout_sec=self.timeout_sec)
                status.exception_count += 1
                observer.on_error(target)
                return

            duration_ms = (time.monotonic() - started) * 1000
            exit_code = proc.returncode
            output = stdout_bytes.decode(errors="replace")
            observer.on_stats(target, False)

            if coverage:
                self._report_dependencies(target, report_dir / COVERAGE_REPORT, observer)
            cases = self._read_cases(report_dir / JUNIT_REPORT) if self.junit_report else []

        if cases:
            self._report_cases(target, cases, observer, status)

        if exit_code in self.error_exit_codes:
            self._report_crash(target, exit_code, output, observer, status)
            return
        if cases:
            if exit_code not in (0, *self.skip_exit_codes) and not any(c.error for c in cases):
                # Non-zero exit but no failures reported: the command crashed
                self._report_crash(target, exit_code, output, observer, status)
            return
        if exit_code in self.skip_exit_codes:
            status.skip_count += 1
            return

        error: str | None = None
        if exit_code != 0:
            error = self._tail(output) or f"Command exited with code {exit_code}"
            status.fail_count += 1
        else:
            status.pass_count += 1

        observer.on_test(TestResult(file=target, title=target, error=error, duration_ms=duration_ms))

    def _read_cases(self, report: Path) -> list[ParsedTestCase]:
        if not report.exists():
            return []
        return parse_junit_xml(report.read_text(errors="replace"))

    def _report_cases(
        self,
        target: str,
        cases: list[ParsedTestCase],
        observer: RunObserver,
        status: RunStatus,
    ) -> None:
        for case in cases:
            if case.status == "skipped":
                status.skip_count += 1
                continue
            if case.error is None:
                status.pass_count += 1
            else:
                status.fail_count += 1
            observer.on_test(
                TestResult(
                    file=target,
                    title=case.title,
                    error=case.error,
                    duration_ms=case.duration_seconds * 1000,
                )
            )

    def _report_dependencies(self, target: str, report: Path, observer: RunObserver) -> None:
        if not report.exists():
            logger.debug("coverage_report_missing", file=target)
            return
        try:
            files = parse_cobertura_files(report.read_text(errors="replace"), path=str(report))
        except RunError as e:
            logger.warning("coverage_report_invalid", file=target, **e.to_dict())
            return
        observer.on_dependencies(target, files)

    def _report_crash(
        self,
        target: str,
        exit_code: int | None,
        output: str,
        observer: RunObserver,
        status: RunStatus,
    ) -> None:
        logger.warning(
            "test_command_error",
            file=target,
            exit_code=exit_code,
            output=self._tail(output),
        )
        status.exception_count += 1
        observer.on_error(target)

    def _tail(self, output: str) -> str:
        lines = output.strip().splitlines()
        return "\n".join(lines[-self.output_tail_lines :])
