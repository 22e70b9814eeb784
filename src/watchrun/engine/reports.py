"""Runner report parsers.

Reads the two artifacts a pytest-compatible runner writes per test file:
- JUnit XML (``--junitxml``): one result per test case
- Cobertura XML (pytest-cov ``--cov-report=xml``): the project files the test
  file executed, reported to the orchestrator as its dependencies
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from watchrun.core.errors import RunError

__all__ = [
    "ParsedTestCase",
    "parse_cobertura_files",
    "parse_junit_xml",
]

CaseStatus = Literal["passed", "failed", "skipped", "error"]


@dataclass
class ParsedTestCase:
    """A single test case from a JUnit report."""

    name: str
    classname: str | None
    status: CaseStatus
    duration_seconds: float = 0.0
    message: str | None = None
    traceback: str | None = None

    @property
    def title(self) -> str:
        return f"{self.classname}.{self.name}" if self.classname else self.name

    @property
    def error(self) -> str | None:
        """Failure text for failed and errored cases, None otherwise."""
        if self.status not in ("failed", "error"):
            return None
        return self.message or self.traceback or self.status


def parse_junit_xml(content: str) -> list[ParsedTestCase]:
    """Parse JUnit XML into test cases.

    Unparsable content yields a single errored case carrying the parse error.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        return [
            ParsedTestCase(
                name="parse_error",
                classname=None,
                status="error",
                message=str(e),
            )
        ]

    suites = list(root) if root.tag == "testsuites" else [root]
    cases: list[ParsedTestCase] = []

    for suite in suites:
        for testcase in suite.findall(".//testcase"):
            failure = testcase.find("failure")
            error = testcase.find("error")
            skipped = testcase.find("skipped")

            if failure is not None:
                status: CaseStatus = "failed"
                message = failure.get("message")
                tb = failure.text
            elif error is not None:
                status = "error"
                message = error.get("message")
                tb = error.text
            elif skipped is not None:
                status = "skipped"
                message = skipped.get("message")
                tb = None
            else:
                status = "passed"
                message = None
                tb = None

            cases.append(
                ParsedTestCase(
                    name=testcase.get("name", "unknown"),
                    classname=testcase.get("classname"),
                    status=status,
                    duration_seconds=float(testcase.get("time", "0") or 0),
                    message=message,
                    traceback=tb,
                )
            )

    return cases


def _executed(element: ET.Element) -> bool:
    for line in element.iter("line"):
        hits = line.get("hits", "0")
        if hits.isdigit() and int(hits) > 0:
            return True
    return False


def parse_cobertura_files(content: str, *, path: str = "<coverage>") -> list[str]:
    """Files with at least one executed line, in report order.

    Relative filenames are resolved against the report's first ``<source>``.

    Raises:
        RunError: If the content is not a Cobertura report.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise RunError.report_invalid(path, str(e)) from e
    if root.tag != "coverage":
        raise RunError.report_invalid(path, f"unexpected root element <{root.tag}>")

    sources = [s.text.strip() for s in root.iter("source") if s.text and s.text.strip()]
    base = Path(sources[0]) if sources else None

    files: dict[str, None] = {}
    for cls in root.iter("class"):
        filename = cls.get("filename")
        if not filename or not _executed(cls):
            continue
        file_path = Path(filename)
        if not file_path.is_absolute() and base is not None:
            file_path = base / file_path
        files.setdefault(file_path.as_posix(), None)
    return list(files)
