"""Cross-run state folded back from execution results.

All trackers are mutated only from the single event-loop thread.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class TestDependency:
    """Source files a test file currently depends on."""

    __test__ = False  # not a pytest test class

    file: str
    sources: frozenset[str]

    def contains(self, source: str) -> bool:
        return source in self.sources


class DependencyTracker:
    """Maps test files to the source files they were last reported to load."""

    def __init__(self, is_source: Callable[[str], bool]) -> None:
        self._is_source = is_source
        self._dependencies: dict[str, TestDependency] = {}

    def update(self, file: str, dependencies: Iterable[str]) -> None:
        """Replace the dependency set of a test file.

        Non-source paths are dropped; an empty result removes the entry.
        """
        sources = frozenset(dep for dep in dependencies if self._is_source(dep))
        if not sources:
            self._dependencies.pop(file, None)
            return
        existing = self._dependencies.get(file)
        if existing is not None:
            existing.sources = sources
        else:
            self._dependencies[file] = TestDependency(file, sources)

    def clear(self, file: str) -> None:
        self._dependencies.pop(file, None)

    def traced_tests_for(self, source: str) -> list[str]:
        """All test files whose dependency set contains the source."""
        tests = [dep.file for dep in self._dependencies.values() if dep.contains(source)]
        for test in tests:
            logger.debug("dependency_traced", source=source, test=test)
        return tests

    def get(self, file: str) -> TestDependency | None:
        return self._dependencies.get(file)

    def __len__(self) -> int:
        return len(self._dependencies)


class ExclusivityTracker:
    """Test files currently known to declare an exclusive (focused) test."""

    def __init__(self) -> None:
        # dict keys keep insertion order
        self._files: dict[str, None] = {}

    def update(self, file: str, has_exclusive: bool) -> None:
        if has_exclusive:
            self._files.setdefault(file, None)
        else:
            self._files.pop(file, None)

    def clear(self, file: str) -> None:
        self.update(file, False)

    @property
    def files(self) -> list[str]:
        return list(self._files)

    def __contains__(self, file: object) -> bool:
        return file in self._files

    def __len__(self) -> int:
        return len(self._files)


@dataclass
class FailureRecord:
    """Unresolved failures of one test file, tagged with the run that found them."""

    file: str
    generation: int
    count: int = 1


class FailureTracker:
    """Failure counts per test file, used to account for stale failures."""

    def __init__(self) -> None:
        self._records: dict[str, FailureRecord] = {}

    def prune(self, file: str) -> None:
        """Forget a file's failures; it is about to produce fresh results."""
        self._records.pop(file, None)

    def count_failure(self, file: str, generation: int) -> None:
        record = self._records.get(file)
        if record is not None:
            record.count += 1
        else:
            self._records[file] = FailureRecord(file=file, generation=generation)

    def sum_failures_before(self, generation: int) -> int:
        """Total failures recorded by runs older than the given generation."""
        return sum(r.count for r in self._records.values() if r.generation < generation)

    def get(self, file: str) -> FailureRecord | None:
        return self._records.get(file)

    def __len__(self) -> int:
        return len(self._records)
