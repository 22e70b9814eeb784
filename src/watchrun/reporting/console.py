"""Rich console rendering of run boundaries and summaries."""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from watchrun.watch.models import RunStatus

# Style prefixes
_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def summarize(status: RunStatus) -> list[tuple[str, str]]:
    """Summary lines as (style key, message), most important first."""
    lines: list[tuple[str, str]] = []
    if status.fail_count:
        lines.append(("error", f"{_plural(status.fail_count, 'test')} failed"))
    if status.exception_count:
        lines.append(("error", f"{_plural(status.exception_count, 'uncaught exception')}"))
    if status.rejection_count:
        lines.append(("error", f"{_plural(status.rejection_count, 'unhandled rejection')}"))
    if status.previous_fail_count:
        lines.append(
            (
                "warning",
                f"{_plural(status.previous_fail_count, 'previous failure')} "
                "in files not run this time",
            )
        )
    if status.skip_count:
        lines.append(("warning", f"{_plural(status.skip_count, 'test')} skipped"))
    if status.pass_count or not lines:
        lines.insert(0, ("success", f"{_plural(status.pass_count, 'test')} passed"))
    return lines


@dataclass
class ConsoleRunLogger:
    """RunLogger writing to a rich Console."""

    console: Console = field(default_factory=lambda: Console(stderr=True))
    _runs: int = field(default=0, init=False)

    def clear(self) -> bool:
        """Clear the terminal. Not possible when output is not a terminal."""
        if not self.console.is_terminal:
            return False
        self.console.clear()
        return True

    def reset(self) -> None:
        self.console.show_cursor(True)

    def section(self) -> None:
        self.console.print(Rule(style="dim"))

    def start(self) -> None:
        self._runs += 1
        self.console.print(Text(f"Run {self._runs}: running tests...", style="dim cyan"))

    def finish(self, status: RunStatus) -> None:
        for style, message in summarize(status):
            self.console.print(f"{_STYLES[style]}{message}", highlight=False)
        self.console.print()
