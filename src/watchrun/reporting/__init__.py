"""Run output rendering."""

from watchrun.reporting.console import ConsoleRunLogger, summarize

__all__ = ["ConsoleRunLogger", "summarize"]
