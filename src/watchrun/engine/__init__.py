"""Execution engines."""

from watchrun.engine.command import CommandEngine

__all__ = ["CommandEngine"]
