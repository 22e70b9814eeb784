"""Manual rerun trigger read from a line-oriented input stream (stdin)."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger()

RERUN_COMMANDS: frozenset[str] = frozenset({"r", "rs"})


def is_rerun_command(line: str) -> bool:
    return line.strip().lower() in RERUN_COMMANDS


async def open_stdin_reader() -> asyncio.StreamReader | None:
    """Wrap stdin in an asyncio StreamReader.

    Returns None when stdin cannot be read asynchronously, e.g. when it is
    redirected from a regular file or closed.
    """
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    try:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    except (ValueError, OSError) as e:
        logger.info("stdin_not_observable", error=str(e))
        return None
    return reader


async def observe_input(
    reader: asyncio.StreamReader,
    on_rerun: Callable[[], Awaitable[None]],
) -> None:
    """Request a full rerun for every ``r`` / ``rs`` line until EOF.

    All other input is ignored.
    """
    while True:
        raw = await reader.readline()
        if not raw:
            logger.debug("trigger_input_closed")
            return
        line = raw.decode("utf-8", errors="replace")
        if not is_rerun_command(line):
            continue
        await on_rerun()
