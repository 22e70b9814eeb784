"""watchrun CLI - rerun affected tests on every change."""

import asyncio
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

import click

from watchrun.config.loader import load_config
from watchrun.core.errors import WatchRunError
from watchrun.core.logging import configure_logging
from watchrun.reporting.console import ConsoleRunLogger
from watchrun.watch.session import WatchSession, run_session


def _version() -> str:
    try:
        return version("watchrun")
    except PackageNotFoundError:
        return "0.0.0"


@click.command()
@click.version_option(version=_version(), prog_name="watchrun")
@click.argument(
    "path",
    default=None,
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--files", "-f", multiple=True, help="Test file pattern (repeatable, ! to exclude)")
@click.option("--sources", "-s", multiple=True, help="Source pattern (repeatable, ! to exclude)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file to use instead of .watchrun.yaml",
)
@click.option("--no-input", is_flag=True, help="Do not read rerun requests from stdin")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(
    path: Path | None,
    files: tuple[str, ...],
    sources: tuple[str, ...],
    config_path: Path | None,
    no_input: bool,
    verbose: bool,
) -> None:
    """Watch PATH and rerun the tests affected by each change.

    PATH is the project root. Defaults to the current directory.
    Type 'r' or 'rs' and press enter to rerun all tests.
    """
    root = (path or Path.cwd()).resolve()

    watch_overrides: dict[str, Any] = {}
    if files:
        watch_overrides["files"] = list(files)
    if sources:
        watch_overrides["sources"] = list(sources)
    overrides: dict[str, Any] = {"watch": watch_overrides} if watch_overrides else {}
    if verbose:
        overrides["logging"] = {"level": "DEBUG"}

    try:
        config = load_config(root, config_path=config_path, **overrides)
    except WatchRunError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(config=config.logging)

    run_logger = ConsoleRunLogger()
    session = WatchSession(
        root=root,
        config=config,
        run_logger=run_logger,
        observe_stdin=not no_input,
    )

    try:
        error = asyncio.run(run_session(session))
    except WatchRunError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        return

    run_logger.console.print(f"[red]✗[/red] {error}", highlight=False)
    raise SystemExit(1)


if __name__ == "__main__":
    cli()
