"""CLI entrypoint for bluegreen."""

import logging
import sys
from pathlib import Path

import rich_click as click

from bluegreen import __version__
from bluegreen.controllers import (
    CutoverCliController,
    EnvListCommand,
    HistoryCommand,
    RunJobCommand,
)
from bluegreen.tasks.registry import TASK_KINDS

click.rich_click.USE_MARKDOWN = True
CONTROLLER = CutoverCliController()


@click.group()
@click.version_option(version=__version__, prog_name="bluegreen")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log at debug level.")
def bluegreen(verbose: bool) -> None:
    """Blue-green cutover CLI."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@bluegreen.group()
def env() -> None:
    """Environment commands."""


@env.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def env_list(db_path: Path | None) -> None:
    """List registered environments with their databases and application vms."""

    _emit_lines(CONTROLLER.list_environments(EnvListCommand(db_path=db_path)))


@bluegreen.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--env", "env_name", required=True, help="Target environment name.")
@click.option(
    "--task",
    "task_kinds",
    multiple=True,
    required=True,
    type=click.Choice(TASK_KINDS),
    help="Task to run. Can be repeated; tasks run in the given order.",
)
@click.option("--noop", is_flag=True, default=False, help="Perform reads and checks only.")
@click.option("--force", is_flag=True, default=False, help="Run tasks regardless of history.")
@click.option("--shell-command", default=None, help="Command for the remote-shell task.")
@click.option("--success-regexp", default=None, help="Remote-shell output must match this.")
@click.option("--error-regexp", default=None, help="Remote-shell output must not match this.")
def run(  # noqa: PLR0913
    db_path: Path | None,
    env_name: str,
    task_kinds: tuple[str, ...],
    noop: bool,
    force: bool,
    shell_command: str | None,
    success_regexp: str | None,
    error_regexp: str | None,
) -> None:
    """Run one job: the given tasks against one environment."""

    result = CONTROLLER.run_job(
        RunJobCommand(
            db_path=db_path,
            env_name=env_name,
            task_kinds=task_kinds,
            noop=noop,
            force=force,
            shell_command=shell_command,
            success_regexp=success_regexp,
            error_regexp=error_regexp,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Job failed.")


@bluegreen.command("history")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--env", "env_name", default=None, help="Optional environment filter.")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=20,
    show_default=True,
    help="How many latest task executions to display.",
)
def history(db_path: Path | None, env_name: str | None, limit: int) -> None:
    """Show recent task executions."""

    _emit_lines(CONTROLLER.history(HistoryCommand(db_path=db_path, env_name=env_name, limit=limit)))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    bluegreen()
