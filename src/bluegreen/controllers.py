"""Controllers for cutover CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from bluegreen.clients.app import ApplicationClient
from bluegreen.clients.aws import make_session
from bluegreen.clients.rds import RdsClient
from bluegreen.config import Settings
from bluegreen.jobs.repository import TaskHistoryRepository
from bluegreen.jobs.runner import JobRunner
from bluegreen.model.models import Environment
from bluegreen.model.repository import EnvironmentRepository
from bluegreen.tasks.registry import TaskDependencies, build_task
from bluegreen.tasks.remote_shell import RemoteShellTask, ShellConfig


@dataclass(slots=True)
class EnvListCommand:
    """CLI input for environment listing."""

    db_path: Path | None


@dataclass(slots=True)
class RunJobCommand:
    """CLI input for one job run."""

    db_path: Path | None
    env_name: str
    task_kinds: tuple[str, ...]
    noop: bool
    force: bool
    shell_command: str | None = None
    success_regexp: str | None = None
    error_regexp: str | None = None


@dataclass(slots=True)
class HistoryCommand:
    """CLI input for task history listing."""

    db_path: Path | None
    env_name: str | None
    limit: int


@dataclass(slots=True)
class RunJobResult:
    lines: list[str]
    success: bool


class CutoverCliController:
    """Coordinates cutover command execution."""

    def list_environments(self, command: EnvListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _environment_repository(settings) as repository:
            environments = repository.find_all()
        if not environments:
            return ["No environments registered."]
        return [_format_environment(environment) for environment in environments]

    def run_job(self, command: RunJobCommand) -> RunJobResult:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        shell_config = None
        if RemoteShellTask.task_name in command.task_kinds:
            settings.validate_for_ssh()
            shell_config = ShellConfig(
                command=command.shell_command or "",
                success_regexp=command.success_regexp,
                error_regexp=command.error_regexp,
            )

        with ExitStack() as stack:
            environment_repository = stack.enter_context(_environment_repository(settings))
            history_repository = stack.enter_context(_history_repository(settings))
            application_client = stack.enter_context(ApplicationClient(settings.application))
            aws_session = make_session(settings.aws)
            dependencies = TaskDependencies(
                settings=settings,
                environment_repository=environment_repository,
                application_client_factory=lambda: application_client,
                rds_client_factory=lambda: RdsClient(aws_session.client("rds")),
            )
            tasks = [
                build_task(
                    kind,
                    position=position,
                    env_name=command.env_name,
                    dependencies=dependencies,
                    shell_config=shell_config,
                )
                for position, kind in enumerate(command.task_kinds, start=1)
            ]
            runner = JobRunner(
                tasks=tasks,
                history_repository=history_repository,
                noop=command.noop,
                force=command.force,
                history_window=timedelta(hours=settings.jobs.history_window_hours),
            )
            summary = runner.run()

        lines = [f"Job {summary.job_id} env={command.env_name} noop={command.noop}"]
        for outcome in summary.outcomes:
            line = f"  {outcome.position}. {outcome.description}: {outcome.status.value}"
            if outcome.remark:
                line += f" ({outcome.remark})"
            lines.append(line)
        not_run = len(command.task_kinds) - len(summary.outcomes)
        if not_run > 0:
            lines.append(f"  {not_run} task(s) not run after failure.")
        return RunJobResult(lines=lines, success=not summary.failed)

    def history(self, command: HistoryCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _history_repository(settings) as repository:
            rows = repository.list_recent(env_name=command.env_name, limit=command.limit)
        if not rows:
            return ["No task history."]
        return [
            f"{row.start_time.isoformat()} job={row.job_id} env={row.env_name} "
            f"#{row.position} {row.task_name}: {row.status.value}"
            for row in rows
        ]


@contextmanager
def _environment_repository(settings: Settings) -> Iterator[EnvironmentRepository]:
    repository = EnvironmentRepository(
        settings.db_path,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    try:
        repository.init_schema()
        yield repository
    finally:
        repository.close()


@contextmanager
def _history_repository(settings: Settings) -> Iterator[TaskHistoryRepository]:
    repository = TaskHistoryRepository(
        settings.db_path,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    try:
        repository.init_schema()
        yield repository
    finally:
        repository.close()


def _format_environment(environment: Environment) -> str:
    databases = []
    for logical in environment.logical_databases:
        physical = logical.physical_database
        if physical is None:
            databases.append(f"{logical.logical_name}=<none>")
        else:
            live = " LIVE" if physical.is_live else ""
            databases.append(f"{logical.logical_name}={physical.instance_name}{live}")
    hosts = [vm.hostname for vm in environment.application_vms]
    return (
        f"{environment.env_name}: databases=[{', '.join(databases)}] "
        f"vms=[{', '.join(hosts)}]"
    )
