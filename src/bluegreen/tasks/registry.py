"""Builds a fresh task instance per execution."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from bluegreen.clients.app import ApplicationClient
from bluegreen.clients.rds import RdsClient
from bluegreen.clients.ssh import SshClient, SshTarget
from bluegreen.config import Settings
from bluegreen.errors import ConfigurationError
from bluegreen.model.env_loader import OneEnvLoader
from bluegreen.model.repository import EnvironmentRepository
from bluegreen.tasks.base import Task
from bluegreen.tasks.rds_instance_delete import RdsInstanceDeleteTask
from bluegreen.tasks.remote_shell import RemoteShellTask, ShellConfig
from bluegreen.tasks.transition import FreezeTask, ThawTask
from bluegreen.utils.waiter import WaiterParameters

TASK_KINDS = (
    FreezeTask.task_name,
    ThawTask.task_name,
    RdsInstanceDeleteTask.task_name,
    RemoteShellTask.task_name,
)


@dataclass(slots=True)
class TaskDependencies:
    """Collaborators shared by the tasks of one job."""

    settings: Settings
    environment_repository: EnvironmentRepository
    application_client_factory: Callable[[], ApplicationClient]
    rds_client_factory: Callable[[], RdsClient]
    ssh_client_factory: Callable[[], SshClient] = SshClient
    sleep: Callable[[float], None] = field(default=time.sleep)


def build_task(
    kind: str,
    *,
    position: int,
    env_name: str,
    dependencies: TaskDependencies,
    shell_config: ShellConfig | None = None,
) -> Task:
    """Makes a new task of the named kind."""

    settings = dependencies.settings
    env_loader = OneEnvLoader(dependencies.environment_repository, env_name)
    if kind in (FreezeTask.task_name, ThawTask.task_name):
        task_class = FreezeTask if kind == FreezeTask.task_name else ThawTask
        return task_class(
            position,
            env_name,
            env_loader=env_loader,
            application_client=dependencies.application_client_factory(),
            waiter_parameters=WaiterParameters.from_settings(settings.waiters.transition),
            sleep=dependencies.sleep,
        )
    if kind == RdsInstanceDeleteTask.task_name:
        return RdsInstanceDeleteTask(
            position,
            env_name,
            env_loader=env_loader,
            environment_repository=dependencies.environment_repository,
            rds_client_factory=dependencies.rds_client_factory,
            waiter_parameters=WaiterParameters.from_settings(settings.waiters.rds_instance_delete),
            sleep=dependencies.sleep,
        )
    if kind == RemoteShellTask.task_name:
        if shell_config is None:
            raise ConfigurationError("Remote shell task requires a shell command")
        return RemoteShellTask(
            position,
            env_name,
            shell_config=shell_config,
            ssh_target=SshTarget.from_settings(settings.ssh),
            ssh_client=dependencies.ssh_client_factory(),
        )
    raise ConfigurationError(
        f"Unsupported task kind: {kind!r}. Use one of {', '.join(TASK_KINDS)}.",
    )
