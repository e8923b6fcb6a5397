"""Task contract exposed to the job runner."""

from __future__ import annotations

from typing import ClassVar, Protocol

from bluegreen.jobs.models import TaskStatus


class Task(Protocol):
    """One step of a job.  A fresh instance is made for every execution."""

    task_name: ClassVar[str]
    position: int
    env_name: str

    @property
    def description(self) -> str:
        raise NotImplementedError

    def process(self, noop: bool) -> TaskStatus:
        """Runs the task; in noop mode performs reads and checks only."""
        raise NotImplementedError


class TaskBase:
    task_name: ClassVar[str] = "task"

    def __init__(self, position: int, env_name: str) -> None:
        self.position = position
        self.env_name = env_name

    @property
    def description(self) -> str:
        return f"{self.task_name} [{self.env_name}]"


def noop_remark(noop: bool) -> str:
    return " (noop)" if noop else ""
