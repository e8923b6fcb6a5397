"""Runs the tasks of one job in order, consulting and recording task history."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import uuid4

from bluegreen.jobs.models import TaskStatus
from bluegreen.jobs.repository import TaskHistoryRepository
from bluegreen.jobs.skip_remark import make_skip_remark, use_remark
from bluegreen.model.storage.common import utc_now
from bluegreen.tasks.base import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskOutcome:
    position: int
    description: str
    status: TaskStatus
    remark: str | None = None


@dataclass(slots=True)
class JobRunSummary:
    """Aggregate job outcome for CLI reporting."""

    job_id: str
    outcomes: list[TaskOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(outcome.status == TaskStatus.ERROR for outcome in self.outcomes)


class JobRunner:
    """Runs tasks one at a time; stops at the first task that ends in ERROR.

    Noop runs neither read nor write task history, so they never influence
    later skip decisions.
    """

    def __init__(
        self,
        *,
        tasks: Sequence[Task],
        history_repository: TaskHistoryRepository,
        noop: bool,
        force: bool,
        history_window: timedelta = timedelta(hours=24),
        job_id: str | None = None,
    ) -> None:
        self.tasks = tasks
        self.history_repository = history_repository
        self.noop = noop
        self.force = force
        self.history_window = history_window
        self.job_id = job_id or str(uuid4())

    def run(self) -> JobRunSummary:
        summary = JobRunSummary(job_id=self.job_id)
        for task in self.tasks:
            outcome = self._run_task(task)
            summary.outcomes.append(outcome)
            if outcome.status == TaskStatus.ERROR:
                logger.error("Task %d (%s) failed, stopping job", task.position, task.description)
                break
        return summary

    def _run_task(self, task: Task) -> TaskOutcome:
        if self.noop:
            logger.info("Task %d (%s): noop run", task.position, task.description)
            status = task.process(noop=True)
            return TaskOutcome(position=task.position, description=task.description, status=status)

        remark: str | None = None
        prior = self.history_repository.find_last_relevant(
            env_name=task.env_name,
            task_name=task.task_name,
            since=utc_now() - self.history_window,
        )
        if prior is not None:
            skip_remark = make_skip_remark(prior.status, self.force)
            remark = use_remark(skip_remark, prior)
            logger.info("Task %d (%s): %s", task.position, task.description, remark)
            if skip_remark.skip:
                self.history_repository.start_task(
                    job_id=self.job_id,
                    env_name=task.env_name,
                    task_name=task.task_name,
                    position=task.position,
                    status=TaskStatus.SKIPPED,
                )
                return TaskOutcome(
                    position=task.position,
                    description=task.description,
                    status=TaskStatus.SKIPPED,
                    remark=remark,
                )

        history = self.history_repository.start_task(
            job_id=self.job_id,
            env_name=task.env_name,
            task_name=task.task_name,
            position=task.position,
        )
        try:
            status = task.process(noop=False)
        except Exception:
            logger.exception("Task %d (%s) raised", task.position, task.description)
            self.history_repository.finish_task(
                task_history_id=history.task_history_id,
                status=TaskStatus.ERROR,
            )
            raise
        self.history_repository.finish_task(task_history_id=history.task_history_id, status=status)
        logger.info("Task %d (%s) finished: %s", task.position, task.description, status.value)
        return TaskOutcome(
            position=task.position,
            description=task.description,
            status=status,
            remark=remark,
        )
