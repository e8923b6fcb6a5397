from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import ClassVar

import allure
import pytest

from bluegreen.jobs.models import TaskStatus
from bluegreen.jobs.repository import TaskHistoryRepository
from bluegreen.jobs.runner import JobRunner
from bluegreen.jobs.skip_remark import make_skip_remark, use_remark
from bluegreen.model.storage.common import utc_now
from bluegreen.tasks.base import TaskBase

pytestmark = [
    allure.epic("Job Runner"),
    allure.feature("Task History"),
]


class ScriptedTask(TaskBase):
    task_name: ClassVar[str] = "scripted"

    def __init__(
        self,
        position: int,
        env_name: str,
        status: TaskStatus | Exception,
        task_name: str = "scripted",
    ) -> None:
        super().__init__(position, env_name)
        self.task_name = task_name  # type: ignore[misc]
        self.status = status
        self.calls: list[bool] = []

    def process(self, noop: bool) -> TaskStatus:
        self.calls.append(noop)
        if isinstance(self.status, Exception):
            raise self.status
        return TaskStatus.NOOP if noop else self.status


def _runner(
    history_repository: TaskHistoryRepository,
    tasks: list[ScriptedTask],
    *,
    noop: bool = False,
    force: bool = False,
) -> JobRunner:
    return JobRunner(
        tasks=tasks,
        history_repository=history_repository,
        noop=noop,
        force=force,
        job_id="job-1",
    )


def test_history_start_and_finish(history_repository: TaskHistoryRepository) -> None:
    started = history_repository.start_task(
        job_id="job-1",
        env_name="stage",
        task_name="freeze",
        position=1,
    )

    assert started.status == TaskStatus.PROCESSING
    assert started.end_time is None
    assert started.start_time.tzinfo is not None

    finished = history_repository.finish_task(
        task_history_id=started.task_history_id,
        status=TaskStatus.DONE,
    )

    assert finished.status == TaskStatus.DONE
    assert finished.end_time is not None
    with pytest.raises(RuntimeError, match="already final"):
        history_repository.finish_task(
            task_history_id=started.task_history_id,
            status=TaskStatus.ERROR,
        )
    with pytest.raises(ValueError, match="PROCESSING"):
        history_repository.finish_task(
            task_history_id=started.task_history_id,
            status=TaskStatus.PROCESSING,
        )


def test_find_last_relevant_honours_window_and_ignores_noop(
    history_repository: TaskHistoryRepository,
) -> None:
    now = utc_now()
    history_repository.start_task(
        job_id="old",
        env_name="stage",
        task_name="freeze",
        position=1,
        status=TaskStatus.DONE,
        start_time=now - timedelta(hours=30),
    )
    recent = history_repository.start_task(
        job_id="recent",
        env_name="stage",
        task_name="freeze",
        position=1,
        status=TaskStatus.ERROR,
        start_time=now - timedelta(hours=2),
    )
    history_repository.start_task(
        job_id="noop",
        env_name="stage",
        task_name="freeze",
        position=1,
        status=TaskStatus.NOOP,
        start_time=now - timedelta(hours=1),
    )

    found = history_repository.find_last_relevant(
        env_name="stage",
        task_name="freeze",
        since=now - timedelta(hours=24),
    )

    assert found is not None
    assert found.task_history_id == recent.task_history_id
    assert history_repository.find_last_relevant(
        env_name="stage",
        task_name="thaw",
        since=now - timedelta(hours=24),
    ) is None
    assert history_repository.find_last_relevant(
        env_name="stage",
        task_name="freeze",
        since=now - timedelta(hours=1, minutes=30),
    ) is None


def test_first_run_records_done(history_repository: TaskHistoryRepository) -> None:
    task = ScriptedTask(1, "stage", TaskStatus.DONE)

    summary = _runner(history_repository, [task]).run()

    assert [outcome.status for outcome in summary.outcomes] == [TaskStatus.DONE]
    assert summary.outcomes[0].remark is None
    assert summary.failed is False
    assert task.calls == [False]
    rows = history_repository.list_recent(env_name="stage")
    assert [row.status for row in rows] == [TaskStatus.DONE]
    assert rows[0].job_id == "job-1"


def test_recent_done_task_is_skipped_and_recorded(
    history_repository: TaskHistoryRepository,
) -> None:
    _runner(history_repository, [ScriptedTask(1, "stage", TaskStatus.DONE)]).run()
    task = ScriptedTask(1, "stage", TaskStatus.DONE)

    summary = _runner(history_repository, [task]).run()

    assert task.calls == []
    assert summary.outcomes[0].status == TaskStatus.SKIPPED
    assert summary.outcomes[0].remark is not None
    assert summary.outcomes[0].remark.endswith(": DONE, will skip it now")
    assert [row.status for row in history_repository.list_recent()] == [
        TaskStatus.SKIPPED,
        TaskStatus.DONE,
    ]


def test_force_runs_task_again(history_repository: TaskHistoryRepository) -> None:
    _runner(history_repository, [ScriptedTask(1, "stage", TaskStatus.DONE)]).run()
    task = ScriptedTask(1, "stage", TaskStatus.DONE)

    summary = _runner(history_repository, [task], force=True).run()

    assert task.calls == [False]
    assert summary.outcomes[0].status == TaskStatus.DONE
    assert summary.outcomes[0].remark is not None
    assert summary.outcomes[0].remark.endswith("will run it again now (force=true)")


def test_prior_error_is_retried_without_force(history_repository: TaskHistoryRepository) -> None:
    _runner(history_repository, [ScriptedTask(1, "stage", TaskStatus.ERROR)]).run()
    task = ScriptedTask(1, "stage", TaskStatus.DONE)

    summary = _runner(history_repository, [task]).run()

    assert task.calls == [False]
    assert summary.outcomes[0].status == TaskStatus.DONE


def test_error_stops_job(history_repository: TaskHistoryRepository) -> None:
    first = ScriptedTask(1, "stage", TaskStatus.ERROR, task_name="freeze")
    second = ScriptedTask(2, "stage", TaskStatus.DONE, task_name="thaw")

    summary = _runner(history_repository, [first, second]).run()

    assert summary.failed is True
    assert [outcome.status for outcome in summary.outcomes] == [TaskStatus.ERROR]
    assert second.calls == []


def test_exception_finalizes_history_as_error_and_propagates(
    history_repository: TaskHistoryRepository,
) -> None:
    task = ScriptedTask(1, "stage", RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        _runner(history_repository, [task]).run()

    assert [row.status for row in history_repository.list_recent()] == [TaskStatus.ERROR]


def test_noop_neither_reads_nor_writes_history(history_repository: TaskHistoryRepository) -> None:
    _runner(history_repository, [ScriptedTask(1, "stage", TaskStatus.DONE)]).run()
    task = ScriptedTask(1, "stage", TaskStatus.DONE)

    summary = _runner(history_repository, [task], noop=True).run()

    assert task.calls == [True]
    assert summary.outcomes[0].status == TaskStatus.NOOP
    assert len(history_repository.list_recent()) == 1


def test_history_is_scoped_per_environment(history_repository: TaskHistoryRepository) -> None:
    _runner(history_repository, [ScriptedTask(1, "stage", TaskStatus.DONE)]).run()
    task = ScriptedTask(1, "other", TaskStatus.DONE)

    summary = _runner(history_repository, [task]).run()

    assert task.calls == [False]
    assert summary.outcomes[0].status == TaskStatus.DONE


def test_audit_line_for_recorded_history_has_no_offset(
    history_repository: TaskHistoryRepository,
) -> None:
    started = history_repository.start_task(
        job_id="job-0",
        env_name="stage",
        task_name="freeze",
        position=1,
        start_time=datetime(2024, 1, 1, tzinfo=UTC),
    )
    history_repository.finish_task(task_history_id=started.task_history_id, status=TaskStatus.DONE)
    prior = history_repository.find_last_relevant(
        env_name="stage",
        task_name="freeze",
        since=datetime(2023, 12, 31, tzinfo=UTC),
    )

    assert prior is not None
    assert use_remark(make_skip_remark(prior.status, False), prior) == (
        "Prior recent task execution on 2024-01-01T00:00:00: DONE, will skip it now"
    )
