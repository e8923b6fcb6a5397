"""Append-only task history persistence."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from sqlmodel import Session, col, select

from bluegreen.jobs.models import TaskHistoryView, TaskStatus
from bluegreen.model.storage.alembic_runner import upgrade_head
from bluegreen.model.storage.common import (
    build_sqlite_engine,
    require_id,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from bluegreen.model.storage.sqlmodel_models import TaskHistoryRow

RELEVANT_PRIOR_STATUSES = (
    TaskStatus.PROCESSING,
    TaskStatus.DONE,
    TaskStatus.ERROR,
    TaskStatus.SKIPPED,
)


class TaskHistoryRepository:
    """One row per task execution attempt; finalized rows are never changed."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        self.engine.dispose()

    def init_schema(self) -> None:
        upgrade_head(self.db_path)

    def start_task(
        self,
        *,
        job_id: str,
        env_name: str,
        task_name: str,
        position: int,
        status: TaskStatus = TaskStatus.PROCESSING,
        start_time: datetime | None = None,
    ) -> TaskHistoryView:
        """Record the start of a task attempt; non-PROCESSING statuses are final at once."""

        started = start_time or utc_now()
        with Session(self.engine) as session:
            row = TaskHistoryRow(
                job_id=job_id,
                env_name=env_name,
                task_name=task_name,
                position=position,
                start_time=to_db_datetime(started),
                end_time=to_db_datetime(started) if status != TaskStatus.PROCESSING else None,
                status=status.value,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_history_view(row)

    def finish_task(self, *, task_history_id: int, status: TaskStatus) -> TaskHistoryView:
        """Finalize a PROCESSING row with its outcome."""

        if status == TaskStatus.PROCESSING:
            raise ValueError("Cannot finish a task with status PROCESSING")
        with Session(self.engine) as session:
            row = session.get(TaskHistoryRow, task_history_id)
            if row is None:
                raise RuntimeError(f"Task history not found: {task_history_id}")
            if row.status != TaskStatus.PROCESSING.value:
                raise RuntimeError(
                    f"Task history {task_history_id} is already final with status={row.status}",
                )
            row.status = status.value
            row.end_time = to_db_datetime(utc_now())
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_history_view(row)

    def find_last_relevant(
        self,
        *,
        env_name: str,
        task_name: str,
        since: datetime,
    ) -> TaskHistoryView | None:
        """Latest attempt of the same task in the same environment since the given time."""

        with Session(self.engine) as session:
            row = session.exec(
                select(TaskHistoryRow)
                .where(
                    TaskHistoryRow.env_name == env_name,
                    TaskHistoryRow.task_name == task_name,
                    col(TaskHistoryRow.start_time) >= to_db_datetime(since),
                    col(TaskHistoryRow.status).in_(
                        [status.value for status in RELEVANT_PRIOR_STATUSES],
                    ),
                )
                .order_by(
                    col(TaskHistoryRow.start_time).desc(),
                    col(TaskHistoryRow.task_history_id).desc(),
                )
                .limit(1),
            ).one_or_none()
            return _to_history_view(row) if row is not None else None

    def list_recent(self, *, env_name: str | None = None, limit: int = 20) -> list[TaskHistoryView]:
        with Session(self.engine) as session:
            query = select(TaskHistoryRow)
            if env_name is not None:
                query = query.where(TaskHistoryRow.env_name == env_name)
            rows = session.exec(
                query.order_by(
                    col(TaskHistoryRow.start_time).desc(),
                    col(TaskHistoryRow.task_history_id).desc(),
                ).limit(limit),
            ).all()
            return [_to_history_view(row) for row in rows]


def _to_history_view(row: TaskHistoryRow) -> TaskHistoryView:
    return TaskHistoryView(
        task_history_id=require_id(row.task_history_id, "task_history"),
        job_id=row.job_id,
        env_name=row.env_name,
        task_name=row.task_name,
        position=row.position,
        start_time=to_utc_aware_datetime(row.start_time),
        end_time=to_utc_aware_datetime(row.end_time) if row.end_time is not None else None,
        status=TaskStatus(row.status),
    )
