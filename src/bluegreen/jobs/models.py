"""Task outcome states and task history views."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TaskStatus(str, Enum):
    """Outcome of one task execution attempt."""

    PROCESSING = "PROCESSING"
    DONE = "DONE"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"
    NOOP = "NOOP"


@dataclass(slots=True)
class SkipRemark:
    """Whether to skip a task, with the explanation shown to the operator."""

    skip: bool
    remark: str


@dataclass(slots=True)
class TaskHistoryView:
    """One recorded task execution attempt."""

    task_history_id: int
    job_id: str
    env_name: str
    task_name: str
    position: int
    start_time: datetime
    end_time: datetime | None
    status: TaskStatus
