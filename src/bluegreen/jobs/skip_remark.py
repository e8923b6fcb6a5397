"""Decides whether a task should be skipped, given its prior status and the force flag.

Assumes prior status exists.  When there is no relevant prior history the task
must run, and callers should not ask here.
"""

from __future__ import annotations

from bluegreen.errors import ConfigurationError, IllegalTaskStateError
from bluegreen.jobs.models import SkipRemark, TaskHistoryView, TaskStatus

FORCE_SUFFIX = " (force=true)"
AUDIT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def make_skip_remark(prior_status: TaskStatus | None, force: bool) -> SkipRemark:
    """Makes a skip remark based on the non-null prior status and force flag."""

    if prior_status is None:
        raise ConfigurationError("Cannot decide whether to skip a task without its prior status")
    if force:
        return _make_forced(prior_status)
    return _make_no_force(prior_status)


def _make_no_force(prior_status: TaskStatus) -> SkipRemark:
    if prior_status == TaskStatus.SKIPPED:
        return SkipRemark(skip=True, remark="will skip it again")
    if prior_status == TaskStatus.DONE:
        return SkipRemark(skip=True, remark="will skip it now")
    if prior_status == TaskStatus.PROCESSING:
        return SkipRemark(
            skip=False,
            remark="must have been interrupted or timed out, will try it again now",
        )
    if prior_status == TaskStatus.ERROR:
        return SkipRemark(skip=False, remark="will try it again now")
    raise IllegalTaskStateError(f"Unexpected prior task status: {prior_status!r}")


def _make_forced(prior_status: TaskStatus) -> SkipRemark:
    if prior_status == TaskStatus.SKIPPED:
        remark = "will run it now"
    elif prior_status == TaskStatus.DONE:
        remark = "will run it again now"
    elif prior_status == TaskStatus.PROCESSING:
        remark = "must have been interrupted or timed out, will try it again now"
    elif prior_status == TaskStatus.ERROR:
        remark = "will try it again now"
    else:
        raise IllegalTaskStateError(f"Unexpected prior task status: {prior_status!r}")
    return SkipRemark(skip=False, remark=remark + FORCE_SUFFIX)


def use_remark(skip_remark: SkipRemark, prior_task_history: TaskHistoryView) -> str:
    """Summarizes prior task history and what we will do now."""

    started = prior_task_history.start_time.strftime(AUDIT_TIME_FORMAT)
    return (
        f"Prior recent task execution on {started}: "
        f"{prior_task_history.status.value}, {skip_remark.remark}"
    )
