"""Progress checkers confirming deletion of RDS instances and snapshots.

Not-found counts as deleted: the goal state is absence.  A resource seen heading
back towards 'creating' ends the wait as a failure rather than being polled further.
"""

from __future__ import annotations

import logging

from bluegreen.clients.rds import (
    RdsClient,
    RdsInstance,
    RdsInstanceNotFoundError,
    RdsInstanceStatus,
    RdsSnapshot,
    RdsSnapshotNotFoundError,
    RdsSnapshotStatus,
)
from bluegreen.errors import InvariantViolation

logger = logging.getLogger(__name__)


class RdsInstanceDeletedProgressChecker:
    """Result is the last known instance description, or None on failure."""

    def __init__(
        self,
        instance_name: str,
        log_context: str,
        rds_client: RdsClient,
        initial_instance: RdsInstance,
    ) -> None:
        self.instance_name = instance_name
        self.log_context = log_context
        self.rds_client = rds_client
        self.initial_instance = initial_instance
        self._last_instance = initial_instance
        self._done = False
        self._result: RdsInstance | None = None

    @property
    def description(self) -> str:
        return f"RDS Instance Deletion of '{self.instance_name}'"

    def initial_check(self) -> None:
        """Judges the instance returned by the delete request itself."""

        self._check_instance(self.initial_instance)
        logger.debug(
            "%sInitial RDS instance status: %s",
            self.log_context,
            self.initial_instance.status,
        )

    def followup_check(self, wait_num: int) -> None:
        try:
            instance = self.rds_client.describe_instance(self.instance_name)
        except RdsInstanceNotFoundError:
            logger.info("%sRDS instance '%s' is gone", self.log_context, self.instance_name)
            self._finish(self._last_instance)
            return
        self._check_instance(instance)
        logger.debug(
            "%sRDS instance status after wait#%d: %s",
            self.log_context,
            wait_num,
            instance.status,
        )

    def _check_instance(self, instance: RdsInstance) -> None:
        if instance.identifier != self.instance_name:
            raise InvariantViolation(
                f"{self.log_context}We requested deletion of RDS instance '{self.instance_name}' "
                f"but RDS replied with '{instance.identifier}'",
            )
        self._last_instance = instance
        if instance.status == RdsInstanceStatus.DELETED.value:
            logger.info("%sRDS instance '%s' is deleted", self.log_context, self.instance_name)
            self._finish(instance)
        elif instance.status in {RdsInstanceStatus.CREATING.value, RdsInstanceStatus.FAILED.value}:
            logger.error(
                "%sRDS instance '%s' went to status '%s' while being deleted",
                self.log_context,
                self.instance_name,
                instance.status,
            )
            self._finish(None)

    def _finish(self, result: RdsInstance | None) -> None:
        self._done = True
        self._result = result

    def is_done(self) -> bool:
        return self._done

    def get_result(self) -> RdsInstance | None:
        return self._result

    def timeout(self) -> RdsInstance | None:
        logger.error(
            "%sRDS instance '%s' was not deleted prior to timeout, last status '%s'",
            self.log_context,
            self.instance_name,
            self._last_instance.status,
        )
        return None


class RdsSnapshotDeletedProgressChecker:
    """Result is True once the snapshot is confirmed deleted, False on failure."""

    def __init__(
        self,
        snapshot_id: str,
        log_context: str,
        rds_client: RdsClient,
        initial_snapshot: RdsSnapshot,
    ) -> None:
        self.snapshot_id = snapshot_id
        self.log_context = log_context
        self.rds_client = rds_client
        self.initial_snapshot = initial_snapshot
        self._done = False
        self._result: bool | None = None

    @property
    def description(self) -> str:
        return f"RDS Snapshot Deletion of '{self.snapshot_id}'"

    def initial_check(self) -> None:
        self._check_snapshot(self.initial_snapshot)
        logger.debug(
            "%sInitial RDS snapshot status: %s",
            self.log_context,
            self.initial_snapshot.status,
        )

    def followup_check(self, wait_num: int) -> None:
        try:
            snapshot = self.rds_client.describe_snapshot(self.snapshot_id)
        except RdsSnapshotNotFoundError:
            logger.info("%sRDS snapshot '%s' is gone", self.log_context, self.snapshot_id)
            self._finish(True)
            return
        self._check_snapshot(snapshot)
        logger.debug(
            "%sRDS snapshot status after wait#%d: %s",
            self.log_context,
            wait_num,
            snapshot.status,
        )

    def _check_snapshot(self, snapshot: RdsSnapshot) -> None:
        if snapshot.identifier != self.snapshot_id:
            raise InvariantViolation(
                f"{self.log_context}We requested deletion of RDS snapshot '{self.snapshot_id}' "
                f"but RDS replied with '{snapshot.identifier}'",
            )
        if snapshot.status == RdsSnapshotStatus.DELETED.value:
            self._finish(True)
        elif snapshot.status == RdsSnapshotStatus.CREATING.value:
            logger.error(
                "%sRDS snapshot '%s' went to status '%s' while being deleted",
                self.log_context,
                self.snapshot_id,
                snapshot.status,
            )
            self._finish(False)

    def _finish(self, result: bool) -> None:
        self._done = True
        self._result = result

    def is_done(self) -> bool:
        return self._done

    def get_result(self) -> bool | None:
        return self._result

    def timeout(self) -> bool | None:
        logger.error(
            "%sRDS snapshot '%s' was not deleted prior to timeout",
            self.log_context,
            self.snapshot_id,
        )
        return False
