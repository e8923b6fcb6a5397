"""RDS instance, snapshot and parameter group operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError

from bluegreen.errors import CutoverError

logger = logging.getLogger(__name__)

DEFAULT_PARAM_GROUP_PREFIX = "default."


class RdsInstanceStatus(str, Enum):
    AVAILABLE = "available"
    BACKING_UP = "backing-up"
    CREATING = "creating"
    DELETING = "deleting"
    DELETED = "deleted"
    FAILED = "failed"
    MODIFYING = "modifying"
    REBOOTING = "rebooting"


class RdsSnapshotStatus(str, Enum):
    AVAILABLE = "available"
    CREATING = "creating"
    DELETING = "deleting"
    DELETED = "deleted"


@dataclass(slots=True)
class RdsInstanceNotFoundError(CutoverError):
    code: str = "rds_instance_not_found"


@dataclass(slots=True)
class RdsSnapshotNotFoundError(CutoverError):
    code: str = "rds_snapshot_not_found"


@dataclass(slots=True)
class RdsInstance:
    """The parts of a DBInstance description that tasks look at."""

    identifier: str
    status: str
    parameter_group_names: list[str] = field(default_factory=list)
    endpoint_address: str | None = None


@dataclass(slots=True)
class RdsSnapshot:
    identifier: str
    status: str
    instance_identifier: str | None = None


class RdsClient:
    """Thin wrapper over the boto3 RDS client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def delete_instance(self, instance_name: str) -> RdsInstance:
        """Requests deletion without a final snapshot; returns the instance as of the request."""

        logger.debug("Requesting deletion of RDS instance %s", instance_name)
        try:
            response = self._client.delete_db_instance(
                DBInstanceIdentifier=instance_name,
                SkipFinalSnapshot=True,
            )
        except ClientError as error:
            if _error_code(error) == "DBInstanceNotFound":
                raise RdsInstanceNotFoundError(
                    f"RDS instance not found: {instance_name!r}",
                ) from error
            raise
        return _to_instance(response["DBInstance"])

    def describe_instance(self, instance_name: str) -> RdsInstance:
        try:
            response = self._client.describe_db_instances(DBInstanceIdentifier=instance_name)
        except ClientError as error:
            if _error_code(error) == "DBInstanceNotFound":
                raise RdsInstanceNotFoundError(
                    f"RDS instance not found: {instance_name!r}",
                ) from error
            raise
        instances = response.get("DBInstances", [])
        if not instances:
            raise RdsInstanceNotFoundError(f"RDS instance not found: {instance_name!r}")
        return _to_instance(instances[0])

    def delete_parameter_group(self, param_group_name: str) -> None:
        logger.debug("Requesting deletion of RDS parameter group %s", param_group_name)
        self._client.delete_db_parameter_group(DBParameterGroupName=param_group_name)

    def describe_snapshot(self, snapshot_id: str) -> RdsSnapshot:
        try:
            response = self._client.describe_db_snapshots(DBSnapshotIdentifier=snapshot_id)
        except ClientError as error:
            if _error_code(error) == "DBSnapshotNotFound":
                raise RdsSnapshotNotFoundError(
                    f"RDS snapshot not found: {snapshot_id!r}",
                ) from error
            raise
        snapshots = response.get("DBSnapshots", [])
        if not snapshots:
            raise RdsSnapshotNotFoundError(f"RDS snapshot not found: {snapshot_id!r}")
        return _to_snapshot(snapshots[0])

    def delete_snapshot(self, snapshot_id: str) -> RdsSnapshot:
        logger.debug("Requesting deletion of RDS snapshot %s", snapshot_id)
        response = self._client.delete_db_snapshot(DBSnapshotIdentifier=snapshot_id)
        return _to_snapshot(response["DBSnapshot"])


class RdsAnalyzer:
    """Interprets RDS descriptions."""

    def find_self_named_param_group_name(self, instance: RdsInstance) -> str | None:
        """Name of the parameter group made solely for this instance, or None.

        A group counts as dedicated when it is the instance's only parameter group and
        its name is the instance identifier, optionally followed by a dash suffix.
        Default groups never count.
        """

        if len(instance.parameter_group_names) != 1:
            return None
        name = instance.parameter_group_names[0]
        if not name or name.startswith(DEFAULT_PARAM_GROUP_PREFIX):
            return None
        lowered = name.lower()
        identifier = instance.identifier.lower()
        if lowered == identifier or lowered.startswith(identifier + "-"):
            return name
        return None


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _to_instance(raw: dict[str, Any]) -> RdsInstance:
    endpoint = raw.get("Endpoint") or {}
    return RdsInstance(
        identifier=str(raw.get("DBInstanceIdentifier", "")),
        status=str(raw.get("DBInstanceStatus", "")),
        parameter_group_names=[
            str(group["DBParameterGroupName"])
            for group in raw.get("DBParameterGroups", [])
            if group.get("DBParameterGroupName")
        ],
        endpoint_address=endpoint.get("Address"),
    )


def _to_snapshot(raw: dict[str, Any]) -> RdsSnapshot:
    return RdsSnapshot(
        identifier=str(raw.get("DBSnapshotIdentifier", "")),
        status=str(raw.get("Status", "")),
        instance_identifier=raw.get("DBInstanceIdentifier"),
    )
