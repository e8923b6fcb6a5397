"""Classic load balancer instance health."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from bluegreen.errors import InvariantViolation


class ElbInstanceState(str, Enum):
    IN_SERVICE = "InService"
    OUT_OF_SERVICE = "OutOfService"
    UNKNOWN = "Unknown"


@dataclass(slots=True)
class ElbInstanceHealth:
    instance_id: str
    state: str
    reason_code: str = ""
    description: str = ""


class ElbClient:
    """Thin wrapper over the boto3 classic ELB client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def describe_instance_health(self, elb_name: str, ec2_instance_id: str) -> ElbInstanceHealth:
        response = self._client.describe_instance_health(
            LoadBalancerName=elb_name,
            Instances=[{"InstanceId": ec2_instance_id}],
        )
        states = response.get("InstanceStates", [])
        if len(states) != 1:
            raise InvariantViolation(
                f"Requested health of one ec2 instance '{ec2_instance_id}' from elb '{elb_name}' "
                f"but got {len(states)} results",
            )
        raw = states[0]
        return ElbInstanceHealth(
            instance_id=str(raw.get("InstanceId", "")),
            state=str(raw.get("State", "")),
            reason_code=str(raw.get("ReasonCode", "")),
            description=str(raw.get("Description", "")),
        )
