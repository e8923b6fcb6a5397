"""Progress of an EC2 instance registering with an ELB and heading towards 'InService'."""

from __future__ import annotations

import logging

from bluegreen.clients.elb import ElbClient, ElbInstanceHealth, ElbInstanceState
from bluegreen.errors import InvariantViolation

logger = logging.getLogger(__name__)


class ElbInstanceHealthProgressChecker:
    def __init__(
        self,
        elb_name: str,
        ec2_instance_id: str,
        log_context: str,
        elb_client: ElbClient,
    ) -> None:
        self.elb_name = elb_name
        self.ec2_instance_id = ec2_instance_id
        self.log_context = log_context
        self.elb_client = elb_client
        self._done = False
        self._result: ElbInstanceHealth | None = None

    @property
    def description(self) -> str:
        return (
            f"ELB Instance Health for elb '{self.elb_name}', "
            f"ec2 instance '{self.ec2_instance_id}'"
        )

    def initial_check(self) -> None:
        """Same call as the followups; the registration response has no health info."""

        health = self.elb_client.describe_instance_health(self.elb_name, self.ec2_instance_id)
        self._check_instance_health(health)
        logger.debug("%sInitial ELB instance health: %s", self.log_context, health.state)

    def followup_check(self, wait_num: int) -> None:
        health = self.elb_client.describe_instance_health(self.elb_name, self.ec2_instance_id)
        self._check_instance_health(health)
        logger.debug(
            "%sELB instance health after wait#%d: %s",
            self.log_context,
            wait_num,
            health.state,
        )

    def _check_instance_health(self, health: ElbInstanceHealth) -> None:
        if health.instance_id != self.ec2_instance_id:
            raise InvariantViolation(
                f"{self.log_context}We requested health of ec2 instance id "
                f"'{self.ec2_instance_id}' but ELB replied with id '{health.instance_id}'",
            )
        if health.state == ElbInstanceState.IN_SERVICE.value:
            logger.info(
                "%sELB '%s' says ec2 instance id '%s' is now in service",
                self.log_context,
                self.elb_name,
                self.ec2_instance_id,
            )
            self._done = True
            self._result = health

    def is_done(self) -> bool:
        return self._done

    def get_result(self) -> ElbInstanceHealth | None:
        return self._result

    def timeout(self) -> ElbInstanceHealth | None:
        logger.error(
            "%sELB Instance Health failed to reach state '%s' prior to timeout",
            self.log_context,
            ElbInstanceState.IN_SERVICE.value,
        )
        return None
