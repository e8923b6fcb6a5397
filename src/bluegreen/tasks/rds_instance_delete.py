"""In the delete environment, deletes the RDS instance and its dedicated parameter group.

Only deletes the parameter group when it is clear that it was made specifically for
the RDS instance being deleted.

Automated deletion is DANGEROUS.  The only safety net is the "is_live" flag: only
non-live instances are ever deleted, and that check runs first, even in noop mode.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

from bluegreen.clients.rds import (
    RdsAnalyzer,
    RdsClient,
    RdsInstance,
    RdsInstanceNotFoundError,
)
from bluegreen.errors import DeletionNotConfirmedError, SafetyViolation
from bluegreen.jobs.models import TaskStatus
from bluegreen.model.env_loader import OneEnvLoader
from bluegreen.model.models import Environment, LogicalDatabase, PhysicalDatabase
from bluegreen.model.repository import EnvironmentRepository
from bluegreen.tasks.base import TaskBase, noop_remark
from bluegreen.tasks.rds_progress import RdsInstanceDeletedProgressChecker
from bluegreen.utils.waiter import Waiter, WaiterParameters

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeleteEnvContext:
    """Data model loaded at the start of one deletion run."""

    environment: Environment
    logical_database: LogicalDatabase
    physical_database: PhysicalDatabase

    def log_context(self) -> str:
        parts = [
            f"[Delete Env '{self.environment.env_name}'",
            f", {self.logical_database.logical_name}",
        ]
        if self.physical_database.instance_name.strip():
            parts.append(f" - RDS {self.physical_database.instance_name}")
        parts.append("]: ")
        return "".join(parts)


class RdsInstanceDeleteTask(TaskBase):
    task_name: ClassVar[str] = "rds-instance-delete"

    def __init__(
        self,
        position: int,
        env_name: str,
        *,
        env_loader: OneEnvLoader,
        environment_repository: EnvironmentRepository,
        rds_client_factory: Callable[[], RdsClient],
        waiter_parameters: WaiterParameters,
        rds_analyzer: RdsAnalyzer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(position, env_name)
        self.env_loader = env_loader
        self.environment_repository = environment_repository
        self.rds_client_factory = rds_client_factory
        self.waiter_parameters = waiter_parameters
        self.rds_analyzer = rds_analyzer or RdsAnalyzer()
        self._sleep = sleep

    def process(self, noop: bool) -> TaskStatus:
        """Deletes the RDS instance and its dedicated parameter group, then unregisters it.

        Leaves behind any snapshots that Amazon automatically made of the instance.
        """

        context = self.load_data_model()
        self.check_delete_database_is_not_live(context)
        if noop:
            log_context = context.log_context()
            logger.info("%sDeleting non-live target RDS instance%s", log_context, noop_remark(noop))
            logger.info("%sDeleting parameter group%s", log_context, noop_remark(noop))
            logger.info("%sUnregistering stage physical database%s", log_context, noop_remark(noop))
            return TaskStatus.NOOP

        rds_client = self.rds_client_factory()
        deleted_instance = self.delete_instance(context, rds_client)
        if deleted_instance is not None:
            self.delete_parameter_group(context, rds_client, deleted_instance)
        self.persist_model(context)
        return TaskStatus.DONE

    def load_data_model(self) -> DeleteEnvContext:
        """Requires exactly one logical database with one physical database."""

        loaded = self.env_loader.load_physical_database()
        return DeleteEnvContext(
            environment=loaded.environment,
            logical_database=loaded.logical_database,
            physical_database=loaded.physical_database,
        )

    def check_delete_database_is_not_live(self, context: DeleteEnvContext) -> None:
        """The single most important check of this task: never delete a live database."""

        if context.physical_database.is_live:
            raise SafetyViolation(
                f"{context.log_context()}Refusing to delete LIVE database "
                f"'{context.physical_database.instance_name}'",
            )

    def delete_instance(
        self,
        context: DeleteEnvContext,
        rds_client: RdsClient,
    ) -> RdsInstance | None:
        """Requests deletion of the target instance and waits for confirmed deletion.

        None when the instance was already gone, as after an interrupted earlier run;
        nothing is then known about its parameter groups.
        """

        log_context = context.log_context()
        logger.info("%sDeleting non-live target RDS instance", log_context)
        try:
            initial_instance = rds_client.delete_instance(context.physical_database.instance_name)
        except RdsInstanceNotFoundError:
            logger.warning(
                "%sRDS instance '%s' no longer exists, leaving its parameter group alone",
                log_context,
                context.physical_database.instance_name,
            )
            return None
        checker = RdsInstanceDeletedProgressChecker(
            context.physical_database.instance_name,
            log_context,
            rds_client,
            initial_instance,
        )
        logger.info("%sWaiting for instance to be deleted", log_context)
        waiter: Waiter[RdsInstance] = Waiter(self.waiter_parameters, checker, sleep=self._sleep)
        deleted_instance = waiter.wait_til_done()
        if deleted_instance is None:
            raise DeletionNotConfirmedError(f"{log_context}{checker.description} was not confirmed")
        return deleted_instance

    def delete_parameter_group(
        self,
        context: DeleteEnvContext,
        rds_client: RdsClient,
        deleted_instance: RdsInstance,
    ) -> None:
        """Deletes the parameter group if it appears to have been made solely for the instance.

        The group cannot be deleted until the dependent instance is fully deleted.
        """

        log_context = context.log_context()
        param_group_name = self.rds_analyzer.find_self_named_param_group_name(deleted_instance)
        if not param_group_name:
            logger.info(
                "%sDeleted database did not have its own special parameter group",
                log_context,
            )
            return
        logger.info(
            "%sDeleting parameter group '%s', which was used only by the deleted database",
            log_context,
            param_group_name,
        )
        rds_client.delete_parameter_group(param_group_name)

    def persist_model(self, context: DeleteEnvContext) -> None:
        """Detaches the physical database and persists the change in one transaction."""

        logger.info("%sUnregistering stage physical database", context.log_context())
        detached_logical = dataclasses.replace(context.logical_database, physical_database=None)
        detached_environment = dataclasses.replace(
            context.environment,
            logical_databases=[
                detached_logical if logical is context.logical_database else logical
                for logical in context.environment.logical_databases
            ],
        )
        self.environment_repository.update_environment(detached_environment)
