from __future__ import annotations

import allure
import pytest

from bluegreen.clients.rds import RdsInstance, RdsInstanceNotFoundError
from bluegreen.errors import ConfigurationError, DeletionNotConfirmedError, SafetyViolation
from bluegreen.jobs.models import TaskStatus
from bluegreen.model.env_loader import OneEnvLoader
from bluegreen.model.repository import EnvironmentRepository
from bluegreen.tasks.rds_instance_delete import RdsInstanceDeleteTask
from bluegreen.utils.waiter import WaiterParameters
from fakes import FakeRdsClient, RecordingSleeper, make_environment

pytestmark = [
    allure.epic("Cutover Tasks"),
    allure.feature("RDS Instance Deletion"),
]


def _instance(status: str, parameter_groups: list[str] | None = None) -> RdsInstance:
    return RdsInstance(
        identifier="stage-db",
        status=status,
        parameter_group_names=["stage-db-params"] if parameter_groups is None else parameter_groups,
    )


def _task(
    environment_repository: EnvironmentRepository,
    rds_client: FakeRdsClient,
    *,
    factory_calls: list[int] | None = None,
    max_num_waits: int = 5,
) -> RdsInstanceDeleteTask:
    def rds_client_factory() -> FakeRdsClient:
        if factory_calls is not None:
            factory_calls.append(1)
        return rds_client

    return RdsInstanceDeleteTask(
        2,
        "stage",
        env_loader=OneEnvLoader(environment_repository, "stage"),
        environment_repository=environment_repository,
        rds_client_factory=rds_client_factory,  # type: ignore[arg-type]
        waiter_parameters=WaiterParameters(1.0, max_num_waits),
        sleep=RecordingSleeper(),
    )


def test_live_database_is_refused_before_any_remote_call(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage", is_live=True))
    rds_client = FakeRdsClient(delete_response=_instance("deleting"))
    factory_calls: list[int] = []

    with pytest.raises(SafetyViolation, match="Refusing to delete LIVE database 'stage-db'"):
        _task(environment_repository, rds_client, factory_calls=factory_calls).process(noop=False)

    assert factory_calls == []
    assert rds_client.delete_instance_calls == []
    physical = environment_repository.find_named_env("stage").logical_databases[0].physical_database
    assert physical is not None
    assert physical.is_live is True


def test_live_database_is_refused_in_noop_too(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage", is_live=True))

    with pytest.raises(SafetyViolation):
        _task(environment_repository, FakeRdsClient()).process(noop=True)


def test_noop_makes_no_remote_calls_and_changes_nothing(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(delete_response=_instance("deleting"))
    factory_calls: list[int] = []

    status = _task(environment_repository, rds_client, factory_calls=factory_calls).process(
        noop=True,
    )

    assert status == TaskStatus.NOOP
    assert factory_calls == []
    assert rds_client.delete_instance_calls == []
    assert environment_repository.find_named_env("stage").logical_databases[0].physical_database


def test_deletes_instance_and_self_named_parameter_group_then_detaches(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(
        delete_response=_instance("deleting"),
        describe_instance_responses=[_instance("deleting"), RdsInstanceNotFoundError("gone")],
    )

    status = _task(environment_repository, rds_client).process(noop=False)

    assert status == TaskStatus.DONE
    assert rds_client.delete_instance_calls == ["stage-db"]
    assert rds_client.describe_instance_calls == ["stage-db", "stage-db"]
    assert rds_client.delete_parameter_group_calls == ["stage-db-params"]
    environment = environment_repository.find_named_env("stage")
    assert [logical.logical_name for logical in environment.logical_databases] == ["main"]
    assert environment.logical_databases[0].physical_database is None
    assert len(environment.application_vms) == 1


def test_already_deleted_instance_is_unregistered_on_rerun(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(delete_response=RdsInstanceNotFoundError("gone"))

    status = _task(environment_repository, rds_client).process(noop=False)

    assert status == TaskStatus.DONE
    assert rds_client.delete_instance_calls == ["stage-db"]
    assert rds_client.describe_instance_calls == []
    assert rds_client.delete_parameter_group_calls == []
    environment = environment_repository.find_named_env("stage")
    assert environment.logical_databases[0].physical_database is None


@pytest.mark.parametrize(
    "parameter_groups",
    [
        ["default.mysql8.0"],
        ["shared-params"],
        ["stage-db-params", "other"],
        [],
    ],
)
def test_parameter_group_kept_unless_dedicated(
    environment_repository: EnvironmentRepository,
    parameter_groups: list[str],
) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(delete_response=_instance("deleted", parameter_groups))

    status = _task(environment_repository, rds_client).process(noop=False)

    assert status == TaskStatus.DONE
    assert rds_client.delete_parameter_group_calls == []
    environment = environment_repository.find_named_env("stage")
    assert environment.logical_databases[0].physical_database is None


def test_unconfirmed_deletion_raises_and_keeps_registration(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(
        delete_response=_instance("deleting"),
        describe_instance_responses=[_instance("deleting")],
    )

    with pytest.raises(DeletionNotConfirmedError):
        _task(environment_repository, rds_client, max_num_waits=2).process(noop=False)

    assert rds_client.delete_parameter_group_calls == []
    physical = environment_repository.find_named_env("stage").logical_databases[0].physical_database
    assert physical is not None
    assert physical.instance_name == "stage-db"


def test_instance_turning_to_failed_raises(environment_repository: EnvironmentRepository) -> None:
    environment_repository.create_environment(make_environment("stage"))
    rds_client = FakeRdsClient(
        delete_response=_instance("deleting"),
        describe_instance_responses=[_instance("failed")],
    )

    with pytest.raises(DeletionNotConfirmedError):
        _task(environment_repository, rds_client).process(noop=False)


def test_requires_exactly_one_logical_database(
    environment_repository: EnvironmentRepository,
) -> None:
    environment_repository.create_environment(
        make_environment("stage", logical_names=("main", "reports")),
    )
    rds_client = FakeRdsClient(delete_response=_instance("deleting"))

    with pytest.raises(ConfigurationError, match="exactly one logical database"):
        _task(environment_repository, rds_client).process(noop=True)

    assert rds_client.delete_instance_calls == []


def test_requires_physical_database(environment_repository: EnvironmentRepository) -> None:
    environment = make_environment("stage")
    environment.logical_databases[0].physical_database = None
    environment_repository.create_environment(environment)

    with pytest.raises(ConfigurationError, match="has no physical database"):
        _task(environment_repository, FakeRdsClient()).process(noop=True)
