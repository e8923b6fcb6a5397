"""Loads one named environment and asserts the shape tasks rely on."""

from __future__ import annotations

from dataclasses import dataclass

from bluegreen.errors import ConfigurationError
from bluegreen.model.models import (
    Application,
    ApplicationVm,
    Environment,
    LogicalDatabase,
    PhysicalDatabase,
)
from bluegreen.model.repository import EnvironmentRepository


@dataclass(slots=True)
class LoadedDatabase:
    """Environment with its single logical database and single physical database."""

    environment: Environment
    logical_database: LogicalDatabase
    physical_database: PhysicalDatabase


@dataclass(slots=True)
class LoadedApplication:
    """Environment with its single application vm and single application."""

    environment: Environment
    application_vm: ApplicationVm
    application: Application


class OneEnvLoader:
    """Looks up one environment by name, fresh on every call."""

    def __init__(self, repository: EnvironmentRepository, env_name: str) -> None:
        self.repository = repository
        self.env_name = env_name

    def load_environment(self) -> Environment:
        if not self.env_name:
            raise ConfigurationError("Environment name is required")
        return self.repository.find_named_env(self.env_name)

    def load_physical_database(self) -> LoadedDatabase:
        """Currently requires exactly one logical database with one physical database."""

        environment = self.load_environment()
        logical_databases = environment.logical_databases
        if len(logical_databases) != 1:
            raise ConfigurationError(
                f"Environment {environment.env_name!r} must have exactly one logical database, "
                f"found {len(logical_databases)}",
            )
        logical_database = logical_databases[0]
        if logical_database.physical_database is None:
            raise ConfigurationError(
                f"Logical database {logical_database.logical_name!r} in environment "
                f"{environment.env_name!r} has no physical database",
            )
        return LoadedDatabase(
            environment=environment,
            logical_database=logical_database,
            physical_database=logical_database.physical_database,
        )

    def load_application(self) -> LoadedApplication:
        """Currently requires exactly one application vm running one application."""

        environment = self.load_environment()
        if len(environment.application_vms) != 1:
            raise ConfigurationError(
                f"Environment {environment.env_name!r} must have exactly one application vm, "
                f"found {len(environment.application_vms)}",
            )
        application_vm = environment.application_vms[0]
        if len(application_vm.applications) != 1:
            raise ConfigurationError(
                f"Application vm {application_vm.hostname!r} must have exactly one application, "
                f"found {len(application_vm.applications)}",
            )
        return LoadedApplication(
            environment=environment,
            application_vm=application_vm,
            application=application_vm.applications[0],
        )
