"""Domain views of persisted environment entities."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class PhysicalDatabase:
    """One database instance, e.g. an RDS instance."""

    instance_name: str
    is_live: bool
    db_url: str = ""
    db_username: str = ""
    physical_id: int | None = None


@dataclass(slots=True)
class LogicalDatabase:
    """Database role within an environment; points at its current physical database."""

    logical_name: str
    physical_database: PhysicalDatabase | None = None
    logical_id: int | None = None


@dataclass(slots=True)
class Application:
    scheme: str
    hostname: str
    port: int
    url_path: str = ""
    application_id: int | None = None

    @property
    def base_url(self) -> str:
        path = self.url_path.strip("/")
        base = f"{self.scheme}://{self.hostname}:{self.port}"
        return f"{base}/{path}" if path else base


@dataclass(slots=True)
class ApplicationVm:
    hostname: str
    ip_address: str = ""
    ec2_instance_id: str = ""
    applications: list[Application] = field(default_factory=list)
    vm_id: int | None = None


@dataclass(slots=True)
class Environment:
    """A named blue or green environment and everything registered in it."""

    env_name: str
    logical_databases: list[LogicalDatabase] = field(default_factory=list)
    application_vms: list[ApplicationVm] = field(default_factory=list)
    env_id: int | None = None
