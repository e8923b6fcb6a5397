"""SQLModel ORM tables for environments and task history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel


class EnvironmentRow(SQLModel, table=True):
    __tablename__ = "environments"  # type: ignore[bad-override]

    env_id: int | None = Field(default=None, primary_key=True)
    env_name: str = Field(unique=True, index=True)


class LogicalDatabaseRow(SQLModel, table=True):
    __tablename__ = "logical_databases"  # type: ignore[bad-override]

    logical_id: int | None = Field(default=None, primary_key=True)
    env_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("environments.env_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    logical_name: str


class PhysicalDatabaseRow(SQLModel, table=True):
    __tablename__ = "physical_databases"  # type: ignore[bad-override]

    physical_id: int | None = Field(default=None, primary_key=True)
    logical_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("logical_databases.logical_id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )
    instance_name: str
    is_live: bool = False
    db_url: str = ""
    db_username: str = ""


class ApplicationVmRow(SQLModel, table=True):
    __tablename__ = "application_vms"  # type: ignore[bad-override]

    vm_id: int | None = Field(default=None, primary_key=True)
    env_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("environments.env_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    hostname: str
    ip_address: str = ""
    ec2_instance_id: str = ""


class ApplicationRow(SQLModel, table=True):
    __tablename__ = "applications"  # type: ignore[bad-override]

    application_id: int | None = Field(default=None, primary_key=True)
    vm_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("application_vms.vm_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    scheme: str = "http"
    hostname: str
    port: int = 80
    url_path: str = ""


class TaskHistoryRow(SQLModel, table=True):
    __tablename__ = "task_history"  # type: ignore[bad-override]
    __table_args__ = (
        Index("ix_task_history_env_task_start", "env_name", "task_name", "start_time"),
    )

    task_history_id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    env_name: str
    task_name: str
    position: int
    start_time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    end_time: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    status: str = Field(index=True)
