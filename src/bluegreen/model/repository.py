"""SQLModel-backed persistence for environments."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from sqlalchemy.exc import MultipleResultsFound, NoResultFound
from sqlmodel import Session, col, select

from bluegreen.errors import ConfigurationError
from bluegreen.model.models import (
    Application,
    ApplicationVm,
    Environment,
    LogicalDatabase,
    PhysicalDatabase,
)
from bluegreen.model.storage.alembic_runner import upgrade_head
from bluegreen.model.storage.common import build_sqlite_engine, require_id
from bluegreen.model.storage.sqlmodel_models import (
    ApplicationRow,
    ApplicationVmRow,
    EnvironmentRow,
    LogicalDatabaseRow,
    PhysicalDatabaseRow,
)

logger = logging.getLogger(__name__)


class EnvironmentRepository:
    """Finds environments by name and persists changes to their databases."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        self.engine.dispose()

    def init_schema(self) -> None:
        upgrade_head(self.db_path)

    def create_environment(self, environment: Environment) -> Environment:
        """Insert a new environment with its databases and applications."""

        with Session(self.engine) as session:
            env_row = EnvironmentRow(env_name=environment.env_name)
            session.add(env_row)
            session.flush()
            env_id = require_id(env_row.env_id, "environments")
            for logical in environment.logical_databases:
                logical_row = LogicalDatabaseRow(
                    env_id=env_id,
                    logical_name=logical.logical_name,
                )
                session.add(logical_row)
                session.flush()
                logical_id = require_id(logical_row.logical_id, "logical_databases")
                if logical.physical_database is not None:
                    session.add(_physical_row(logical_id, logical.physical_database))
            for vm in environment.application_vms:
                vm_row = ApplicationVmRow(
                    env_id=env_id,
                    hostname=vm.hostname,
                    ip_address=vm.ip_address,
                    ec2_instance_id=vm.ec2_instance_id,
                )
                session.add(vm_row)
                session.flush()
                vm_id = require_id(vm_row.vm_id, "application_vms")
                for application in vm.applications:
                    session.add(
                        ApplicationRow(
                            vm_id=vm_id,
                            scheme=application.scheme,
                            hostname=application.hostname,
                            port=application.port,
                            url_path=application.url_path,
                        ),
                    )
            session.commit()
            return _load_environment(session, env_row)

    def find_named_env(self, env_name: str) -> Environment:
        """Returns the single named environment.  Raises if not found."""

        with Session(self.engine) as session:
            try:
                row = session.exec(
                    select(EnvironmentRow).where(EnvironmentRow.env_name == env_name),
                ).one()
            except NoResultFound as error:
                raise ConfigurationError(f"Environment not found: {env_name!r}") from error
            except MultipleResultsFound as error:
                raise ConfigurationError(
                    f"Environment name is not unique: {env_name!r}",
                ) from error
            return _load_environment(session, row)

    def find_named_env_allow_missing(self, env_name: str) -> Environment | None:
        """Returns the single named environment, or None if not found."""

        with Session(self.engine) as session:
            row = session.exec(
                select(EnvironmentRow).where(EnvironmentRow.env_name == env_name),
            ).one_or_none()
            if row is None:
                return None
            return _load_environment(session, row)

    def find_named_envs(self, env_names: Sequence[str]) -> list[Environment]:
        """Returns the named environments that exist."""

        if not env_names:
            return []
        with Session(self.engine) as session:
            rows = session.exec(
                select(EnvironmentRow).where(col(EnvironmentRow.env_name).in_(list(env_names))),
            ).all()
            return [_load_environment(session, row) for row in rows]

    def find_all(self) -> list[Environment]:
        with Session(self.engine) as session:
            rows = session.exec(select(EnvironmentRow).order_by(col(EnvironmentRow.env_name))).all()
            return [_load_environment(session, row) for row in rows]

    def check_if_env_names_exist(self, env_names: Sequence[str]) -> list[bool]:
        """One flag per requested name, in order."""

        found = {environment.env_name for environment in self.find_named_envs(env_names)}
        return [env_name in found for env_name in env_names]

    def update_environment(self, environment: Environment) -> None:
        """Persist database changes of one environment in a single transaction.

        A logical database whose physical database is None has its physical row deleted;
        logical databases missing from the view are deleted along with their physical rows.
        """

        if environment.env_id is None:
            raise ConfigurationError(
                f"Environment {environment.env_name!r} was not loaded from the database",
            )
        with Session(self.engine) as session:
            kept_logical_ids: set[int] = set()
            for logical in environment.logical_databases:
                if logical.logical_id is None:
                    raise ConfigurationError(
                        f"Logical database {logical.logical_name!r} was not loaded "
                        "from the database",
                    )
                kept_logical_ids.add(logical.logical_id)
                logical_row = session.get(LogicalDatabaseRow, logical.logical_id)
                if logical_row is None or logical_row.env_id != environment.env_id:
                    raise ConfigurationError(
                        f"Logical database {logical.logical_name!r} does not belong to "
                        f"environment {environment.env_name!r}",
                    )
                logical_row.logical_name = logical.logical_name
                session.add(logical_row)
                _sync_physical_database(session, logical.logical_id, logical.physical_database)

            stale_logical_rows = session.exec(
                select(LogicalDatabaseRow).where(
                    LogicalDatabaseRow.env_id == environment.env_id,
                    col(LogicalDatabaseRow.logical_id).not_in(sorted(kept_logical_ids)),
                ),
            ).all()
            for stale in stale_logical_rows:
                _sync_physical_database(session, stale.logical_id, None)
                session.delete(stale)
            session.commit()
        logger.debug("Persisted environment %s", environment.env_name)


def _sync_physical_database(
    session: Session,
    logical_id: int | None,
    physical: PhysicalDatabase | None,
) -> None:
    row = session.exec(
        select(PhysicalDatabaseRow).where(PhysicalDatabaseRow.logical_id == logical_id),
    ).one_or_none()
    if physical is None:
        if row is not None:
            session.delete(row)
        return
    if row is None:
        session.add(_physical_row(require_id(logical_id, "logical_databases"), physical))
        return
    row.instance_name = physical.instance_name
    row.is_live = physical.is_live
    row.db_url = physical.db_url
    row.db_username = physical.db_username
    session.add(row)


def _physical_row(logical_id: int, physical: PhysicalDatabase) -> PhysicalDatabaseRow:
    return PhysicalDatabaseRow(
        logical_id=logical_id,
        instance_name=physical.instance_name,
        is_live=physical.is_live,
        db_url=physical.db_url,
        db_username=physical.db_username,
    )


def _load_environment(session: Session, row: EnvironmentRow) -> Environment:
    logical_rows = session.exec(
        select(LogicalDatabaseRow)
        .where(LogicalDatabaseRow.env_id == row.env_id)
        .order_by(col(LogicalDatabaseRow.logical_id)),
    ).all()
    logical_databases: list[LogicalDatabase] = []
    for logical_row in logical_rows:
        physical_row = session.exec(
            select(PhysicalDatabaseRow).where(
                PhysicalDatabaseRow.logical_id == logical_row.logical_id,
            ),
        ).one_or_none()
        logical_databases.append(
            LogicalDatabase(
                logical_name=logical_row.logical_name,
                physical_database=(
                    _to_physical_database(physical_row) if physical_row is not None else None
                ),
                logical_id=logical_row.logical_id,
            ),
        )

    vm_rows = session.exec(
        select(ApplicationVmRow)
        .where(ApplicationVmRow.env_id == row.env_id)
        .order_by(col(ApplicationVmRow.vm_id)),
    ).all()
    application_vms: list[ApplicationVm] = []
    for vm_row in vm_rows:
        application_rows = session.exec(
            select(ApplicationRow)
            .where(ApplicationRow.vm_id == vm_row.vm_id)
            .order_by(col(ApplicationRow.application_id)),
        ).all()
        application_vms.append(
            ApplicationVm(
                hostname=vm_row.hostname,
                ip_address=vm_row.ip_address,
                ec2_instance_id=vm_row.ec2_instance_id,
                applications=[_to_application(app_row) for app_row in application_rows],
                vm_id=vm_row.vm_id,
            ),
        )

    return Environment(
        env_name=row.env_name,
        logical_databases=logical_databases,
        application_vms=application_vms,
        env_id=row.env_id,
    )


def _to_physical_database(row: PhysicalDatabaseRow) -> PhysicalDatabase:
    return PhysicalDatabase(
        instance_name=row.instance_name,
        is_live=bool(row.is_live),
        db_url=row.db_url,
        db_username=row.db_username,
        physical_id=row.physical_id,
    )


def _to_application(row: ApplicationRow) -> Application:
    return Application(
        scheme=row.scheme,
        hostname=row.hostname,
        port=row.port,
        url_path=row.url_path,
        application_id=row.application_id,
    )
