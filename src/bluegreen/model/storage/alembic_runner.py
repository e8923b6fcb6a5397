"""Apply the project's Alembic migrations to a cutover database."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from bluegreen.errors import ConfigurationError

logger = logging.getLogger(__name__)


def migrations_root() -> Path:
    """Directory holding ``alembic.ini`` and the ``alembic/`` script directory."""
    return Path(__file__).resolve().parents[4]


def build_alembic_config(db_path: Path, root_dir: Path | None = None) -> Config:
    """Point the migration config at ``db_path``; fail early if the migration files are gone."""
    root_dir = migrations_root() if root_dir is None else root_dir
    alembic_ini = root_dir / "alembic.ini"
    alembic_dir = root_dir / "alembic"
    if not alembic_ini.is_file():
        raise ConfigurationError(f"Alembic config not found: {alembic_ini}")
    if not alembic_dir.is_dir():
        raise ConfigurationError(f"Alembic script directory not found: {alembic_dir}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(alembic_dir))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def upgrade_head(db_path: Path, root_dir: Path | None = None) -> None:
    """Bring the SQLite database at ``db_path`` up to the latest schema revision."""
    config = build_alembic_config(db_path, root_dir)
    logger.debug("Upgrading schema of %s to head", db_path)
    command.upgrade(config, "head")
