"""Run the Alembic migrations that live next to the package sources."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

_ROOT_DIR = Path(__file__).resolve().parents[3]


def _config(db_path: Path | None = None) -> Config:
    config = Config(str(_ROOT_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(_ROOT_DIR / "alembic"))
    if db_path is not None:
        config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return config


def upgrade_head(db_path: Path) -> None:
    """Apply Alembic migrations up to head for the given SQLite database."""

    command.upgrade(_config(db_path), "head")


def head_revision() -> str | None:
    """Newest migration revision shipped with the package."""

    return ScriptDirectory.from_config(_config()).get_current_head()


def schema_revision(engine: Engine) -> str | None:
    """Revision the database is stamped with; None before the first migration."""

    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()
