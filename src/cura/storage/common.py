"""Common helpers for storage repositories."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DatabaseError, IntegrityError
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

from cura.errors import PersistenceUnavailableError, SchemaNotProvisionedError

MIGRATION_HINT = "Run `cura db migrate` to create the task tables."

_MISSING_TABLE_MARKERS: tuple[str, ...] = ("no such table", "does not exist", "relation")


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


def to_db_datetime(value: datetime) -> datetime:
    """Naive UTC datetime as stored by SQLite."""

    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def to_utc_aware_datetime(value: datetime) -> datetime:
    """Timezone-aware UTC datetime from a stored value."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def build_sqlite_engine(*, db_path: Path, busy_timeout_ms: int) -> Engine:
    """Build SQLAlchemy engine with consistent SQLite policy."""

    db_url = f"sqlite:///{db_path}"
    engine = create_engine(
        db_url,
        connect_args={
            "check_same_thread": False,
            "timeout": max(1.0, busy_timeout_ms / 1000.0),
        },
        poolclass=NullPool,
    )
    event.listen(
        engine,
        "connect",
        lambda dbapi_connection, _: _apply_sqlite_pragmas(
            dbapi_connection,
            busy_timeout_ms=busy_timeout_ms,
        ),
    )
    return engine


@contextmanager
def storage_errors(table: str) -> Iterator[None]:
    """Translate SQLite failures (missing tables, locked or corrupt files) into persistence errors.

    Constraint violations stay SQLAlchemy errors.
    """

    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as error:
        message = str(error.orig if error.orig is not None else error).lower()
        if any(marker in message for marker in _MISSING_TABLE_MARKERS):
            raise SchemaNotProvisionedError(
                f"Table {table!r} is not provisioned. {MIGRATION_HINT}",
            ) from error
        raise PersistenceUnavailableError(f"Storage is unavailable: {message}") from error


def _apply_sqlite_pragmas(dbapi_connection: sqlite3.Connection, *, busy_timeout_ms: int) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()
