from pathlib import Path

import allure
from sqlalchemy import inspect, text

from cura.queue.repository import TaskRepository
from cura.storage.alembic_runner import head_revision

pytestmark = [
    allure.epic("Task Queue"),
    allure.feature("Persistence"),
]


def test_alembic_schema_is_initialized_to_head(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path / "migrations.db")
    repository.init_schema()

    with repository.engine.connect() as connection:
        version = connection.execute(
            text("SELECT version_num FROM alembic_version LIMIT 1"),
        ).scalar_one()
        user = connection.execute(
            text("SELECT user_id FROM users WHERE user_id = 'default_user'"),
        ).scalar_one_or_none()

    assert version == "20261019_0002"
    assert user == "default_user"
    tables = set(inspect(repository.engine).get_table_names())
    assert {"users", "ai_tasks", "ai_task_events", "api_rate_limits"} <= tables
    repository.close()


def test_init_schema_is_idempotent(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path / "twice.db")
    repository.init_schema()
    repository.init_schema()

    with repository.engine.connect() as connection:
        users = connection.execute(text("SELECT COUNT(*) FROM users")).scalar_one()
    assert users == 1
    repository.close()


def test_schema_revision_tracks_head(tmp_path: Path) -> None:
    repository = TaskRepository(tmp_path / "revision.db")
    try:
        assert repository.schema_revision() is None
        repository.init_schema()
        assert repository.schema_revision() == head_revision() == "20261019_0002"
    finally:
        repository.close()
