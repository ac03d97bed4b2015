"""Create users, AI task queue, and task event tables."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_display_name", "users", ["display_name"], unique=False)

    op.create_table(
        "ai_tasks",
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), server_default="default_user", nullable=False),
        sa.Column("mode", sa.String(), nullable=False),
        sa.Column("job_title", sa.String(), nullable=False),
        sa.Column("company", sa.String(), nullable=False),
        sa.Column("job_description", sa.Text(), nullable=False),
        sa.Column("resume_data_json", sa.Text(), nullable=True),
        sa.Column("preferences_json", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("result_json", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index("ix_ai_tasks_user_id", "ai_tasks", ["user_id"], unique=False)
    op.create_index("ix_ai_tasks_mode", "ai_tasks", ["mode"], unique=False)
    op.create_index("ix_ai_tasks_status", "ai_tasks", ["status"], unique=False)
    op.create_index(
        "idx_ai_tasks_scope_status_time",
        "ai_tasks",
        ["user_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "ai_task_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), server_default="default_user", nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("status_from", sa.String(), nullable=True),
        sa.Column("status_to", sa.String(), nullable=True),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["ai_tasks.task_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ai_task_events_task_id", "ai_task_events", ["task_id"], unique=False)
    op.create_index("ix_ai_task_events_user_id", "ai_task_events", ["user_id"], unique=False)
    op.create_index(
        "ix_ai_task_events_event_type",
        "ai_task_events",
        ["event_type"],
        unique=False,
    )
    op.create_index(
        "idx_ai_task_events_task_time",
        "ai_task_events",
        ["task_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_ai_task_events_task_time", table_name="ai_task_events")
    op.drop_index("ix_ai_task_events_event_type", table_name="ai_task_events")
    op.drop_index("ix_ai_task_events_user_id", table_name="ai_task_events")
    op.drop_index("ix_ai_task_events_task_id", table_name="ai_task_events")
    op.drop_table("ai_task_events")
    op.drop_index("idx_ai_tasks_scope_status_time", table_name="ai_tasks")
    op.drop_index("ix_ai_tasks_status", table_name="ai_tasks")
    op.drop_index("ix_ai_tasks_mode", table_name="ai_tasks")
    op.drop_index("ix_ai_tasks_user_id", table_name="ai_tasks")
    op.drop_table("ai_tasks")
    op.drop_index("ix_users_display_name", table_name="users")
    op.drop_table("users")
