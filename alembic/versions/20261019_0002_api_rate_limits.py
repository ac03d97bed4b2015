"""Add monthly per-user API rate limit buckets."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "api_rate_limits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("api_type", sa.String(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("call_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "api_type",
            "period_start",
            name="uq_api_rate_limits_bucket",
        ),
    )
    op.create_index("ix_api_rate_limits_user_id", "api_rate_limits", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_api_rate_limits_user_id", table_name="api_rate_limits")
    op.drop_table("api_rate_limits")
