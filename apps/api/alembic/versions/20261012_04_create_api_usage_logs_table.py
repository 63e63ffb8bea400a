"""Create api_usage_logs table"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261012_04"
down_revision = "20261012_03"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "api_usage_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "api_key_id",
            sa.Integer(),
            sa.ForeignKey("api_keys.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("response_time_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("request_ip", sa.String(length=45), nullable=False, server_default="unknown"),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )
    op.create_index("ix_api_usage_logs_api_key_id", "api_usage_logs", ["api_key_id"])
    op.create_index("ix_api_usage_logs_created_at", "api_usage_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_api_usage_logs_created_at", table_name="api_usage_logs")
    op.drop_index("ix_api_usage_logs_api_key_id", table_name="api_usage_logs")
    op.drop_table("api_usage_logs")
