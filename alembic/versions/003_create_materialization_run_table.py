"""Create materialization_run table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "materialization_run",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("call_sid", sa.String(length=64), nullable=False),
        sa.Column("client_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("job_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("job_id", sa.Integer(), nullable=True),
        sa.Column("calendar_event_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("calendar_event_id", sa.Integer(), nullable=True),
        sa.Column("confirmation_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "call_sid", name="uq_materialization_run_user_id_call_sid"),
    )
    op.create_index(op.f("ix_materialization_run_user_id"), "materialization_run", ["user_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_materialization_run_user_id"), table_name="materialization_run")
    op.drop_table("materialization_run")
