"""Create client, job and calendar_event tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "client",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_client_user_id"), "client", ["user_id"])
    op.create_index(op.f("ix_client_phone"), "client", ["phone"])

    op.create_table(
        "job",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("call_sid", sa.String(length=64), nullable=True),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("quoted_price", sa.Float(), nullable=True),
        sa.Column("urgency", sa.String(length=16), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_job_user_id"), "job", ["user_id"])
    op.create_index(op.f("ix_job_client_id"), "job", ["client_id"])
    op.create_index(op.f("ix_job_call_sid"), "job", ["call_sid"])

    op.create_table(
        "calendar_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("job.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=512), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("reminder_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_calendar_event_user_id"), "calendar_event", ["user_id"])
    op.create_index(op.f("ix_calendar_event_job_id"), "calendar_event", ["job_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_calendar_event_job_id"), table_name="calendar_event")
    op.drop_index(op.f("ix_calendar_event_user_id"), table_name="calendar_event")
    op.drop_table("calendar_event")
    op.drop_index(op.f("ix_job_call_sid"), table_name="job")
    op.drop_index(op.f("ix_job_client_id"), table_name="job")
    op.drop_index(op.f("ix_job_user_id"), table_name="job")
    op.drop_table("job")
    op.drop_index(op.f("ix_client_phone"), table_name="client")
    op.drop_index(op.f("ix_client_user_id"), table_name="client")
    op.drop_table("client")
