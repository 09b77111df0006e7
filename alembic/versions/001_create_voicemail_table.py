"""Create voicemail table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "voicemail",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("call_sid", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("from_number", sa.String(length=32), nullable=False),
        sa.Column("to_number", sa.String(length=32), nullable=False),
        sa.Column("recording_url", sa.String(length=1024), nullable=False),
        sa.Column("recording_sid", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("transcript_confidence", sa.Float(), nullable=True),
        sa.Column("job_draft", sa.JSON(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("call_sid", "user_id", name="uq_voicemail_call_sid_user_id"),
    )
    op.create_index(op.f("ix_voicemail_call_sid"), "voicemail", ["call_sid"])
    op.create_index(op.f("ix_voicemail_user_id"), "voicemail", ["user_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_voicemail_user_id"), table_name="voicemail")
    op.drop_index(op.f("ix_voicemail_call_sid"), table_name="voicemail")
    op.drop_table("voicemail")
