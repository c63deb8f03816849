"""User XP/level columns, outbox dispatch time, and the published-event log.

- user: total_xp, level, next_level_xp (derived from completed ledger entries)
- platform_outbox: dispatched_at, status/available_at index for the dispatcher
- event_record is replaced by habitflow_event_log, keyed by outbox message

Revision ID: 20261020_progress_and_event_log
Revises: 20261019_habitflow_initial
Create Date: 2026-10-20 09:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261020_progress_and_event_log"
down_revision = "20261019_habitflow_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("user") as batch_op:
        batch_op.add_column(sa.Column("total_xp", sa.Integer(), nullable=False, server_default="0"))
        batch_op.add_column(sa.Column("level", sa.Integer(), nullable=False, server_default="1"))
        batch_op.add_column(
            sa.Column("next_level_xp", sa.Integer(), nullable=False, server_default="100")
        )

    with op.batch_alter_table("platform_outbox") as batch_op:
        batch_op.add_column(sa.Column("dispatched_at", sa.DateTime(), nullable=True))
        batch_op.drop_index("ix_platform_outbox_user_available_at")
        batch_op.create_index(
            "ix_platform_outbox_status_available_at", ["status", "available_at"]
        )

    op.drop_table("event_record")
    op.create_table(
        "habitflow_event_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("outbox_id", sa.Integer(), nullable=True),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("habit_id", sa.Integer(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("outbox_id", name="uq_habitflow_event_log_outbox"),
    )
    op.create_index("ix_habitflow_event_log_event_type", "habitflow_event_log", ["event_type"])
    op.create_index("ix_habitflow_event_log_user_id", "habitflow_event_log", ["user_id"])
    op.create_index(
        "ix_habitflow_event_log_user_published", "habitflow_event_log", ["user_id", "published_at"]
    )
    op.create_index(
        "ix_habitflow_event_log_user_habit", "habitflow_event_log", ["user_id", "habit_id"]
    )


def downgrade() -> None:
    op.drop_table("habitflow_event_log")
    op.create_table(
        "event_record",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_event_record_event_type", "event_record", ["event_type"])
    op.create_index("ix_event_record_user_id", "event_record", ["user_id"])
    op.create_index("ix_event_record_created_at", "event_record", ["created_at"])
    op.create_index("ix_event_record_user_created_at", "event_record", ["user_id", "created_at"])
    op.create_index("ix_event_record_user_event_type", "event_record", ["user_id", "event_type"])

    with op.batch_alter_table("platform_outbox") as batch_op:
        batch_op.drop_index("ix_platform_outbox_status_available_at")
        batch_op.create_index(
            "ix_platform_outbox_user_available_at", ["user_id", "available_at"]
        )
        batch_op.drop_column("dispatched_at")

    with op.batch_alter_table("user") as batch_op:
        batch_op.drop_column("next_level_xp")
        batch_op.drop_column("level")
        batch_op.drop_column("total_xp")
