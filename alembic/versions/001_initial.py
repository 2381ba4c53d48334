"""Initial schema: accounts and history_entries.

Tables may already exist because app startup runs Base.metadata.create_all;
each table is only created when missing so upgrade head is safe either way.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    if not _has_table("accounts"):
        op.create_table(
            "accounts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("hashed_password", sa.String(255), nullable=False),
            sa.Column("request_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("window_start", sa.DateTime(), nullable=False),
            sa.Column("daily_limit", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_accounts_id", "accounts", ["id"])
        op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    if not _has_table("history_entries"):
        op.create_table(
            "history_entries",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "user_id",
                sa.Integer(),
                sa.ForeignKey("accounts.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("type", sa.String(20), nullable=False),
            sa.Column("input_text", sa.Text(), nullable=False),
            sa.Column("result", sa.Text(), nullable=False),
            sa.Column("url", sa.String(2048), nullable=False, server_default=""),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.CheckConstraint(
                "type IN ('explain', 'summarize', 'flashcards')",
                name="ck_history_entries_type",
            ),
        )
        op.create_index("ix_history_entries_id", "history_entries", ["id"])
        op.create_index("ix_history_entries_user_id", "history_entries", ["user_id"])
        op.create_index("ix_history_entries_created_at", "history_entries", ["created_at"])
        op.create_index("ix_history_entries_user_created", "history_entries", ["user_id", "created_at"])
        op.create_index(
            "ix_history_entries_user_type_created",
            "history_entries",
            ["user_id", "type", "created_at"],
        )


def downgrade() -> None:
    op.drop_table("history_entries")
    op.drop_table("accounts")
