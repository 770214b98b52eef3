"""create streak tables

Revision ID: 5b2e8c41d7a3
Revises:
Create Date: 2026-10-17 09:12:40.118204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5b2e8c41d7a3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("github_username", sa.String(length=100), nullable=False),
        sa.Column("github_access_token", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("telegram_chat_id", sa.String(length=64), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("check_time", sa.String(length=5), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_users_telegram_chat_id"), "users", ["telegram_chat_id"], unique=False
    )

    op.create_table(
        "contribution_days",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("contribution_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", name="uq_user_day"),
    )
    op.create_index(
        op.f("ix_contribution_days_id"), "contribution_days", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_contribution_days_user_id"),
        "contribution_days",
        ["user_id"],
        unique=False,
    )

    op.create_table(
        "notifications_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_notifications_log_id"), "notifications_log", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_notifications_log_user_id"),
        "notifications_log",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_notifications_log_date"), "notifications_log", ["date"], unique=False
    )

    op.create_table(
        "link_codes",
        sa.Column("code", sa.String(length=6), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("code"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(
        op.f("ix_link_codes_expires_at"), "link_codes", ["expires_at"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_link_codes_expires_at"), table_name="link_codes")
    op.drop_table("link_codes")
    op.drop_index(op.f("ix_notifications_log_date"), table_name="notifications_log")
    op.drop_index(op.f("ix_notifications_log_user_id"), table_name="notifications_log")
    op.drop_index(op.f("ix_notifications_log_id"), table_name="notifications_log")
    op.drop_table("notifications_log")
    op.drop_index(
        op.f("ix_contribution_days_user_id"), table_name="contribution_days"
    )
    op.drop_index(op.f("ix_contribution_days_id"), table_name="contribution_days")
    op.drop_table("contribution_days")
    op.drop_index(op.f("ix_users_telegram_chat_id"), table_name="users")
    op.drop_table("users")
