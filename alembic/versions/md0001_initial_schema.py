"""initial schema: users, config, upload_logs, auth_sessions

Revision ID: md0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Hey future me - this is the whole schema in one go:
- users: library accounts, library_path NULL = use the global directories
- config: runtime key/value flags (ferric_enabled, youtube_enabled, spotify_enabled)
- upload_logs: one row per acquisition job (upload, youtube, spotify)
- auth_sessions: opaque login tokens with expiry

upload_logs and auth_sessions cascade on user delete.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "md0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("library_path", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "config",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )

    op.create_table(
        "upload_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("upload_type", sa.String(20), nullable=False),
        sa.Column("source", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("file_count", sa.Integer, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("completed_at", sa.DateTime, nullable=True),
    )
    op.create_index("ix_upload_logs_user_id", "upload_logs", ["user_id"])
    op.create_index("ix_upload_logs_status", "upload_logs", ["status"])
    op.create_index("ix_upload_logs_created_at", "upload_logs", ["created_at"])

    op.create_table(
        "auth_sessions",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("expires_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"])
    op.create_index("ix_auth_sessions_expires_at", "auth_sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_table("auth_sessions")
    op.drop_table("upload_logs")
    op.drop_table("config")
    op.drop_table("users")
