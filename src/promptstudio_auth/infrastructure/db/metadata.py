"""SQLAlchemy metadata definitions for PromptStudio auth tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("email", sa.Text(), nullable=False),
    sa.Column("password_hash", sa.Text(), nullable=False),
    sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'user'")),
    # Usage counters belong to prompt generation; auth never reads or writes them.
    sa.Column("prompt_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
    sa.Column("last_prompt_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("prompt_limit", sa.Integer(), nullable=False, server_default=sa.text("10")),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("email", name="uq_users_email"),
    sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
)
sa.Index("ix_users_email", users.c.email)

refresh_sessions = sa.Table(
    "refresh_sessions",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column(
        "user_id",
        sa.Uuid(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("token_hash", sa.Text(), nullable=False),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("user_agent", sa.Text(), nullable=True),
    sa.Column("ip_address", sa.Text(), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("token_hash", name="uq_refresh_sessions_token_hash"),
)
sa.Index("ix_refresh_sessions_user_id_id", refresh_sessions.c.user_id, refresh_sessions.c.id)
sa.Index("ix_refresh_sessions_expires_at", refresh_sessions.c.expires_at)
