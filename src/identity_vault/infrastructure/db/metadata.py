"""SQLAlchemy metadata definitions for identity tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

roles = sa.Table(
    "roles",
    metadata,
    sa.Column("role_id", sa.Integer(), primary_key=True, autoincrement=False),
    sa.Column("role_name", sa.Text(), nullable=False),
    sa.UniqueConstraint("role_name", name="uq_roles_role_name"),
)

users = sa.Table(
    "users",
    metadata,
    sa.Column("user_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.role_id"), nullable=True),
    sa.Column("email_index", sa.String(44), nullable=False),
    sa.Column("email_bundle_json", sa.Text(), nullable=True),
    sa.Column("username_index", sa.String(44), nullable=True),
    sa.Column("username_bundle_json", sa.Text(), nullable=True),
    sa.Column("password_hash", sa.Text(), nullable=False),
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
    sa.UniqueConstraint("email_index", name="uq_users_email_index"),
    sa.UniqueConstraint("username_index", name="uq_users_username_index"),
)
sa.Index("ix_users_role_id", users.c.role_id)
