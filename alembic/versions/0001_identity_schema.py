"""Initial schema for roles and users with protected identity fields."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_identity_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    roles = op.create_table(
        "roles",
        sa.Column("role_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("role_name", sa.Text(), nullable=False),
        sa.UniqueConstraint("role_name", name="uq_roles_role_name"),
    )
    op.bulk_insert(
        roles,
        [
            {"role_id": 1, "role_name": "admin"},
            {"role_id": 2, "role_name": "researcher"},
            {"role_id": 3, "role_name": "public"},
        ],
    )

    op.create_table(
        "users",
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
    op.create_index("ix_users_role_id", "users", ["role_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_users_role_id", table_name="users")
    op.drop_table("users")
    op.drop_table("roles")
