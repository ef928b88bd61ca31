"""Create users, user_configs and user_referral_closures tables.

Revision ID: 20261019_000001_create_referral_hierarchy_tables
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_000001_create_referral_hierarchy_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create referral hierarchy tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reference_code", sa.String(length=32), nullable=False),
        sa.Column("referrer_ref", sa.String(length=32), nullable=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("cover_url", sa.String(length=1024), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("website", sa.String(length=1024), nullable=True),
        sa.Column(
            "role",
            sa.String(length=20),
            nullable=False,
            server_default="user",
        ),
        sa.Column(
            "status",
            sa.String(length=30),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column("rejected_reason", sa.Text(), nullable=True),
        sa.Column(
            "verification_date", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("reference_code", name="uq_users_reference_code"),
        sa.ForeignKeyConstraint(
            ["referrer_ref"],
            ["users.reference_code"],
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "referrer_ref IS NULL OR referrer_ref <> reference_code",
            name="check_user_not_self_referred",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_referrer_ref", "users", ["referrer_ref"])
    op.create_index("ix_users_full_name", "users", ["full_name"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_phone_number", "users", ["phone_number"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_status", "users", ["status"])
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "user_configs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_user_configs_user_id", "user_configs", ["user_id"], unique=True
    )

    op.create_table(
        "user_referral_closures",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ancestor_ref", sa.String(length=32), nullable=False),
        sa.Column("descendant_ref", sa.String(length=32), nullable=False),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["ancestor_ref"],
            ["users.reference_code"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["descendant_ref"],
            ["users.reference_code"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "ancestor_ref",
            "descendant_ref",
            name="uq_user_referral_closures_ancestor_descendant",
        ),
        sa.CheckConstraint(
            "depth >= 1 AND depth <= 2",
            name="check_user_referral_closures_depth_within_cap",
        ),
        sa.CheckConstraint(
            "ancestor_ref <> descendant_ref",
            name="check_user_referral_closures_no_self_row",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Range scans by ancestor and depth, reverse lookups by descendant
    op.create_index(
        "ix_user_referral_closures_ancestor_depth",
        "user_referral_closures",
        ["ancestor_ref", "depth"],
    )
    op.create_index(
        "ix_user_referral_closures_descendant_ref",
        "user_referral_closures",
        ["descendant_ref"],
    )


def downgrade() -> None:
    """Drop referral hierarchy tables."""
    op.drop_index(
        "ix_user_referral_closures_descendant_ref",
        table_name="user_referral_closures",
    )
    op.drop_index(
        "ix_user_referral_closures_ancestor_depth",
        table_name="user_referral_closures",
    )
    op.drop_table("user_referral_closures")

    op.drop_index("ix_user_configs_user_id", table_name="user_configs")
    op.drop_table("user_configs")

    for index_name in (
        "ix_users_deleted_at",
        "ix_users_status",
        "ix_users_role",
        "ix_users_phone_number",
        "ix_users_email",
        "ix_users_full_name",
        "ix_users_referrer_ref",
    ):
        op.drop_index(index_name, table_name="users")
    op.drop_table("users")
