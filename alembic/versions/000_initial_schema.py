"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

profile_role = postgresql.ENUM("DIRECTOR", "MANAGER", "BROKER", name="profilerole", create_type=False)
broker_level = postgresql.ENUM("JUNIOR", "PLENO", "SENIOR", "CLOSER", name="brokerlevel", create_type=False)
sale_status = postgresql.ENUM("ACTIVE", "RESCINDED", name="salestatus", create_type=False)
tier_change_action = postgresql.ENUM(
    "CREATED", "UPDATED", "ACTIVATED", "DEACTIVATED", name="tierchangeaction", create_type=False
)

ENUMS = (profile_role, broker_level, sale_status, tier_change_action)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", profile_role, nullable=False),
        sa.Column("broker_level", broker_level, nullable=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_manager_id", "profiles", ["manager_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("broker_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("sale_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("status", sale_status, nullable=False),
        sa.Column("sequence_number_in_period", sa.Integer(), nullable=False),
        sa.Column("applied_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("applied_commission", sa.Numeric(14, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sales_broker_id", "sales", ["broker_id"])
    op.create_index("ix_sales_manager_id", "sales", ["manager_id"])
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"])
    op.create_index("ix_sales_status", "sales", ["status"])

    op.create_table(
        "broker_tiers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("level", broker_level, nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("sequence_number >= 1", name="ck_broker_tiers_sequence"),
        sa.CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_broker_tiers_percentage"),
    )
    op.create_index("ix_broker_tiers_level", "broker_tiers", ["level"])
    op.create_index(
        "uq_broker_tiers_level_sequence_active",
        "broker_tiers",
        ["level", "sequence_number"],
        unique=True,
        postgresql_where=sa.text("active"),
    )

    op.create_table(
        "manager_tiers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("range_start", sa.Integer(), nullable=False),
        sa.Column("range_end", sa.Integer(), nullable=True),
        sa.Column("percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("range_start >= 1", name="ck_manager_tiers_range_start"),
        sa.CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_manager_tiers_percentage"),
    )

    op.create_table(
        "manager_tier_changes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tier_id", sa.Integer(), nullable=False),
        sa.Column("action", tier_change_action, nullable=False),
        sa.Column("percentage_before", sa.Numeric(5, 2), nullable=True),
        sa.Column("percentage_after", sa.Numeric(5, 2), nullable=True),
        sa.Column(
            "actor_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_manager_tier_changes_tier_id", "manager_tier_changes", ["tier_id"])
    op.create_index("ix_manager_tier_changes_created_at", "manager_tier_changes", ["created_at"])

    op.create_table(
        "manager_commission_periods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("manager_id", sa.Integer(), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_sales", sa.Integer(), nullable=False),
        sa.Column("total_vgv", sa.Numeric(14, 2), nullable=False),
        sa.Column(
            "tier_id",
            sa.Integer(),
            sa.ForeignKey("manager_tiers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("applied_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("applied_commission", sa.Numeric(14, 2), nullable=False),
        sa.Column("sales_until_next_tier", sa.Integer(), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("manager_id", "month", "year", name="uq_manager_commission_period"),
    )
    op.create_index("ix_manager_commission_periods_manager_id", "manager_commission_periods", ["manager_id"])

    op.create_table(
        "sales_goals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("target_vgv", sa.Numeric(14, 2), nullable=False),
        sa.Column("target_sales", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("profile_id", "month", "year", name="uq_sales_goal_period"),
    )
    op.create_index("ix_sales_goals_profile_id", "sales_goals", ["profile_id"])

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("system_settings")
    op.drop_table("sales_goals")
    op.drop_table("manager_commission_periods")
    op.drop_table("manager_tier_changes")
    op.drop_table("manager_tiers")
    op.drop_table("broker_tiers")
    op.drop_table("sales")
    op.drop_table("profiles")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
