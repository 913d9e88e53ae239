"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TOKEN_TYPES = ("founder_coins", "vision_gems")


def _token_type() -> postgresql.ENUM:
    # Created once in upgrade(); columns only reference it.
    return postgresql.ENUM(*TOKEN_TYPES, name="token_type_enum", create_type=False)


def upgrade() -> None:
    # --- ENUM types ---
    bind = op.get_bind()
    sa.Enum(*TOKEN_TYPES, name="token_type_enum").create(bind, checkfirst=True)
    sa.Enum("earned", "spent", name="token_transaction_kind_enum").create(bind, checkfirst=True)
    sa.Enum(
        "streak_tools", "power_ups", "customization", "charity",
        name="store_category_enum",
    ).create(bind, checkfirst=True)

    # --- user_progress ---
    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("current_day", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_completed_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("building_level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("last_day_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_day_unlocks_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("founder_coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vision_gems", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("experience_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("journey_started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sa.CheckConstraint("current_day >= 1", name="ck_progress_current_day_positive"),
        sa.CheckConstraint("streak >= 0", name="ck_progress_streak_non_negative"),
        sa.CheckConstraint("best_streak >= streak", name="ck_progress_best_streak"),
        sa.CheckConstraint("founder_coins >= 0", name="ck_progress_founder_coins"),
        sa.CheckConstraint("vision_gems >= 0", name="ck_progress_vision_gems"),
        sa.CheckConstraint("experience_points >= 0", name="ck_progress_experience_points"),
    )
    op.create_index("ix_user_progress_id", "user_progress", ["id"])
    op.create_index("ix_user_progress_user_id", "user_progress", ["user_id"])

    # --- daily_completions ---
    op.create_table(
        "daily_completions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reflections", sa.Text(), nullable=True),
        sa.Column("step_responses", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "day", name="uq_daily_completion_user_day"),
    )
    op.create_index("ix_daily_completions_id", "daily_completions", ["id"])
    op.create_index("ix_daily_completions_user_id", "daily_completions", ["user_id"])

    # --- token_transactions (append-only) ---
    op.create_table(
        "token_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", postgresql.ENUM(
            "earned", "spent", name="token_transaction_kind_enum", create_type=False,
        ), nullable=False),
        sa.Column("token_type", _token_type(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount > 0", name="ck_token_transaction_amount_positive"),
    )
    op.create_index("ix_token_transactions_id", "token_transactions", ["id"])
    op.create_index("ix_token_transactions_user_id", "token_transactions", ["user_id"])

    # --- user_achievements ---
    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("achievement_id", sa.String(64), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )
    op.create_index("ix_user_achievements_id", "user_achievements", ["id"])
    op.create_index("ix_user_achievements_user_id", "user_achievements", ["user_id"])

    # --- store_items ---
    op.create_table(
        "store_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", postgresql.ENUM(
            "streak_tools", "power_ups", "customization", "charity",
            name="store_category_enum", create_type=False,
        ), nullable=False),
        sa.Column("token_type", _token_type(), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("icon_emoji", sa.String(10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_store_items_id", "store_items", ["id"])

    # --- user_purchases ---
    op.create_table(
        "user_purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("store_item_id", sa.Integer(), sa.ForeignKey("store_items.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_cost", sa.Integer(), nullable=False),
        sa.Column("token_type", _token_type(), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_purchases_id", "user_purchases", ["id"])
    op.create_index("ix_user_purchases_user_id", "user_purchases", ["user_id"])

    # --- daily_challenges ---
    op.create_table(
        "daily_challenges",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("challenge_type", sa.String(50), nullable=False),
        sa.Column("reward_token_type", _token_type(), nullable=False),
        sa.Column("reward_amount", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_challenges_id", "daily_challenges", ["id"])

    # --- user_challenge_completions ---
    op.create_table(
        "user_challenge_completions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("daily_challenges.id"), nullable=False),
        sa.Column("completed_date", sa.Date(), nullable=False),
        sa.Column("reward_claimed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "challenge_id", "completed_date",
            name="uq_user_challenge_per_day",
        ),
    )
    op.create_index("ix_user_challenge_completions_id", "user_challenge_completions", ["id"])
    op.create_index("ix_user_challenge_completions_user_id", "user_challenge_completions", ["user_id"])


def downgrade() -> None:
    op.drop_table("user_challenge_completions")
    op.drop_table("daily_challenges")
    op.drop_table("user_purchases")
    op.drop_table("store_items")
    op.drop_table("user_achievements")
    op.drop_table("token_transactions")
    op.drop_table("daily_completions")
    op.drop_table("user_progress")

    bind = op.get_bind()
    sa.Enum(name="store_category_enum").drop(bind, checkfirst=True)
    sa.Enum(name="token_transaction_kind_enum").drop(bind, checkfirst=True)
    sa.Enum(name="token_type_enum").drop(bind, checkfirst=True)
