"""seed store catalog and daily challenges

Revision ID: 0002
Revises: 0001
Create Date: 2026-03-01

Inserts the default store items and daily challenges. Rows are matched by
name on downgrade.
"""
from alembic import op
import sqlalchemy as sa

from streak_engine.services.catalog import DEFAULT_CHALLENGES, DEFAULT_STORE_ITEMS

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

store_items = sa.table(
    "store_items",
    sa.column("name", sa.String),
    sa.column("description", sa.Text),
    sa.column("category", sa.String),
    sa.column("token_type", sa.String),
    sa.column("cost", sa.Integer),
    sa.column("icon_emoji", sa.String),
    sa.column("is_active", sa.Boolean),
    sa.column("sort_order", sa.Integer),
)

daily_challenges = sa.table(
    "daily_challenges",
    sa.column("name", sa.String),
    sa.column("description", sa.Text),
    sa.column("challenge_type", sa.String),
    sa.column("reward_token_type", sa.String),
    sa.column("reward_amount", sa.Integer),
    sa.column("is_active", sa.Boolean),
)


def upgrade() -> None:
    op.bulk_insert(store_items, [
        {
            "name": name,
            "description": description,
            "category": category,
            "token_type": token_type,
            "cost": cost,
            "icon_emoji": icon,
            "is_active": True,
            "sort_order": sort_order,
        }
        for name, description, category, token_type, cost, icon, sort_order in DEFAULT_STORE_ITEMS
    ])
    op.bulk_insert(daily_challenges, [
        {
            "name": name,
            "description": description,
            "challenge_type": challenge_type,
            "reward_token_type": reward_token_type,
            "reward_amount": reward_amount,
            "is_active": True,
        }
        for name, description, challenge_type, reward_token_type, reward_amount in DEFAULT_CHALLENGES
    ])


def downgrade() -> None:
    op.execute(
        daily_challenges.delete().where(
            daily_challenges.c.name.in_([c[0] for c in DEFAULT_CHALLENGES])
        )
    )
    op.execute(
        store_items.delete().where(
            store_items.c.name.in_([i[0] for i in DEFAULT_STORE_ITEMS])
        )
    )
