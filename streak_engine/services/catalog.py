"""
Default store catalog and daily challenges.

Seeded by migration 0002 and by the test fixtures. seed_catalog() is
idempotent: it only inserts into empty tables.
"""
from __future__ import annotations

from sqlalchemy.orm import Session

from streak_engine.models.challenge import DailyChallenge
from streak_engine.models.store import StoreItem

DEFAULT_STORE_ITEMS = [
    # (name, description, category, token_type, cost, icon, sort_order)
    ("Streak Saver Shield", "Restore your streak if you miss a day.", "streak_tools", "founder_coins", 25, "🛡️", 1),
    ("Double Streak Insurance", "Two streak restoration saves for the price of one and a half.", "streak_tools", "founder_coins", 38, "🛡️", 2),
    ("Golden Streak Freeze", "Prevents any streak loss for 3 days.", "streak_tools", "vision_gems", 2, "❄️", 3),
    ("Focus Booster", "Double Founder Coins for the next 3 completed missions.", "power_ups", "founder_coins", 20, "⚡", 10),
    ("Vision Crystal", "Bonus content for your next 5 missions.", "power_ups", "vision_gems", 1, "🔮", 11),
    ("Momentum Builder", "Bonus XP for completing missions 3 days in a row.", "power_ups", "founder_coins", 15, "🚀", 12),
    ("Golden Crown Avatar", "Premium avatar upgrade.", "customization", "vision_gems", 3, "👑", 20),
    ("Achievement Badge Set", "Special badges to showcase your milestones.", "customization", "founder_coins", 30, "🏆", 21),
    ("Custom Mission Theme", "Premium themes and colors for daily missions.", "customization", "founder_coins", 12, "🎨", 22),
    ("Plant a Tree", "A real tree planted through environmental partners.", "charity", "founder_coins", 50, "🌳", 30),
    ("Support Young Entrepreneurs", "Sponsor entrepreneurship education for students.", "charity", "vision_gems", 5, "🎓", 31),
]

DEFAULT_CHALLENGES = [
    # (name, description, challenge_type, reward_token_type, reward_amount)
    ("Early Bird Founder", "Complete your daily mission before 10 AM", "early_bird", "founder_coins", 3),
    ("Perfect Execution", "Complete ALL steps of today's mission with detailed notes", "perfectionist", "founder_coins", 5),
    ("Reflection Master", "Write meaningful reflections for your completed mission (50+ characters)", "note_taker", "founder_coins", 4),
    ("Community Builder", "Share your progress or encourage others in the community", "community_engage", "vision_gems", 1),
    ("Consistency Champion", "Complete your mission for 3 days in a row", "streak_builder", "vision_gems", 2),
    ("Network Ninja", "Connect with or help another founder in the community", "networking", "founder_coins", 6),
]


def seed_catalog(db: Session) -> None:
    if db.query(StoreItem).count() == 0:
        for name, description, category, token_type, cost, icon, sort_order in DEFAULT_STORE_ITEMS:
            db.add(StoreItem(
                name=name,
                description=description,
                category=category,
                token_type=token_type,
                cost=cost,
                icon_emoji=icon,
                is_active=True,
                sort_order=sort_order,
            ))
    if db.query(DailyChallenge).count() == 0:
        for name, description, challenge_type, reward_token_type, reward_amount in DEFAULT_CHALLENGES:
            db.add(DailyChallenge(
                name=name,
                description=description,
                challenge_type=challenge_type,
                reward_token_type=reward_token_type,
                reward_amount=reward_amount,
                is_active=True,
            ))
    db.commit()
