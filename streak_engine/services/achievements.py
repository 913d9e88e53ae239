"""
Milestone achievements, driven by total completed days.
Each is unlocked at most once per user (UNIQUE user_id+achievement_id).
"""
from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.orm import Session

from streak_engine.models.achievement import UserAchievement

logger = structlog.get_logger(__name__)

# Ordered by requirement
ACHIEVEMENTS = {
    "first-week":  {"icon": "🚀", "title": "First Week", "description": "Completed your first 7 days",   "requirement": 7},
    "thirty-days": {"icon": "🎯", "title": "30 Days",    "description": "Completed 30 days of missions", "requirement": 30},
    "sixty-days":  {"icon": "💪", "title": "60 Days",    "description": "Completed 60 days of missions", "requirement": 60},
    "founder":     {"icon": "👑", "title": "Founder",    "description": "Completed all 90 days",         "requirement": 90},
}


def unlock_milestones(
    db: Session, user_id: str, total_completed_days: int, now: datetime
) -> list[str]:
    """
    Add rows for every milestone reached but not yet unlocked.
    Flush only; the caller's unit of work commits.
    """
    already = {
        row.achievement_id
        for row in db.query(UserAchievement.achievement_id).filter_by(user_id=user_id)
    }
    unlocked = []
    for key, meta in ACHIEVEMENTS.items():
        if total_completed_days >= meta["requirement"] and key not in already:
            db.add(UserAchievement(user_id=user_id, achievement_id=key, unlocked_at=now))
            unlocked.append(key)
            logger.info("achievement_unlocked", user_id=user_id, achievement_id=key)
    return unlocked


def get_user_achievements(db: Session, user_id: str) -> list[dict]:
    """Every defined achievement with the user's unlock state."""
    rows = db.query(UserAchievement).filter_by(user_id=user_id).all()
    unlocked_at = {r.achievement_id: r.unlocked_at for r in rows}
    result = []
    for key, meta in ACHIEVEMENTS.items():
        result.append({
            "id": key,
            "icon": meta["icon"],
            "title": meta["title"],
            "description": meta["description"],
            "requirement": meta["requirement"],
            "unlocked": key in unlocked_at,
            "unlocked_at": unlocked_at.get(key),
        })
    return result
