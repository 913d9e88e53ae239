"""
Service-level tests for the day-advancement engine.

Covered:
  - idempotent completion
  - no skipping ahead of current_day
  - the 18h lock and the 8h end-day floor
  - drafts while locked
  - the day 1 → day 2 walkthrough
  - rollback on a failed commit
  - optimistic-lock retries
  - milestone achievements
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from streak_engine.core.clock import ensure_utc
from streak_engine.core.errors import (
    ConcurrentUpdateError,
    FutureDayError,
    InvalidDayError,
    LockedError,
    PersistenceError,
    ProgressNotFoundError,
)
from streak_engine.db.atomic import atomic, lock_progress
from streak_engine.models.completion import DailyCompletion
from streak_engine.models.progress import UserProgress
from streak_engine.services import progress as engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _start(db, user_id, clock):
    progress, created = engine.init_progress(db, user_id, clock)
    assert created
    return progress


def _complete_days(db, user_id, clock, last_day):
    """Complete days 1..last_day, waiting out the lock after each."""
    result = None
    for day in range(1, last_day + 1):
        result = engine.complete_day(db, user_id, day, clock)
        clock.advance(hours=18)
    return result


def _snapshot(db, user_id):
    db.expire_all()
    p = db.query(UserProgress).filter_by(user_id=user_id).one()
    return {
        "current_day": p.current_day,
        "streak": p.streak,
        "best_streak": p.best_streak,
        "total_completed_days": p.total_completed_days,
        "building_level": p.building_level,
        "next_day_unlocks_at": p.next_day_unlocks_at,
        "founder_coins": p.founder_coins,
    }


# ---------------------------------------------------------------------------
# init_progress
# ---------------------------------------------------------------------------

class TestInitProgress:
    def test_new_user_starts_on_day_one(self, db, user_id, clock):
        progress = _start(db, user_id, clock)
        assert progress.current_day == 1
        assert progress.streak == 0
        assert progress.best_streak == 0
        assert progress.total_completed_days == 0
        assert progress.building_level == 1
        assert progress.next_day_unlocks_at is None
        assert progress.founder_coins == 50
        assert progress.vision_gems == 3

    def test_init_is_idempotent(self, db, user_id, clock):
        first = _start(db, user_id, clock)
        second, created = engine.init_progress(db, user_id, clock)
        assert created is False
        assert second.id == first.id
        assert second.founder_coins == 50

    def test_uninitialized_user(self, db, user_id, clock):
        with pytest.raises(ProgressNotFoundError):
            engine.complete_day(db, user_id, 1, clock)
        with pytest.raises(ProgressNotFoundError):
            engine.can_advance(db, user_id, clock)


# ---------------------------------------------------------------------------
# complete_day
# ---------------------------------------------------------------------------

class TestCompleteDay:
    def test_first_day(self, db, user_id, clock):
        _start(db, user_id, clock)
        now = clock.now()
        result = engine.complete_day(db, user_id, 1, clock, notes="kickoff")

        assert result.progress.streak == 1
        assert result.progress.best_streak == 1
        assert result.progress.total_completed_days == 1
        assert result.progress.current_day == 2
        assert result.progress.building_level == 2
        assert ensure_utc(result.progress.next_day_unlocks_at) == now + timedelta(hours=18)
        assert ensure_utc(result.progress.last_day_completed_at) == now
        assert result.completion.completed is True
        assert result.completion.notes == "kickoff"

    def test_completing_twice_is_idempotent(self, db, user_id, clock):
        _start(db, user_id, clock)
        first = engine.complete_day(db, user_id, 1, clock)
        completed_at = first.completion.completed_at

        clock.advance(hours=1)
        second = engine.complete_day(db, user_id, 1, clock)

        assert second.completion.completed_at == completed_at
        assert second.progress.streak == 1
        assert second.progress.total_completed_days == 1
        assert second.progress.current_day == 2
        rows = db.query(DailyCompletion).filter_by(user_id=user_id, day=1).count()
        assert rows == 1

    def test_recompleting_reschedules_unlock(self, db, user_id, clock):
        _start(db, user_id, clock)
        first = engine.complete_day(db, user_id, 1, clock)
        completed_at = first.completion.completed_at

        clock.advance(hours=20)
        now = clock.now()
        second = engine.complete_day(db, user_id, 1, clock)

        assert ensure_utc(second.progress.next_day_unlocks_at) == now + timedelta(hours=18)
        assert ensure_utc(second.progress.last_day_completed_at) == now
        assert second.completion.completed_at == completed_at
        assert second.progress.total_completed_days == 1

        with pytest.raises(LockedError):
            engine.complete_day(db, user_id, 2, clock)

    def test_future_day_rejected_and_nothing_changes(self, db, user_id, clock):
        _start(db, user_id, clock)
        _complete_days(db, user_id, clock, 2)
        before = _snapshot(db, user_id)
        assert before["current_day"] == 3

        with pytest.raises(FutureDayError) as exc_info:
            engine.complete_day(db, user_id, 5, clock)

        assert exc_info.value.details == {"day": 5, "current_day": 3}
        assert _snapshot(db, user_id) == before
        assert db.query(DailyCompletion).filter_by(user_id=user_id, day=5).count() == 0

    def test_day_zero_rejected(self, db, user_id, clock):
        _start(db, user_id, clock)
        with pytest.raises(InvalidDayError):
            engine.complete_day(db, user_id, 0, clock)

    def test_streak_continues_over_consecutive_days(self, db, user_id, clock):
        _start(db, user_id, clock)
        result = _complete_days(db, user_id, clock, 3)
        assert result.progress.streak == 3
        assert result.progress.best_streak == 3
        assert result.progress.total_completed_days == 3
        assert result.progress.current_day == 4
        assert result.progress.building_level == 4

    def test_recompleting_past_day_recomputes_streak_as_of_that_day(self, db, user_id, clock):
        _start(db, user_id, clock)
        _complete_days(db, user_id, clock, 3)
        result = engine.complete_day(db, user_id, 1, clock)
        assert result.progress.streak == 1
        assert result.progress.best_streak == 3
        assert result.progress.current_day == 4
        assert result.progress.total_completed_days == 3

    def test_completing_a_draft(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.save_draft(db, user_id, 1, notes="draft notes", step_responses={"s1": "a"})
        result = engine.complete_day(db, user_id, 1, clock, reflections="done")
        assert result.completion.completed is True
        assert result.completion.notes == "draft notes"
        assert result.completion.reflections == "done"
        assert engine.parse_step_responses(result.completion.step_responses) == {"s1": "a"}


# ---------------------------------------------------------------------------
# Lock window
# ---------------------------------------------------------------------------

class TestLock:
    def test_locked_after_completion(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.complete_day(db, user_id, 1, clock)

        status = engine.can_advance(db, user_id, clock)
        assert status.can_advance is False
        assert 0 < status.time_left <= 18
        assert status.current_day == 2

        with pytest.raises(LockedError):
            engine.complete_day(db, user_id, 2, clock)

        clock.advance(hours=18)
        assert engine.can_advance(db, user_id, clock).can_advance is True
        result = engine.complete_day(db, user_id, 2, clock)
        assert result.progress.current_day == 3

    def test_walkthrough_day_one_to_two(self, db, user_id, clock):
        progress = _start(db, user_id, clock)
        assert (progress.current_day, progress.streak) == (1, 0)

        start = clock.now()
        result = engine.complete_day(db, user_id, 1, clock)
        assert result.progress.streak == 1
        assert result.progress.total_completed_days == 1
        assert result.progress.current_day == 2
        assert ensure_utc(result.progress.next_day_unlocks_at) == start + timedelta(hours=18)

        with pytest.raises(LockedError) as exc_info:
            engine.complete_day(db, user_id, 2, clock)
        assert exc_info.value.hours_left == 18
        assert exc_info.value.next_unlock_time == start + timedelta(hours=18)

        clock.advance(hours=18)
        result = engine.complete_day(db, user_id, 2, clock)
        assert result.progress.streak == 2
        assert result.progress.total_completed_days == 2
        assert result.progress.current_day == 3

    def test_past_day_allowed_while_locked(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.complete_day(db, user_id, 1, clock)
        clock.advance(hours=2)
        result = engine.complete_day(db, user_id, 1, clock, notes="edited")
        assert result.completion.notes == "edited"

    def test_hours_left_rounds_up(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.complete_day(db, user_id, 1, clock)
        clock.advance(hours=17, minutes=30)
        status = engine.can_advance(db, user_id, clock)
        assert status.can_advance is False
        assert status.time_left == 1

    def test_fresh_user_can_advance(self, db, user_id, clock):
        _start(db, user_id, clock)
        status = engine.can_advance(db, user_id, clock)
        assert status.can_advance is True
        assert status.time_left == 0
        assert status.next_unlock_time is None


# ---------------------------------------------------------------------------
# end_day
# ---------------------------------------------------------------------------

class TestEndDay:
    def test_default_is_eighteen_hours(self, db, user_id, clock):
        _start(db, user_id, clock)
        progress = engine.end_day(db, user_id, clock)
        assert ensure_utc(progress.next_day_unlocks_at) == clock.now() + timedelta(hours=18)

    def test_immediate_custom_time_is_raised_to_rest_floor(self, db, user_id, clock):
        _start(db, user_id, clock)
        now = clock.now()
        progress = engine.end_day(db, user_id, clock, custom_unlock_time=now)
        assert ensure_utc(progress.next_day_unlocks_at) == now + timedelta(hours=8)
        assert ensure_utc(progress.last_day_completed_at) == now

    def test_custom_time_after_floor_is_kept(self, db, user_id, clock):
        _start(db, user_id, clock)
        custom = clock.now() + timedelta(hours=10)
        progress = engine.end_day(db, user_id, clock, custom_unlock_time=custom)
        assert ensure_utc(progress.next_day_unlocks_at) == custom

    def test_end_day_does_not_advance(self, db, user_id, clock):
        _start(db, user_id, clock)
        progress = engine.end_day(db, user_id, clock)
        assert progress.current_day == 1
        assert progress.streak == 0
        with pytest.raises(LockedError):
            engine.complete_day(db, user_id, 1, clock)


# ---------------------------------------------------------------------------
# save_draft
# ---------------------------------------------------------------------------

class TestSaveDraft:
    def test_draft_while_locked_changes_no_progress(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.complete_day(db, user_id, 1, clock)
        before = _snapshot(db, user_id)

        completion = engine.save_draft(db, user_id, 2, notes="x")

        assert completion.completed is False
        assert completion.notes == "x"
        assert _snapshot(db, user_id) == before

    def test_draft_keeps_completed_flag(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.complete_day(db, user_id, 1, clock)
        completion = engine.save_draft(db, user_id, 1, reflections="later thoughts")
        assert completion.completed is True
        assert completion.reflections == "later thoughts"

    def test_omitted_fields_are_kept(self, db, user_id, clock):
        _start(db, user_id, clock)
        engine.save_draft(db, user_id, 1, notes="n1", step_responses={"a": "1"})
        completion = engine.save_draft(db, user_id, 1, reflections="r1")
        assert completion.notes == "n1"
        assert completion.reflections == "r1"
        assert engine.parse_step_responses(completion.step_responses) == {"a": "1"}

    def test_get_day(self, db, user_id, clock):
        _start(db, user_id, clock)
        assert engine.get_day(db, user_id, 4) is None
        engine.save_draft(db, user_id, 4, notes="ahead")
        assert engine.get_day(db, user_id, 4).notes == "ahead"


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------

class TestAchievements:
    def test_first_week_unlocks_once(self, db, user_id, clock):
        _start(db, user_id, clock)
        result = _complete_days(db, user_id, clock, 7)
        assert result.achievements_unlocked == ["first-week"]

        again = engine.complete_day(db, user_id, 7, clock)
        assert again.achievements_unlocked == []

        snapshot = engine.get_progress(db, user_id)
        by_id = {a["id"]: a for a in snapshot.achievements}
        assert by_id["first-week"]["unlocked"] is True
        assert by_id["first-week"]["unlocked_at"] is not None
        assert by_id["thirty-days"]["unlocked"] is False
        assert [c.day for c in snapshot.completions] == [7, 6, 5, 4, 3, 2, 1]


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------

class TestUnitOfWork:
    def test_failed_commit_leaves_state_unchanged(self, db, user_id, clock, monkeypatch):
        _start(db, user_id, clock)
        before = _snapshot(db, user_id)

        def failing_commit():
            raise OperationalError("COMMIT", None, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(PersistenceError) as exc_info:
            engine.complete_day(db, user_id, 1, clock)
        monkeypatch.undo()

        assert exc_info.value.details == {"operation": "complete_day"}
        assert _snapshot(db, user_id) == before
        assert db.query(DailyCompletion).filter_by(user_id=user_id).count() == 0

    def test_stale_write_is_retried(self, db, user_id, clock, session_factory):
        _start(db, user_id, clock)
        other = session_factory()
        calls = []

        def work(session):
            progress = lock_progress(session, user_id)
            if not calls:
                # Another writer commits between our read and our write
                row = other.query(UserProgress).filter_by(user_id=user_id).one()
                row.experience_points += 1
                other.commit()
            calls.append(1)
            progress.experience_points += 5
            return progress.experience_points

        try:
            assert atomic(db, work, operation="test") == 6
        finally:
            other.close()
        assert len(calls) == 2

    def test_draft_inserted_concurrently_is_retried(
        self, db, user_id, clock, session_factory, monkeypatch
    ):
        _start(db, user_id, clock)
        other = session_factory()
        lookup = engine._get_completion
        raced = []

        def get_completion_with_race(session, uid, day):
            found = lookup(session, uid, day)
            if not raced:
                # Another tab saves a draft for the same day after our read
                raced.append(day)
                engine.save_draft(other, uid, day, notes="from another tab")
            return found

        monkeypatch.setattr(engine, "_get_completion", get_completion_with_race)
        try:
            result = engine.complete_day(db, user_id, 1, clock)
        finally:
            other.close()

        assert raced == [1]
        assert result.completion.completed is True
        assert result.completion.notes == "from another tab"
        assert result.progress.total_completed_days == 1
        assert db.query(DailyCompletion).filter_by(user_id=user_id, day=1).count() == 1

    def test_retries_exhausted(self, db):
        def work(session):
            raise StaleDataError("stale")

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            atomic(db, work, operation="test", attempts=2)
        assert exc_info.value.details == {"attempts": 2}
