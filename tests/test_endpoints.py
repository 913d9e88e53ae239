"""
Integration tests for the HTTP API using a SQLite test database.
"""
from datetime import timedelta

import pytest

from streak_engine.models.token_transaction import TokenType
from streak_engine.routers.tokens import enum_value
from streak_engine.services.catalog import DEFAULT_CHALLENGES, DEFAULT_STORE_ITEMS


@pytest.fixture()
def initialized(client, headers):
    r = client.post("/progress/init", headers=headers)
    assert r.status_code == 201
    return headers


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"

    def test_request_id_header(self, client):
        r = client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert r.headers["X-Request-ID"] == "abc-123"


class TestProgressInit:
    def test_init_creates_progress(self, client, headers, user_id):
        r = client.post("/progress/init", headers=headers)
        assert r.status_code == 201
        body = r.json()
        assert body["created"] is True
        progress = body["progress"]
        assert progress["user_id"] == user_id
        assert progress["current_day"] == 1
        assert progress["streak"] == 0
        assert progress["founder_coins"] == 50
        assert progress["vision_gems"] == 3
        assert progress["next_day_unlocks_at"] is None

    def test_init_twice_returns_existing(self, client, initialized):
        r = client.post("/progress/init", headers=initialized)
        assert r.status_code == 200
        assert r.json()["created"] is False

    def test_get_progress_before_init(self, client, headers):
        r = client.get("/progress", headers=headers)
        assert r.status_code == 404
        assert r.json()["code"] == "PROGRESS_NOT_FOUND"


class TestCompleteDay:
    def test_complete_first_day(self, client, initialized):
        r = client.post(
            "/progress/complete-day",
            json={"day": 1, "notes": "shipped landing page"},
            headers=initialized,
        )
        assert r.status_code == 200
        body = r.json()
        assert body["completion"]["completed"] is True
        assert body["completion"]["notes"] == "shipped landing page"
        assert body["progress"]["streak"] == 1
        assert body["progress"]["current_day"] == 2
        assert body["progress"]["next_day_unlocks_at"].startswith("2026-03-03T03:00:00")
        assert body["achievements_unlocked"] == []

    def test_locked_next_day(self, client, initialized):
        client.post("/progress/complete-day", json={"day": 1}, headers=initialized)
        r = client.post("/progress/complete-day", json={"day": 2}, headers=initialized)
        assert r.status_code == 429
        body = r.json()
        assert body["code"] == "DAY_LOCKED"
        assert body["details"]["hours_left"] == 18
        assert body["details"]["next_unlock_time"].startswith("2026-03-03T03:00:00")

    def test_unlocks_after_wait(self, client, clock, initialized):
        client.post("/progress/complete-day", json={"day": 1}, headers=initialized)
        clock.advance(hours=18)
        r = client.post("/progress/complete-day", json={"day": 2}, headers=initialized)
        assert r.status_code == 200
        assert r.json()["progress"]["streak"] == 2
        assert r.json()["progress"]["total_completed_days"] == 2

    def test_future_day(self, client, initialized):
        r = client.post("/progress/complete-day", json={"day": 3}, headers=initialized)
        assert r.status_code == 400
        body = r.json()
        assert body["code"] == "FUTURE_DAY"
        assert body["details"] == {"day": 3, "current_day": 1}

    def test_day_must_be_positive(self, client, initialized):
        r = client.post("/progress/complete-day", json={"day": 0}, headers=initialized)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


class TestCanAdvanceAndEndDay:
    def test_can_advance_fresh(self, client, initialized):
        r = client.get("/progress/can-advance", headers=initialized)
        assert r.status_code == 200
        assert r.json() == {
            "can_advance": True,
            "time_left": 0,
            "next_unlock_time": None,
            "current_day": 1,
        }

    def test_can_advance_after_completion(self, client, clock, initialized):
        client.post("/progress/complete-day", json={"day": 1}, headers=initialized)
        clock.advance(hours=5, minutes=30)
        body = client.get("/progress/can-advance", headers=initialized).json()
        assert body["can_advance"] is False
        assert body["time_left"] == 13
        assert body["current_day"] == 2

    def test_end_day_with_early_custom_time(self, client, clock, initialized):
        r = client.post(
            "/progress/end-day",
            json={"custom_unlock_time": clock.now().isoformat()},
            headers=initialized,
        )
        assert r.status_code == 200
        assert r.json()["next_unlock_time"].startswith("2026-03-02T17:00:00")

    def test_end_day_without_body(self, client, initialized):
        r = client.post("/progress/end-day", headers=initialized)
        assert r.status_code == 200
        assert r.json()["next_unlock_time"].startswith("2026-03-03T03:00:00")
        assert r.json()["progress"]["current_day"] == 1


class TestDrafts:
    def test_save_and_read_draft(self, client, initialized):
        r = client.post(
            "/progress/draft",
            json={
                "day": 1,
                "notes": "half done",
                "step_responses": {"step-1": "called 3 customers"},
            },
            headers=initialized,
        )
        assert r.status_code == 200
        completion = r.json()["completion"]
        assert completion["completed"] is False
        assert completion["step_responses"] == {"step-1": "called 3 customers"}

        r = client.get("/progress/days/1", headers=initialized)
        assert r.status_code == 200
        assert r.json()["completion"]["notes"] == "half done"

    def test_draft_while_locked(self, client, initialized):
        client.post("/progress/complete-day", json={"day": 1}, headers=initialized)
        r = client.post("/progress/draft", json={"day": 2, "notes": "x"}, headers=initialized)
        assert r.status_code == 200

        progress = client.get("/progress", headers=initialized).json()["progress"]
        assert progress["current_day"] == 2
        assert progress["streak"] == 1
        assert progress["total_completed_days"] == 1

    def test_empty_day(self, client, initialized):
        r = client.get("/progress/days/9", headers=initialized)
        assert r.status_code == 200
        assert r.json() == {"completion": None}


class TestGetProgress:
    def test_full_snapshot(self, client, clock, initialized):
        client.post("/progress/complete-day", json={"day": 1}, headers=initialized)
        clock.advance(hours=18)
        client.post("/progress/complete-day", json={"day": 2}, headers=initialized)

        body = client.get("/progress", headers=initialized).json()
        assert [c["day"] for c in body["completions"]] == [2, 1]
        assert [a["id"] for a in body["achievements"]] == [
            "first-week", "thirty-days", "sixty-days", "founder",
        ]
        assert not any(a["unlocked"] for a in body["achievements"])


class TestTokens:
    def test_balances(self, client, initialized):
        r = client.get("/tokens", headers=initialized)
        assert r.status_code == 200
        assert r.json() == {"founder_coins": 50, "vision_gems": 3, "experience_points": 0}

    def test_award_and_spend(self, client, initialized):
        r = client.post(
            "/tokens/award",
            json={"token_type": "founder_coins", "amount": 15, "reason": "bonus", "metadata": {"src": "test"}},
            headers=initialized,
        )
        assert r.status_code == 200
        assert r.json()["new_balances"]["founder_coins"] == 65

        r = client.post(
            "/tokens/spend",
            json={"token_type": "vision_gems", "amount": 2, "reason": "unlock"},
            headers=initialized,
        )
        assert r.status_code == 200
        assert r.json()["new_balances"]["vision_gems"] == 1

        body = client.get("/tokens/transactions", headers=initialized).json()
        assert body["total"] == 4
        assert body["items"][0]["type"] == "spent"
        assert body["items"][1]["metadata"] == {"src": "test"}

    def test_empty_metadata_round_trips(self, client, initialized):
        r = client.post(
            "/tokens/award",
            json={"token_type": "founder_coins", "amount": 1, "reason": "bonus", "metadata": {}},
            headers=initialized,
        )
        assert r.status_code == 200

        items = client.get("/tokens/transactions", headers=initialized).json()["items"]
        assert items[0]["metadata"] == {}

    def test_spend_insufficient(self, client, initialized):
        r = client.post(
            "/tokens/spend",
            json={"token_type": "vision_gems", "amount": 4, "reason": "too_much"},
            headers=initialized,
        )
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "INSUFFICIENT_FUNDS"
        assert body["details"]["balance"] == 3
        assert client.get("/tokens", headers=initialized).json()["vision_gems"] == 3

    @pytest.mark.parametrize("payload", [
        {"token_type": "founder_coins", "amount": 0, "reason": "zero"},
        {"token_type": "founder_coins", "amount": -3, "reason": "negative"},
        {"token_type": "diamonds", "amount": 1, "reason": "bad_type"},
        {"token_type": "founder_coins", "amount": 1, "reason": ""},
        {"token_type": "founder_coins", "amount": 1, "reason": "r" * 101},
    ])
    def test_award_validation(self, client, initialized, payload):
        r = client.post("/tokens/award", json=payload, headers=initialized)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_audit(self, client, initialized):
        client.post(
            "/tokens/spend",
            json={"token_type": "founder_coins", "amount": 10, "reason": "audit"},
            headers=initialized,
        )
        body = client.get("/tokens/audit", headers=initialized).json()
        assert body["consistent"] is True
        assert body["stored"] == {"founder_coins": 40, "vision_gems": 3}

    def test_pagination_params(self, client, initialized):
        r = client.get("/tokens/transactions?limit=1&offset=1", headers=initialized)
        assert r.status_code == 200
        assert r.json()["total"] == 2
        assert len(r.json()["items"]) == 1


class TestStoreEndpoints:
    def test_items(self, client):
        r = client.get("/store/items")
        assert r.status_code == 200
        assert len(r.json()["items"]) == len(DEFAULT_STORE_ITEMS)

    def test_enums_serialize_as_plain_values(self, client):
        assert enum_value(TokenType.founder_coins) == "founder_coins"
        assert enum_value("vision_gems") == "vision_gems"

        items = client.get("/store/items").json()["items"]
        shield = next(i for i in items if i["name"] == "Streak Saver Shield")
        assert shield["token_type"] == "founder_coins"
        assert {i["token_type"] for i in items} <= {t.value for t in TokenType}

    def test_purchase(self, client, initialized):
        items = client.get("/store/items").json()["items"]
        shield = next(i for i in items if i["name"] == "Streak Saver Shield")

        r = client.post("/store/purchase", json={"item_id": shield["id"]}, headers=initialized)
        assert r.status_code == 200
        body = r.json()
        assert body["purchase"]["item_name"] == "Streak Saver Shield"
        assert body["purchase"]["total_cost"] == 25
        assert body["new_balances"]["founder_coins"] == 25

        purchases = client.get("/store/purchases", headers=initialized).json()["items"]
        assert [p["item_id"] for p in purchases] == [shield["id"]]

    def test_purchase_unknown_item(self, client, initialized):
        r = client.post("/store/purchase", json={"item_id": 999999}, headers=initialized)
        assert r.status_code == 404
        assert r.json()["code"] == "STORE_ITEM_NOT_FOUND"

    def test_purchase_too_expensive(self, client, initialized):
        items = client.get("/store/items").json()["items"]
        tree = next(i for i in items if i["name"] == "Plant a Tree")
        r = client.post(
            "/store/purchase", json={"item_id": tree["id"], "quantity": 2}, headers=initialized
        )
        assert r.status_code == 409
        assert r.json()["code"] == "INSUFFICIENT_FUNDS"


class TestChallengeEndpoints:
    def test_daily_list_and_claim(self, client, clock, initialized):
        body = client.get("/challenges/daily", headers=initialized).json()
        assert body["total_count"] == len(DEFAULT_CHALLENGES)
        assert body["completed_count"] == 0
        challenge = next(c for c in body["challenges"] if c["challenge_type"] == "note_taker")

        r = client.post(
            "/challenges/complete", json={"challenge_id": challenge["id"]}, headers=initialized
        )
        assert r.status_code == 200
        assert r.json()["challenge_id"] == challenge["id"]
        assert r.json()["new_balances"]["founder_coins"] == 54

        r = client.post(
            "/challenges/complete", json={"challenge_id": challenge["id"]}, headers=initialized
        )
        assert r.status_code == 409
        assert r.json()["code"] == "CHALLENGE_ALREADY_COMPLETED"

        body = client.get("/challenges/daily", headers=initialized).json()
        assert body["completed_count"] == 1

        clock.advance(timedelta(days=1))
        body = client.get("/challenges/daily", headers=initialized).json()
        assert body["completed_count"] == 0

    def test_unknown_challenge(self, client, initialized):
        r = client.post("/challenges/complete", json={"challenge_id": 999999}, headers=initialized)
        assert r.status_code == 404
        assert r.json()["code"] == "CHALLENGE_NOT_FOUND"
