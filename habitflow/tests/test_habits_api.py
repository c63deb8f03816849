"""Habits API tests.

Covers the habit registry, completion ledger and analytics endpoints:
- GET/POST /api/habits
- GET/PATCH/DELETE /api/habits/<id>
- GET/POST /api/habits/<id>/completions, POST .../toggle
- PATCH/DELETE /api/habits/completions/<entry_id>, GET /api/habits/completions/month
- GET /api/habits/<id>/stats|heatmap|streak|trend, /api/habits/trend, /api/habits/insights, /api/habits/progress
"""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.integration

from habitflow.domains.habits.models import Habit, HabitCompletion
from habitflow.extensions import db


@pytest.fixture
def pinned_today(app):
    app.config["HABITS_TODAY_OVERRIDE"] = "2024-03-10"
    return "2024-03-10"


def _create(client, headers, **overrides) -> dict:
    body = {"name": "Walk", "category": "health"}
    body.update(overrides)
    resp = client.post("/api/habits", json=body, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["habit"]


class TestHabitEndpoints:
    """Registry CRUD over HTTP."""

    def test_requires_jwt(self, client):
        resp = client.get("/api/habits")
        assert resp.status_code == 401

    def test_create_and_list(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers, frequency="custom", required_days=["fri", "mon"])

        assert habit["required_days"] == ["mon", "fri"]
        assert habit["color_code"] == "#4CAF50"

        resp = client.get("/api/habits", headers=auth_headers)
        data = resp.get_json()
        assert data["ok"] is True
        assert data["habits"][0]["id"] == habit["id"]
        assert data["habits"][0]["completed_today"] is False
        # 2024-03-10 is a Sunday
        assert data["habits"][0]["required_today"] is False

    def test_create_validation_error(self, client, auth_headers):
        resp = client.post("/api/habits", json={"name": "", "category": "sports"}, headers=auth_headers)

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "validation_error"
        assert {tuple(d["loc"]) for d in body["details"]} == {("name",), ("category",)}

    def test_duplicate_name_conflicts(self, client, auth_headers):
        _create(client, auth_headers)
        resp = client.post("/api/habits", json={"name": "Walk"}, headers=auth_headers)

        assert resp.status_code == 409
        assert resp.get_json()["error"] == "duplicate"

    def test_patch_and_delete(self, client, auth_headers):
        habit = _create(client, auth_headers)

        resp = client.patch(f"/api/habits/{habit['id']}", json={"name": "Long walk", "unit": "km"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["habit"]["name"] == "Long walk"

        resp = client.delete(f"/api/habits/{habit['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert db.session.get(Habit, habit["id"]) is None

    def test_patch_null_name_rejected(self, client, auth_headers):
        habit = _create(client, auth_headers)
        resp = client.patch(f"/api/habits/{habit['id']}", json={"name": None}, headers=auth_headers)
        assert resp.status_code == 400

    def test_unknown_habit_is_404(self, client, auth_headers):
        resp = client.get("/api/habits/999", headers=auth_headers)

        assert resp.status_code == 404
        assert resp.get_json() == {"ok": False, "error": "not_found", "message": "not found"}

    def test_csrf_required_when_enabled(self, app, client, auth_headers):
        app.config["WTF_CSRF_ENABLED"] = True
        headers = {"Authorization": auth_headers["Authorization"]}

        resp = client.post("/api/habits", json={"name": "Walk"}, headers=headers)

        assert resp.status_code == 403
        assert resp.get_json()["error"] == "csrf_failed"

    def test_csrf_token_from_endpoint_is_accepted(self, app, client, auth_headers):
        app.config["WTF_CSRF_ENABLED"] = True
        bearer = {"Authorization": auth_headers["Authorization"]}

        token = client.get("/api/csrf").get_json()["csrf_token"]
        assert token == auth_headers["X-CSRF-Token"]

        wrong = client.post("/api/habits", json={"name": "Walk"}, headers={**bearer, "X-CSRF-Token": "nope"})
        assert wrong.status_code == 403

        ok = client.post("/api/habits", json={"name": "Walk"}, headers={**bearer, "X-CSRF-Token": token})
        assert ok.status_code == 201


class TestCompletionEndpoints:
    """Ledger writes and queries over HTTP."""

    def test_toggle_defaults_to_today(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)

        resp = client.post(f"/api/habits/{habit['id']}/completions/toggle", json={}, headers=auth_headers)

        data = resp.get_json()
        assert resp.status_code == 200
        assert data["completion"]["date"] == "2024-03-10"
        assert data["completion"]["completed"] is True
        assert data["habit"]["current_streak"] == 1

    def test_toggle_twice_restores(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)
        url = f"/api/habits/{habit['id']}/completions/toggle"

        client.post(url, json={"date": "2024-03-09"}, headers=auth_headers)
        resp = client.post(url, json={"date": "2024-03-09"}, headers=auth_headers)

        assert resp.get_json()["completion"]["completed"] is False
        assert HabitCompletion.query.count() == 1

    def test_record_conflict_and_bad_quality(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)
        url = f"/api/habits/{habit['id']}/completions"

        resp = client.post(url, json={"date": "2024-03-08", "quality": 4}, headers=auth_headers)
        assert resp.status_code == 201

        resp = client.post(url, json={"date": "2024-03-08"}, headers=auth_headers)
        assert resp.status_code == 409

        resp = client.post(url, json={"date": "2024-03-07", "quality": 9}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["loc"] == ["quality"]

    def test_update_delete_and_range(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)
        url = f"/api/habits/{habit['id']}/completions"
        for day in ("2024-03-08", "2024-03-09", "2024-03-10"):
            client.post(url, json={"date": day}, headers=auth_headers)

        listed = client.get(f"{url}?start=2024-03-09", headers=auth_headers).get_json()["completions"]
        assert [c["date"] for c in listed] == ["2024-03-10", "2024-03-09"]

        entry_id = listed[1]["id"]
        resp = client.patch(
            f"/api/habits/completions/{entry_id}",
            json={"completed": False, "skip_reason": "no-time"},
            headers=auth_headers,
        )
        assert resp.get_json()["completion"]["skip_reason"] == "no-time"

        resp = client.delete(f"/api/habits/completions/{entry_id}", headers=auth_headers)
        assert resp.status_code == 200
        assert client.get(url, headers=auth_headers).get_json()["completions"][1]["date"] == "2024-03-08"

    def test_month_listing(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)
        client.post(f"/api/habits/{habit['id']}/completions", json={"date": "2024-03-02"}, headers=auth_headers)

        resp = client.get("/api/habits/completions/month?month=2024-03", headers=auth_headers)
        assert list(resp.get_json()["days"]) == ["2024-03-02"]

        resp = client.get("/api/habits/completions/month?month=March", headers=auth_headers)
        assert resp.status_code == 400


class TestAnalyticsEndpoints:
    """Read-only analytics."""

    @pytest.fixture
    def habit(self, client, auth_headers, pinned_today):
        habit = _create(client, auth_headers)
        url = f"/api/habits/{habit['id']}/completions"
        for day, done in (("2024-03-07", True), ("2024-03-08", True), ("2024-03-09", False), ("2024-03-10", True)):
            client.post(url, json={"date": day, "completed": done}, headers=auth_headers)
        return habit

    def test_stats(self, client, auth_headers, habit):
        stats = client.get(f"/api/habits/{habit['id']}/stats", headers=auth_headers).get_json()["stats"]

        assert stats["success_rate"] == 75
        assert stats["longest_streak"] == 2
        assert stats["last_entry_date"] == "2024-03-10"
        assert len(stats["recent_entries"]) == 4

    def test_heatmap(self, client, auth_headers, habit):
        resp = client.get(f"/api/habits/{habit['id']}/heatmap?month_offset=0", headers=auth_headers)
        heatmap = resp.get_json()["heatmap"]

        assert len(heatmap["days"]) == 31
        assert heatmap["days"]["2024-03-09"]["completed"] is False

    def test_streak(self, client, auth_headers, habit):
        streak = client.get(f"/api/habits/{habit['id']}/streak", headers=auth_headers).get_json()["streak"]

        assert streak["current_streak"] == 1
        assert streak["started_today"] is True

    def test_trend(self, client, auth_headers, habit):
        trend = client.get(f"/api/habits/{habit['id']}/trend?days=30", headers=auth_headers).get_json()["trend"]
        assert trend["trend_direction"] == "improving"

        monthly = client.get("/api/habits/trend?period=month", headers=auth_headers).get_json()["trend"]
        assert monthly["trend_data"][0]["month"] == "2024-03-01"

        resp = client.get("/api/habits/trend?period=year", headers=auth_headers)
        assert resp.status_code == 400

    def test_insights(self, client, auth_headers, habit):
        insights = client.get("/api/habits/insights", headers=auth_headers).get_json()["insights"]
        assert insights[-1]["type"] == "overall_rate"
        assert insights[-1]["value"] == 75

    def test_progress_counts_completed_entries(self, client, auth_headers, habit):
        expected = {"total_xp": 30, "level": 1, "next_level_xp": 100, "xp_to_next_level": 70}

        resp = client.get("/api/habits/progress", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.get_json()["progress"] == expected

        body = client.get("/api/habits/insights", headers=auth_headers).get_json()
        assert body["progress"] == expected
