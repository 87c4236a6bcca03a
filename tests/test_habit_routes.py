"""HTTP tests for the habits and admin blueprints."""

from __future__ import annotations

import pytest

AUTH = {"Authorization": "Bearer test-admin-token"}


@pytest.fixture
def habit_id(client, app_user):
    response = client.post(
        "/habits/",
        json={
            "user_id": app_user.id,
            "title": "Read scripture",
            "category": "spiritual",
            "window_start": "06:00",
            "window_end": "08:00",
            "difficulty": 2,
        },
    )
    assert response.status_code == 201
    return response.get_json()["data"]["id"]


class TestHabitEndpoints:
    """Creating and listing habits."""

    def test_create_returns_habit(self, client, app_user):
        response = client.post("/habits/", json={"user_id": app_user.id, "title": "Stretch"})

        body = response.get_json()
        assert response.status_code == 201
        assert body["data"]["title"] == "Stretch"
        assert body["data"]["cadence"] == {"type": "daily", "rule": None}

    def test_create_rejects_bad_window(self, client, app_user):
        response = client.post(
            "/habits/",
            json={"user_id": app_user.id, "title": "Late", "window_start": "23:00", "window_end": "07:00"},
        )

        assert response.status_code == 400

    def test_create_requires_user(self, client):
        response = client.post("/habits/", json={"title": "Nobody"})

        assert response.status_code == 400
        assert "user_id" in response.get_json()["details"]

    def test_list_habits(self, client, app_user, habit_id):
        response = client.get(f"/habits/?user_id={app_user.id}")

        body = response.get_json()
        assert body["count"] == 1
        assert body["data"][0]["id"] == habit_id

    def test_archive_hides_habit(self, client, app_user, habit_id):
        archived = client.post(f"/habits/{habit_id}/archive", json={"user_id": app_user.id})

        active = client.get(f"/habits/?user_id={app_user.id}").get_json()
        only_archived = client.get(f"/habits/?user_id={app_user.id}&status=archived").get_json()
        checkin = client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "status": "done"},
        )
        schedule = client.get(f"/habits/{habit_id}/occurrences?user_id={app_user.id}").get_json()

        assert archived.status_code == 200
        assert archived.get_json()["data"]["archived"] is True
        assert active["count"] == 0
        assert only_archived["count"] == 1
        assert checkin.status_code == 404
        assert schedule["count"] == 0

    def test_archiving_twice_is_400(self, client, app_user, habit_id):
        client.post(f"/habits/{habit_id}/archive", json={"user_id": app_user.id})

        response = client.post(f"/habits/{habit_id}/archive", json={"user_id": app_user.id})

        assert response.status_code == 400
        assert "already archived" in response.get_json()["error"]

    def test_archive_unknown_habit_is_404(self, client, app_user):
        response = client.post("/habits/31337/archive", json={"user_id": app_user.id})

        assert response.status_code == 404

    def test_get_by_id(self, client, app_user, habit_id):
        response = client.get(f"/habits/{habit_id}?user_id={app_user.id}")

        assert response.status_code == 200
        assert response.get_json()["data"]["title"] == "Read scripture"

    def test_get_unknown_is_404(self, client, app_user):
        assert client.get(f"/habits/999?user_id={app_user.id}").status_code == 404

    def test_filter_by_category(self, client, app_user, habit_id):
        client.post(
            "/habits/",
            json={"user_id": app_user.id, "title": "Budget review", "category": "financial"},
        )

        spiritual = client.get(f"/habits/?user_id={app_user.id}&category=spiritual").get_json()
        both = client.get(
            f"/habits/?user_id={app_user.id}&category=spiritual,financial"
        ).get_json()
        repeated = client.get(
            f"/habits/?user_id={app_user.id}&category=financial&category=spiritual&status=active"
        ).get_json()

        assert [h["id"] for h in spiritual["data"]] == [habit_id]
        assert both["count"] == 2
        assert repeated["count"] == 2

    @pytest.mark.parametrize("query", ["category=hobbies", "status=deleted"])
    def test_bad_list_filter_is_400(self, client, app_user, query):
        response = client.get(f"/habits/?user_id={app_user.id}&{query}")

        assert response.status_code == 400


class TestHabitUpdateAndDelete:
    """PUT and DELETE on a single habit."""

    def test_partial_update_keeps_other_fields(self, client, app_user, habit_id):
        response = client.put(
            f"/habits/{habit_id}",
            json={"user_id": app_user.id, "title": "Read the Psalms", "difficulty": 3},
        )

        data = response.get_json()["data"]
        assert response.status_code == 200
        assert response.get_json()["message"] == "Habit updated successfully"
        assert data["title"] == "Read the Psalms"
        assert data["difficulty"] == 3
        assert data["category"] == "spiritual"
        assert data["window"] == {"start": "06:00", "end": "08:00"}

    @pytest.mark.parametrize(
        "changes",
        [
            {"category": "hobbies"},
            {"cadence_type": "hourly"},
            {"window_end": "05:00"},
            {"difficulty": 7},
            {"title": ""},
        ],
    )
    def test_invalid_update_is_400(self, client, app_user, habit_id, changes):
        response = client.put(f"/habits/{habit_id}", json={"user_id": app_user.id, **changes})

        assert response.status_code == 400
        assert client.get(f"/habits/{habit_id}?user_id={app_user.id}").get_json()["data"][
            "title"
        ] == "Read scripture"

    def test_update_can_archive(self, client, app_user, habit_id):
        response = client.put(f"/habits/{habit_id}", json={"user_id": app_user.id, "archived": True})

        assert response.get_json()["data"]["archived"] is True
        assert client.get(f"/habits/?user_id={app_user.id}").get_json()["count"] == 0

    def test_update_unknown_is_404(self, client, app_user):
        response = client.put("/habits/999", json={"user_id": app_user.id, "title": "Ghost"})

        assert response.status_code == 404

    def test_delete_removes_habit_and_checkins(self, client, app_user, habit_id):
        client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2099-01-01", "status": "done"},
        )
        client.post("/admin/daily-rollup", headers=AUTH, json={"date": "2099-01-01"})

        response = client.delete(f"/habits/{habit_id}?user_id={app_user.id}")

        assert response.status_code == 200
        assert response.get_json()["message"] == "Habit deleted successfully"
        assert client.get(f"/habits/{habit_id}?user_id={app_user.id}").status_code == 404
        assert client.get(f"/habits/checkin?user_id={app_user.id}").get_json()["count"] == 0
        summary = client.get(f"/habits/xp?user_id={app_user.id}").get_json()["data"]
        assert summary["total_xp"] == 31
        assert summary["recent"][0]["habit_id"] is None

    def test_delete_unknown_is_404(self, client, app_user):
        assert client.delete(f"/habits/999?user_id={app_user.id}").status_code == 404


class TestOccurrenceEndpoint:
    """Forward schedule over HTTP."""

    def test_schedule_for_explicit_start(self, client, app_user, habit_id):
        response = client.get(
            f"/habits/{habit_id}/occurrences?user_id={app_user.id}&start=2025-01-06&days=7"
        )

        body = response.get_json()
        assert response.status_code == 200
        assert body["count"] == 7
        assert body["data"][0]["date"] == "2025-01-06"
        assert body["data"][0]["window_start"] == "2025-01-06T06:00:00"
        assert body["data"][0]["overdue"] is True

    def test_default_horizon_comes_from_config(self, client, app_user, habit_id):
        response = client.get(f"/habits/{habit_id}/occurrences?user_id={app_user.id}")

        assert response.get_json()["count"] == 14

    def test_negative_days_is_rejected(self, client, app_user, habit_id):
        response = client.get(f"/habits/{habit_id}/occurrences?user_id={app_user.id}&days=-1")

        assert response.status_code == 400

    def test_days_above_a_year_is_rejected(self, client, app_user, habit_id):
        response = client.get(f"/habits/{habit_id}/occurrences?user_id={app_user.id}&days=10000")

        assert response.status_code == 400
        assert "days" in response.get_json()["details"]

    def test_a_full_year_is_allowed(self, client, app_user, habit_id):
        response = client.get(
            f"/habits/{habit_id}/occurrences?user_id={app_user.id}&start=2025-01-01&days=366"
        )

        assert response.get_json()["count"] == 366

    def test_unknown_habit_is_404(self, client, app_user):
        response = client.get(f"/habits/999/occurrences?user_id={app_user.id}")

        assert response.status_code == 404
        assert "error" in response.get_json()


class TestCheckinEndpoints:
    """Checkin create/update status codes and error mapping."""

    def test_first_post_creates_then_updates(self, client, app_user, habit_id):
        payload = {"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "status": "done"}

        first = client.post("/habits/checkin", json=payload)
        second = client.post("/habits/checkin", json={**payload, "status": "partial", "effort": 1})

        assert first.status_code == 201
        assert second.status_code == 200
        data = second.get_json()["data"]
        assert data["checkin"]["status"] == "partial"
        assert data["checkin"]["edited_at"] is not None

    def test_occurred_on_alias(self, client, app_user, habit_id):
        response = client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "occurred_on": "2025-01-07", "status": "done"},
        )

        assert response.status_code == 201
        assert response.get_json()["data"]["checkin"]["date"] == "2025-01-07"

    def test_invalid_status_is_400(self, client, app_user, habit_id):
        response = client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "status": "nope"},
        )

        assert response.status_code == 400
        assert "status" in response.get_json()["details"]

    def test_unknown_habit_is_404(self, client, app_user):
        response = client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": 4242, "date": "2025-01-06", "status": "done"},
        )

        assert response.status_code == 404

    def test_list_and_patch(self, client, app_user, habit_id):
        client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "status": "done"},
        )

        patched = client.patch(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "note": "short"},
        )
        listing = client.get(f"/habits/checkin?user_id={app_user.id}&habit_id={habit_id}")

        assert patched.status_code == 200
        assert listing.get_json()["count"] == 1
        assert listing.get_json()["data"][0]["note"] == "short"

    def test_patch_without_key_is_400(self, client, app_user):
        response = client.patch("/habits/checkin", json={"user_id": app_user.id, "status": "done"})

        assert response.status_code == 400

    def test_xp_summary_reflects_checkins(self, client, app_user, habit_id):
        client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2025-01-06", "status": "done"},
        )

        summary = client.get(f"/habits/xp?user_id={app_user.id}").get_json()["data"]

        assert summary["total_xp"] == 31
        assert len(summary["recent"]) == 1

    def test_metrics_default_before_rollup(self, client, app_user, habit_id):
        response = client.get(f"/habits/{habit_id}/metrics?user_id={app_user.id}")

        data = response.get_json()["data"]
        assert data["ema30"] == 0.5
        assert data["streak"]["current"] == 0
        assert data["maintenance_mode"] is False


class TestAdminRollup:
    """Bearer-token protected rollup trigger."""

    def test_missing_token_is_401(self, client):
        assert client.post("/admin/daily-rollup").status_code == 401

    def test_wrong_token_is_401(self, client):
        response = client.post("/admin/daily-rollup", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_runs_rollup_for_given_day(self, client, app_user, habit_id):
        client.post(
            "/habits/checkin",
            json={"user_id": app_user.id, "habit_id": habit_id, "date": "2099-01-01", "status": "done"},
        )

        response = client.post("/admin/daily-rollup", headers=AUTH, json={"date": "2099-01-01"})

        body = response.get_json()
        assert response.status_code == 200
        assert body["day"] == "2099-01-01"
        assert body["processed"] == 1
        assert body["errors"] == 0

    def test_invalid_date_is_400(self, client):
        response = client.post("/admin/daily-rollup", headers=AUTH, json={"date": "yesterday"})

        assert response.status_code == 400

    @pytest.mark.parametrize("body", [[1, 2], "2099-01-01", 7])
    def test_non_object_body_is_400(self, client, body):
        response = client.post("/admin/daily-rollup", headers=AUTH, json=body)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Request body must be a JSON object"


class TestAdminRollupStatus:
    """GET /admin/daily-rollup reports counts and the last rolled-up day."""

    def test_requires_token(self, client):
        assert client.get("/admin/daily-rollup").status_code == 401

    def test_before_any_rollup(self, client, habit_id):
        body = client.get("/admin/daily-rollup", headers=AUTH).get_json()

        assert body["active_habits"] == 1
        assert body["total_metrics"] == 0
        assert body["last_rollup"] is None
        assert body["rollup_status"] == "ready"

    def test_after_rollup(self, client, habit_id):
        client.post("/admin/daily-rollup", headers=AUTH, json={"date": "2099-01-01"})

        body = client.get("/admin/daily-rollup", headers=AUTH).get_json()

        assert body["total_metrics"] == 1
        assert body["last_rollup"] == "2099-01-01"
