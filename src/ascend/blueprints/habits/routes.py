"""Habit, schedule and checkin routes."""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app, jsonify, request

from ...errors import ValidationError
from ...extensions import get_session_factory
from ...forms import HabitCategory
from ...services import checkins as checkin_service
from ...services import habits as habit_service
from . import bp

MAX_SCHEDULE_DAYS = 366


def _require_user_id(source: dict | None = None) -> int:
    """Read the caller's user id from the JSON body or the query string."""

    raw = source.get("user_id") if isinstance(source, dict) else None
    if raw is None:
        raw = request.args.get("user_id")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("User ID is required", details={"user_id": ["required"]}) from exc


def _optional_date(name: str) -> date | None:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}", details={name: ["expected YYYY-MM-DD"]}) from exc


def _optional_int(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}", details={name: ["expected an integer"]}) from exc


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _category_filter() -> list[str]:
    """``category`` may repeat or hold a comma-separated list."""

    categories = [
        part.strip()
        for raw in request.args.getlist("category")
        for part in raw.split(",")
        if part.strip()
    ]
    allowed = {category.value for category in HabitCategory}
    unknown = sorted(set(categories) - allowed)
    if unknown:
        raise ValidationError(
            "Invalid category", details={"category": [f"unknown: {', '.join(unknown)}"]}
        )
    return categories


@bp.get("/")
def list_habits():
    """List the caller's habits.

    ``status`` is ``active`` (default) or ``archived``; ``category`` narrows
    the list to one or more life areas.
    """

    user_id = _require_user_id()
    status = request.args.get("status") or "active"
    if status not in ("active", "archived"):
        raise ValidationError("Invalid status", details={"status": ["expected active or archived"]})
    include_archived = status == "archived"
    habits = habit_service.list_habits(
        get_session_factory(),
        user_id=user_id,
        include_archived=include_archived,
        categories=_category_filter(),
    )
    if include_archived:
        habits = [habit for habit in habits if habit.archived]
    return jsonify({"success": True, "data": [h.to_dict() for h in habits], "count": len(habits)})


@bp.post("/")
def create_habit():
    body = _json_body()
    user_id = _require_user_id(body)
    payload = {key: value for key, value in body.items() if key != "user_id"}
    habit = habit_service.create_habit(get_session_factory(), user_id=user_id, payload=payload)
    return (
        jsonify({"success": True, "data": habit.to_dict(), "message": "Habit created successfully"}),
        201,
    )


@bp.get("/<int:habit_id>")
def get_habit(habit_id: int):
    user_id = _require_user_id()
    habit = habit_service.get_habit(get_session_factory(), habit_id, user_id=user_id)
    return jsonify({"success": True, "data": habit.to_dict()})


@bp.put("/<int:habit_id>")
def update_habit(habit_id: int):
    """Partially update a habit; omitted fields keep their stored values."""

    body = _json_body()
    user_id = _require_user_id(body)
    changes = {key: value for key, value in body.items() if key != "user_id"}
    habit = habit_service.update_habit(
        get_session_factory(), habit_id, user_id=user_id, changes=changes
    )
    return jsonify({"success": True, "data": habit.to_dict(), "message": "Habit updated successfully"})


@bp.delete("/<int:habit_id>")
def delete_habit(habit_id: int):
    user_id = _require_user_id(request.get_json(silent=True))
    habit_service.delete_habit(get_session_factory(), habit_id, user_id=user_id)
    return jsonify({"success": True, "message": "Habit deleted successfully"})


@bp.get("/<int:habit_id>/occurrences")
def habit_occurrences(habit_id: int):
    """Forward schedule for a habit with due/overdue flags."""

    user_id = _require_user_id()
    habit = habit_service.get_habit(get_session_factory(), habit_id, user_id=user_id)
    days = _optional_int("days")
    if days is None:
        days = current_app.config["ASCEND_CONFIG"].OCCURRENCE_HORIZON_DAYS
    if days < 0:
        raise ValidationError("Invalid days", details={"days": ["must be >= 0"]})
    if days > MAX_SCHEDULE_DAYS:
        raise ValidationError(
            "Invalid days", details={"days": [f"must be <= {MAX_SCHEDULE_DAYS}"]}
        )
    schedule = habit_service.habit_schedule(
        habit, start=_optional_date("start"), days=days, now=datetime.now()
    )
    return jsonify({"success": True, "data": schedule, "count": len(schedule)})


@bp.get("/<int:habit_id>/metrics")
def habit_metrics(habit_id: int):
    user_id = _require_user_id()
    session_factory = get_session_factory()
    habit = habit_service.get_habit(session_factory, habit_id, user_id=user_id)
    metrics = habit_service.habit_metrics(session_factory, habit)
    return jsonify({"success": True, "data": metrics.to_dict()})


@bp.post("/<int:habit_id>/archive")
def archive_habit(habit_id: int):
    user_id = _require_user_id(request.get_json(silent=True))
    habit = habit_service.archive_habit(get_session_factory(), habit_id, user_id=user_id)
    return jsonify({"success": True, "data": habit.to_dict(), "message": "Habit archived"})


@bp.get("/xp")
def user_xp():
    user_id = _require_user_id()
    limit = _optional_int("limit") or 20
    summary = habit_service.xp_summary(get_session_factory(), user_id=user_id, limit=limit)
    return jsonify({"success": True, "data": summary})


@bp.post("/checkin")
def submit_checkin():
    """Create the checkin for (habit, date), or update it in place."""

    body = _json_body()
    user_id = _require_user_id(body)
    payload = {key: value for key, value in body.items() if key != "user_id"}
    if "date" not in payload and "occurred_on" in payload:
        payload["date"] = payload.pop("occurred_on")
    result = checkin_service.record_checkin(get_session_factory(), user_id=user_id, payload=payload)
    message = "Checkin created successfully" if result.created else "Checkin updated successfully"
    return (
        jsonify({"success": True, "data": result.to_dict(), "message": message}),
        201 if result.created else 200,
    )


@bp.get("/checkin")
def get_checkins():
    user_id = _require_user_id()
    rows = checkin_service.list_checkins(
        get_session_factory(),
        user_id=user_id,
        habit_id=_optional_int("habit_id"),
        occurred_on=_optional_date("date"),
    )
    return jsonify({"success": True, "data": [row.to_dict() for row in rows], "count": len(rows)})


@bp.patch("/checkin")
def patch_checkin():
    body = _json_body()
    user_id = _require_user_id(body)
    try:
        habit_id = int(body["habit_id"])
        occurred_on = date.fromisoformat(str(body["date"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(
            "Missing required fields: habit_id, date",
            details={"habit_id": ["required"], "date": ["required, YYYY-MM-DD"]},
        ) from exc
    changes = {
        key: value
        for key, value in body.items()
        if key in {"status", "effort", "dose_actual", "note"}
    }
    result = checkin_service.update_checkin(
        get_session_factory(),
        user_id=user_id,
        habit_id=habit_id,
        occurred_on=occurred_on,
        changes=changes,
    )
    return jsonify(
        {"success": True, "data": result.to_dict(), "message": "Checkin updated successfully"}
    )
