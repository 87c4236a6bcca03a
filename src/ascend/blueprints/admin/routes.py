"""Admin routes: scheduled-job triggers."""

from __future__ import annotations

import hmac
from datetime import date

from flask import current_app, jsonify, request

from ...errors import ValidationError
from ...extensions import get_session_factory
from ...logging_config import get_logger
from ...services.rollup import rollup_status, run_daily_rollup
from . import bp

logger = get_logger("admin")


def _authorized() -> bool:
    token = current_app.config["ASCEND_CONFIG"].ADMIN_TOKEN
    header = request.headers.get("Authorization", "")
    if not token or not header.startswith("Bearer "):
        return False
    return hmac.compare_digest(header[len("Bearer "):], token)


def _unauthorized():
    return jsonify({"error": "Unauthorized - Admin access required"}), 401


@bp.post("/daily-rollup")
def daily_rollup():
    """Run the metrics rollup for every active habit."""

    if not _authorized():
        return _unauthorized()

    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    day = None
    if body.get("date"):
        try:
            day = date.fromisoformat(str(body["date"]))
        except ValueError as exc:
            raise ValidationError("Invalid date", details={"date": ["expected YYYY-MM-DD"]}) from exc

    report = run_daily_rollup(get_session_factory(), day=day)
    logger.info("Rollup triggered over HTTP", extra={"day": report.day.isoformat()})
    return jsonify({"success": True, "message": "Daily rollup completed", **report.to_dict()})


@bp.get("/daily-rollup")
def daily_rollup_status():
    """Habit and metrics counts plus the last day rolled up."""

    if not _authorized():
        return _unauthorized()
    return jsonify({"success": True, **rollup_status(get_session_factory())})
