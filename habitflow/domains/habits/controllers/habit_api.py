"""Habits JSON API controllers (thin, schema-validated)."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from habitflow.core.dates import today
from habitflow.core.utils.decorators import csrf_protected
from habitflow.domains.habits import services as habit_services
from habitflow.domains.habits.mappers import (
    map_completion,
    map_habit,
    map_habit_summary,
    map_month,
    map_progress,
    map_stats,
    map_streak,
)
from habitflow.domains.habits.schemas.habit_schemas import (
    CompletionRangeFilter,
    CompletionRecord,
    CompletionToggle,
    CompletionUpdate,
    HabitCreate,
    HabitUpdate,
    HeatmapFilter,
    MonthFilter,
    TrendFilter,
)
from habitflow.extensions import limiter

habit_api_bp = Blueprint("habit_api", __name__)


def _toggle_limit() -> str:
    return current_app.config.get("RATELIMIT_TOGGLE", "120/minute")


def _validation_error(exc: ValidationError):
    return (
        jsonify({"ok": False, "error": "validation_error", "details": exc.errors(include_url=False)}),
        400,
    )


def _parse_query(schema_cls):
    data = {k: v for k, v in request.args.items()}
    try:
        return schema_cls.model_validate(data), None
    except ValidationError as exc:
        return None, exc


def _trend_days(params: TrendFilter) -> int:
    return params.days or current_app.config.get("HABITS_TREND_DEFAULT_DAYS", 30)


@habit_api_bp.get("")
@jwt_required()
def list_habits():
    user_id = int(get_jwt_identity())
    habits = habit_services.list_habits(user_id)
    return jsonify({"ok": True, "habits": [map_habit_summary(item) for item in habits]})


@habit_api_bp.post("")
@jwt_required()
@csrf_protected
def create_habit():
    payload = request.get_json(silent=True) or {}
    try:
        data = HabitCreate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    habit = habit_services.create_habit(user_id, **data.model_dump())
    return jsonify({"ok": True, "habit": map_habit(habit)}), 201


@habit_api_bp.get("/<int:habit_id>")
@jwt_required()
def habit_detail(habit_id: int):
    user_id = int(get_jwt_identity())
    habit = habit_services.get_owned_habit(user_id, habit_id)
    return jsonify({"ok": True, "habit": map_habit(habit)})


@habit_api_bp.patch("/<int:habit_id>")
@jwt_required()
@csrf_protected
def update_habit(habit_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = HabitUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    habit = habit_services.update_habit(user_id, habit_id, **data.model_dump(exclude_unset=True))
    return jsonify({"ok": True, "habit": map_habit(habit)})


@habit_api_bp.delete("/<int:habit_id>")
@jwt_required()
@csrf_protected
def delete_habit(habit_id: int):
    user_id = int(get_jwt_identity())
    habit_services.delete_habit(user_id, habit_id)
    return jsonify({"ok": True})


@habit_api_bp.get("/<int:habit_id>/completions")
@jwt_required()
def list_completions(habit_id: int):
    params, err = _parse_query(CompletionRangeFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    entries = habit_services.list_by_range(user_id, habit_id, params.start, params.end)
    return jsonify({"ok": True, "completions": [map_completion(entry) for entry in entries]})


@habit_api_bp.post("/<int:habit_id>/completions")
@jwt_required()
@csrf_protected
def record_completion(habit_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = CompletionRecord.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    entry = habit_services.record_completion(
        user_id,
        habit_id,
        data.date,
        completed=data.completed,
        quality=data.quality,
        skip_reason=data.skip_reason,
        skip_reason_text=data.skip_reason_text,
        notes=data.notes,
    )
    return jsonify({"ok": True, "completion": map_completion(entry)}), 201


@habit_api_bp.post("/<int:habit_id>/completions/toggle")
@jwt_required()
@csrf_protected
@limiter.limit(_toggle_limit)
def toggle_completion(habit_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = CompletionToggle.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    entry = habit_services.toggle_completion(user_id, habit_id, data.date or today())
    habit = habit_services.get_owned_habit(user_id, habit_id)
    return jsonify({"ok": True, "completion": map_completion(entry), "habit": map_habit(habit)})


@habit_api_bp.patch("/completions/<int:entry_id>")
@jwt_required()
@csrf_protected
def update_completion(entry_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = CompletionUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    entry = habit_services.update_completion(user_id, entry_id, **data.model_dump(exclude_unset=True))
    return jsonify({"ok": True, "completion": map_completion(entry)})


@habit_api_bp.delete("/completions/<int:entry_id>")
@jwt_required()
@csrf_protected
def delete_completion(entry_id: int):
    user_id = int(get_jwt_identity())
    habit_services.delete_completion(user_id, entry_id)
    return jsonify({"ok": True})


@habit_api_bp.get("/completions/month")
@jwt_required()
def completions_by_month():
    params, err = _parse_query(MonthFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    by_day = habit_services.list_by_month(user_id, params.month)
    return jsonify({"ok": True, "month": params.month, "days": map_month(by_day)})


@habit_api_bp.get("/<int:habit_id>/stats")
@jwt_required()
def habit_stats(habit_id: int):
    user_id = int(get_jwt_identity())
    stats = habit_services.compute_habit_stats(user_id, habit_id)
    return jsonify({"ok": True, "stats": map_stats(stats)})


@habit_api_bp.get("/<int:habit_id>/heatmap")
@jwt_required()
def habit_heatmap(habit_id: int):
    params, err = _parse_query(HeatmapFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    heatmap = habit_services.get_heatmap(user_id, habit_id, params.month_offset)
    return jsonify({"ok": True, "heatmap": heatmap})


@habit_api_bp.get("/<int:habit_id>/streak")
@jwt_required()
def habit_streak(habit_id: int):
    user_id = int(get_jwt_identity())
    detail = habit_services.get_streak_detail(user_id, habit_id)
    return jsonify({"ok": True, "streak": map_streak(detail)})


@habit_api_bp.get("/<int:habit_id>/trend")
@jwt_required()
def habit_trend(habit_id: int):
    params, err = _parse_query(TrendFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    trend = habit_services.get_habit_trend(user_id, habit_id, _trend_days(params), params.period)
    return jsonify({"ok": True, "trend": trend})


@habit_api_bp.get("/trend")
@jwt_required()
def overall_trend():
    params, err = _parse_query(TrendFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    trend = habit_services.get_overall_trend(user_id, _trend_days(params), params.period)
    return jsonify({"ok": True, "trend": trend})


@habit_api_bp.get("/insights")
@jwt_required()
def insights():
    user_id = int(get_jwt_identity())
    return jsonify(
        {
            "ok": True,
            "insights": habit_services.get_insights(user_id),
            "progress": map_progress(habit_services.get_progress(user_id)),
        }
    )


@habit_api_bp.get("/progress")
@jwt_required()
def progress():
    user_id = int(get_jwt_identity())
    return jsonify({"ok": True, "progress": map_progress(habit_services.get_progress(user_id))})
