"""Day aggregate JSON API controllers."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from habitflow.core.utils.decorators import csrf_protected
from habitflow.domains.days import services
from habitflow.domains.days.mappers import map_calendar, map_day
from habitflow.domains.days.schemas.day_schemas import (
    CalendarFilter,
    DayCreate,
    DayHabitAdd,
    DayHabitCheck,
    DayListFilter,
    DayUpdate,
)
from habitflow.extensions import limiter

day_api_bp = Blueprint("day_api", __name__)


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


@day_api_bp.get("")
@jwt_required()
def list_days():
    params, err = _parse_query(DayListFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    days = services.list_days(user_id, start=params.start, end=params.end, status=params.status)
    return jsonify({"ok": True, "days": [map_day(day) for day in days]})


@day_api_bp.post("")
@jwt_required()
@csrf_protected
def create_day():
    payload = request.get_json(silent=True) or {}
    try:
        data = DayCreate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    day = services.create_day(user_id, **data.model_dump())
    return jsonify({"ok": True, "day": map_day(day)}), 201


@day_api_bp.put("")
@jwt_required()
@csrf_protected
def upsert_day():
    payload = request.get_json(silent=True) or {}
    try:
        data = DayCreate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    fields = data.model_dump(exclude_unset=True)
    fields.pop("date", None)
    fields.pop("habits", None)
    day, created = services.upsert_day(user_id, date=data.date, habits=data.habits, **fields)
    return jsonify({"ok": True, "day": map_day(day), "created": created}), 201 if created else 200


@day_api_bp.get("/calendar")
@jwt_required()
def calendar():
    params, err = _parse_query(CalendarFilter)
    if err:
        return _validation_error(err)
    user_id = int(get_jwt_identity())
    month = services.monthly_calendar(user_id, params.year, params.month)
    return jsonify({"ok": True, "calendar": map_calendar(month)})


@day_api_bp.get("/<int:day_id>")
@jwt_required()
def day_detail(day_id: int):
    user_id = int(get_jwt_identity())
    return jsonify({"ok": True, "day": map_day(services.get_day(user_id, day_id))})


@day_api_bp.patch("/<int:day_id>")
@jwt_required()
@csrf_protected
def update_day(day_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = DayUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    day = services.update_day(user_id, day_id, **data.model_dump(exclude_unset=True))
    return jsonify({"ok": True, "day": map_day(day)})


@day_api_bp.delete("/<int:day_id>")
@jwt_required()
@csrf_protected
def delete_day(day_id: int):
    user_id = int(get_jwt_identity())
    services.delete_day(user_id, day_id)
    return jsonify({"ok": True})


@day_api_bp.post("/<int:day_id>/habits")
@jwt_required()
@csrf_protected
def add_habit(day_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = DayHabitAdd.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    day = services.add_habit_to_day(user_id, day_id, data.habit_id)
    return jsonify({"ok": True, "day": map_day(day)}), 201


@day_api_bp.delete("/<int:day_id>/habits/<int:habit_id>")
@jwt_required()
@csrf_protected
def remove_habit(day_id: int, habit_id: int):
    user_id = int(get_jwt_identity())
    day = services.remove_habit_from_day(user_id, day_id, habit_id)
    return jsonify({"ok": True, "day": map_day(day)})


@day_api_bp.put("/<int:day_id>/habits/<int:habit_id>")
@jwt_required()
@csrf_protected
def check_habit(day_id: int, habit_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = DayHabitCheck.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    user_id = int(get_jwt_identity())
    day = services.check_habit_in_day(
        user_id,
        day_id,
        habit_id,
        completed=data.completed,
        quality=data.quality,
        notes=data.notes,
    )
    return jsonify({"ok": True, "day": map_day(day)})


@day_api_bp.post("/<int:day_id>/habits/<int:habit_id>/toggle")
@jwt_required()
@csrf_protected
@limiter.limit(_toggle_limit)
def toggle_habit(day_id: int, habit_id: int):
    user_id = int(get_jwt_identity())
    day = services.toggle_habit_in_day(user_id, day_id, habit_id)
    return jsonify({"ok": True, "day": map_day(day)})
