"""Journal JSON API."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from moodlog.core.telemetry import enrichment_telemetry
from moodlog.core.utils.decorators import current_roles, require_roles
from moodlog.domains.journal.errors import JournalError
from moodlog.domains.journal.mappers import map_entry
from moodlog.domains.journal.schemas.journal_schemas import (
    JournalEntryCreate,
    JournalEntryListFilter,
    JournalEntryListResponse,
    JournalEntryUpdate,
)
from moodlog.domains.journal.services import entry_read_service, journal_service, weather_service
from moodlog.domains.journal.services.reconciliation_service import run_sweep

journal_api_bp = Blueprint("journal_api", __name__)


@journal_api_bp.errorhandler(JournalError)
def _journal_error(exc: JournalError):
    return jsonify({"ok": False, "error": exc.code}), exc.status


def _validation_error(exc: ValidationError):
    return jsonify({"ok": False, "error": "validation_error", "details": exc.errors(include_url=False)}), 400


@journal_api_bp.get("")
@jwt_required()
def list_journal():
    owner_id = str(get_jwt_identity())
    try:
        filters = JournalEntryListFilter.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return _validation_error(exc)
    views = entry_read_service.list_entry_views(owner_id)
    total = len(views)
    start = (filters.page - 1) * filters.per_page
    page = JournalEntryListResponse(
        items=views[start : start + filters.per_page],
        page=filters.page,
        pages=(total + filters.per_page - 1) // filters.per_page,
        total=total,
    )
    return jsonify({"ok": True, **page.model_dump()})


@journal_api_bp.get("/<entry_id>")
@jwt_required()
def get_entry(entry_id: str):
    owner_id = str(get_jwt_identity())
    view = entry_read_service.get_entry_view(owner_id, entry_id, roles=current_roles())
    if view is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "entry": view})


@journal_api_bp.post("")
@jwt_required()
def create_journal_entry():
    payload = request.get_json(silent=True) or {}
    try:
        data = JournalEntryCreate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    owner_id = str(get_jwt_identity())
    weather = data.weather
    if weather is None and data.latitude is not None and data.longitude is not None:
        weather = weather_service.fetch_weather_snapshot(data.latitude, data.longitude)
    try:
        entry = journal_service.create_or_update_entry(
            owner_id,
            None,
            title=data.title,
            content=data.content,
            weather=weather,
        )
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    return jsonify({"ok": True, "entry": map_entry(entry)}), 201


@journal_api_bp.patch("/<entry_id>")
@jwt_required()
def update_journal_entry(entry_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        data = JournalEntryUpdate.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)
    owner_id = str(get_jwt_identity())
    # An omitted title keeps the stored one; an explicit null clears it.
    title = data.title if "title" in data.model_fields_set else journal_service.KEEP_TITLE
    try:
        entry = journal_service.create_or_update_entry(
            owner_id,
            entry_id,
            title=title,
            content=data.content,
            expected_version=data.expected_version,
        )
    except ValueError:
        return jsonify({"ok": False, "error": "validation_error"}), 400
    return jsonify({"ok": True, "entry": map_entry(entry)})


@journal_api_bp.delete("/<entry_id>")
@jwt_required()
def delete_journal_entry(entry_id: str):
    owner_id = str(get_jwt_identity())
    deleted = journal_service.delete_entry(owner_id, entry_id)
    if not deleted:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True})


@journal_api_bp.post("/admin/sweep")
@require_roles(["admin"])
def trigger_sweep():
    age = request.args.get("pending_age", type=float)
    if age is None:
        age = float(current_app.config["SWEEP_PENDING_AGE_SECONDS"])
    republished = run_sweep(pending_age_seconds=age)
    return jsonify({"ok": True, "republished": republished})


@journal_api_bp.get("/admin/enrichment-stats")
@require_roles(["admin"])
def enrichment_stats():
    return jsonify({"ok": True, "stats": asdict(enrichment_telemetry.snapshot())})
