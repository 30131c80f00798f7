# Overview: Flask API routes for tallies; parses input and returns JSON responses.

from flask import Blueprint, request

from ..guard import ConcurrentModificationError
from ..services import tally_service
from ..services.tally_service import TallyError, TallyNotFoundError
from ..validation import ValidationError, coerce_int, parse_expected_version

tallies_bp = Blueprint("tallies", __name__, url_prefix="/api/tallies")


@tallies_bp.post("")
def create_tally_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400
    name = str(data.get("name") or "").strip()
    if not name:
        return {"error": "name is required"}, 400
    try:
        tally = tally_service.create_tally(name)
    except TallyError as exc:
        return {"error": str(exc)}, 409
    return tally.to_dict(), 201


@tallies_bp.get("/<int:tally_id>")
def get_tally_route(tally_id: int):
    tally = tally_service.get_tally(tally_id)
    if tally is None:
        return {"error": "Tally not found"}, 404
    return tally.to_dict(), 200


@tallies_bp.post("/<int:tally_id>/increment")
def increment_tally_route(tally_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400
    try:
        expected_version = parse_expected_version(data.get("version"))
        by = coerce_int("by", data.get("by", 1))
    except ValidationError as exc:
        return {"error": str(exc)}, 400

    try:
        tally = tally_service.increment_tally(tally_id, expected_version, by=by)
    except TallyNotFoundError:
        return {"error": "Tally not found"}, 404
    except ConcurrentModificationError as exc:
        return {"error": str(exc), "expected_version": exc.expected_version}, 409
    return tally.to_dict(), 200


@tallies_bp.delete("/<int:tally_id>")
def delete_tally_route(tally_id: int):
    try:
        expected_version = parse_expected_version(request.args.get("version"))
    except ValidationError as exc:
        return {"error": str(exc)}, 400

    try:
        tally_service.delete_tally(tally_id, expected_version)
    except TallyNotFoundError:
        return {"error": "Tally not found"}, 404
    except ConcurrentModificationError as exc:
        return {"error": str(exc), "expected_version": exc.expected_version}, 409
    return {"ok": True}, 200
