# Overview: Flask API routes for records; parses input and returns JSON responses.

"""
Record routes.

OPTIMISTIC LOCK: every write must carry the `version` the client read.
A write against a record that changed in the meantime returns 409 with the
version the client sent; the client should reload and decide what to do.
"""
from flask import Blueprint, current_app, request

from ..guard import ConcurrentModificationError
from ..models import Record
from ..services import record_service
from ..services.record_service import RecordNotFoundError
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    parse_expected_version,
    validate_payload,
)

RECORD_POLICY = ModelValidationPolicy(
    writable_fields={"name", "value"},
    required_on_create={"name"},
)

records_bp = Blueprint("records", __name__, url_prefix="/api/records")


def _conflict(exc: ConcurrentModificationError):
    return {"error": str(exc), "expected_version": exc.expected_version}, 409


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in {"1", "true", "yes"}


@records_bp.get("")
def list_records():
    """
    Query params:
    - include_deleted: 1/true to include soft-deleted records
    """
    records = record_service.list_records(include_deleted=_flag("include_deleted"))
    return {"items": [r.to_dict() for r in records]}, 200


@records_bp.post("")
def create_record_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Record, payload=payload, policy=RECORD_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        record = record_service.create_record(patch)
    except Exception:
        current_app.logger.exception("Failed to create record")
        return {"error": "Failed to create record"}, 500

    return record.to_dict(), 201


@records_bp.get("/<int:record_id>")
def get_record_route(record_id: int):
    record = record_service.get_record(record_id, include_deleted=_flag("include_deleted"))
    if record is None:
        return {"error": "Record not found"}, 404
    return record.to_dict(), 200


@records_bp.put("/<int:record_id>")
def update_record_route(record_id: int):
    """
    Body: writable fields plus `version` (the version the client read).
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400
    payload = dict(payload)

    try:
        expected_version = parse_expected_version(payload.pop("version", None))
        patch = validate_payload(model=Record, payload=payload, policy=RECORD_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        record = record_service.update_record(record_id, expected_version, patch)
    except RecordNotFoundError:
        return {"error": "Record not found"}, 404
    except ConcurrentModificationError as e:
        return _conflict(e)

    return record.to_dict(), 200


@records_bp.delete("/<int:record_id>")
def delete_record_route(record_id: int):
    """
    Query params:
    - version: required, the version the client read
    - hard: 1/true to remove the row instead of marking it deleted
    """
    hard = _flag("hard")
    try:
        expected_version = parse_expected_version(request.args.get("version"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        record = record_service.delete_record(record_id, expected_version, hard=hard)
    except RecordNotFoundError:
        return {"error": "Record not found"}, 404
    except ConcurrentModificationError as e:
        return _conflict(e)

    if hard:
        return {"ok": True}, 200
    return record.to_dict(), 200
