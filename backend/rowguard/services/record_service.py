# Overview: Service-layer operations for records; encapsulates version-checked database work.

"""
Record Service

Every write is conditioned on the version the client last read. A write
that loses the race raises ConcurrentModificationError after the session
has been rolled back; whether to reload and retry is the caller's call.

SOFT DELETE: delete_record() marks the row deleted and bumps its version.
Deleted records are hidden from default reads. hard=True removes the row.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..guard import ConcurrentModificationError
from ..models import Record
from .store import get_store


class RecordNotFoundError(Exception):
    """Raised when no record with the given id is visible."""


def list_records(include_deleted: bool = False) -> list[Record]:
    return get_store().find_all(Record, unscoped=include_deleted)


def get_record(record_id: int, include_deleted: bool = False) -> Record | None:
    return get_store().get(Record, record_id, unscoped=include_deleted)


def create_record(patch: dict) -> Record:
    record = Record(**patch)
    try:
        get_store().create(record)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return record


def update_record(record_id: int, expected_version: int, patch: dict) -> Record:
    """
    Apply patch to the record if it is still at expected_version.

    Raises RecordNotFoundError if the record is absent or soft-deleted.
    """
    store = get_store()
    record = store.get(Record, record_id)
    if record is None:
        raise RecordNotFoundError(f"Record {record_id} not found")

    record.assume_read_version(expected_version)
    try:
        store.update(record, **patch)
        db.session.commit()
    except ConcurrentModificationError as exc:
        db.session.rollback()
        current_app.logger.info("Record update rejected: %s", exc)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return record


def delete_record(record_id: int, expected_version: int, hard: bool = False) -> Record:
    """
    Soft delete (default) or hard delete a record at expected_version.

    A hard delete may target an already soft-deleted record.
    """
    store = get_store()
    record = store.get(Record, record_id, unscoped=hard)
    if record is None:
        raise RecordNotFoundError(f"Record {record_id} not found")

    record.assume_read_version(expected_version)
    try:
        store.delete(record, hard=hard)
        db.session.commit()
    except ConcurrentModificationError as exc:
        db.session.rollback()
        current_app.logger.info("Record delete rejected: %s", exc)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return record
