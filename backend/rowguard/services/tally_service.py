# Overview: Service-layer operations for tallies; version-checked counters with inline versioning.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..guard import ConcurrentModificationError
from ..models import Tally
from .store import get_store


class TallyError(Exception):
    pass


class TallyNotFoundError(TallyError):
    pass


def get_tally(tally_id: int) -> Tally | None:
    return get_store().get(Tally, tally_id)


def create_tally(name: str) -> Tally:
    tally = Tally(name=name, count=0)
    try:
        get_store().create(tally)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise TallyError(f"Tally '{name}' already exists")
    return tally


def increment_tally(tally_id: int, expected_version: int, by: int = 1) -> Tally:
    store = get_store()
    tally = store.get(Tally, tally_id)
    if tally is None:
        raise TallyNotFoundError(f"Tally {tally_id} not found")

    tally.assume_read_version(expected_version)
    try:
        store.update(tally, count=tally.count + by)
        db.session.commit()
    except ConcurrentModificationError as exc:
        db.session.rollback()
        current_app.logger.info("Tally increment rejected: %s", exc)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return tally


def delete_tally(tally_id: int, expected_version: int) -> None:
    store = get_store()
    tally = store.get(Tally, tally_id)
    if tally is None:
        raise TallyNotFoundError(f"Tally {tally_id} not found")

    tally.assume_read_version(expected_version)
    try:
        store.delete(tally)
        db.session.commit()
    except ConcurrentModificationError as exc:
        db.session.rollback()
        current_app.logger.info("Tally delete rejected: %s", exc)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise
