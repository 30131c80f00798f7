# Overview: Persistence executor that runs version-conditioned statements for Versioned models.

"""
VersionedStore

Runs creates, loads, updates and deletes for Versioned models on a
SQLAlchemy session, calling into the guard before and after each statement.

Writes are issued as single Core UPDATE/DELETE statements so the version
condition and the write are applied atomically by the database. Changed
attributes are settled as committed on the ORM instance afterwards, so a
later session flush never re-sends them without the version condition.

Transaction control stays with the caller: the store never commits or
rolls back.
"""

from __future__ import annotations

import logging
from typing import Optional, TypeVar

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from .guard import (
    VERSION_COLUMN,
    ConcurrentModificationError,
    StatementResult,
    Versioned,
    WriteCondition,
)
from .time_utils import utcnow


logger = logging.getLogger(__name__)

V = TypeVar("V", bound=Versioned)


class VersionedStore:
    """
    soft_delete_sets_version: whether the soft-delete statement can carry
    the version assignment. When False, the marker update leaves the stored
    version behind and a corrective write brings it up to date.
    """

    def __init__(self, session: Session, *, soft_delete_sets_version: bool = True):
        self.session = session
        self.soft_delete_sets_version = soft_delete_sets_version

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: type[V], ident, *, unscoped: bool = False) -> Optional[V]:
        pk = sa.inspect(model).primary_key[0]
        stmt = self._scoped(model, sa.select(model).where(pk == ident), unscoped)
        stmt = stmt.execution_options(populate_existing=True)
        entity = self.session.execute(stmt).scalars().first()
        if entity is not None:
            entity.on_loaded()
        return entity

    def find_all(self, model: type[V], *, unscoped: bool = False) -> list[V]:
        stmt = sa.select(model).order_by(*sa.inspect(model).primary_key)
        stmt = self._scoped(model, stmt, unscoped).execution_options(populate_existing=True)
        entities = list(self.session.execute(stmt).scalars())
        for entity in entities:
            entity.on_loaded()
        return entities

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, entity: V) -> V:
        entity.version = 1
        self.session.add(entity)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            entity.on_created(exc)
            raise
        entity.on_created()
        return entity

    def update(self, entity: V, **changes) -> V:
        """
        Apply changes and write every pending column change in one
        conditioned UPDATE that also bumps the version.
        """
        with self.session.no_autoflush:
            return self._update(entity, changes)

    def _update(self, entity: V, changes: dict) -> V:
        mapper = sa.inspect(type(entity))
        for key, value in changes.items():
            if key not in mapper.column_attrs:
                raise AttributeError(f"{type(entity).__name__} has no column {key!r}")
            setattr(entity, key, value)

        values = self._pending_values(entity)
        condition = entity.prepare_conditioned_write(bump_version=True)
        table = mapper.local_table
        values[table.c[VERSION_COLUMN]] = condition.assigned

        stmt = (
            sa.update(table)
            .where(self._identity_clause(entity), table.c[VERSION_COLUMN] == condition.expected)
            .values(values)
        )
        try:
            self._dispatch(entity, stmt, condition)
        finally:
            self._settle(entity, values)
        return entity

    def delete(self, entity: V, *, hard: bool = False) -> V:
        """
        Soft delete when the model has a deletion marker, unless hard is set.
        A hard delete removes the row and does not bump the version.
        """
        with self.session.no_autoflush:
            return self._delete(entity, hard)

    def _delete(self, entity: V, hard: bool) -> V:
        model = type(entity)
        soft = not hard and self._supports_soft_delete(model)
        condition = entity.prepare_conditioned_write(bump_version=soft)
        table = sa.inspect(model).local_table
        where = [self._identity_clause(entity), table.c[VERSION_COLUMN] == condition.expected]

        if soft:
            marker = table.c[model.__soft_delete_column__]
            deleted_at = utcnow()
            values = {marker: deleted_at}
            if self.soft_delete_sets_version:
                values[table.c[VERSION_COLUMN]] = condition.assigned
            stmt = sa.update(table).where(*where, marker.is_(None)).values(values)
        else:
            stmt = sa.delete(table).where(*where)

        self._dispatch(entity, stmt, condition)

        if not soft:
            if entity in self.session:
                self.session.expunge(entity)
            return entity

        set_committed_value(entity, model.__soft_delete_column__, deleted_at)
        if entity.needs_version_repair(soft, self.soft_delete_sets_version):
            self._repair_version(entity, condition)
        return entity

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(self, entity: Versioned, stmt, condition: WriteCondition) -> StatementResult:
        try:
            cursor = self.session.execute(stmt)
        except SQLAlchemyError as exc:
            entity.confirm_write_applied(StatementResult(rowcount=0, error=exc), condition)
            raise

        result = StatementResult(rowcount=cursor.rowcount)
        try:
            entity.confirm_write_applied(result, condition)
        except ConcurrentModificationError as exc:
            logger.info("Conditioned write rejected: %s", exc)
            raise
        return result

    def _repair_version(self, entity: Versioned, condition: WriteCondition) -> None:
        # Unscoped: the row is already marked deleted. Not re-checked for conflicts.
        table = sa.inspect(type(entity)).local_table
        stmt = (
            sa.update(table)
            .where(self._identity_clause(entity), table.c[VERSION_COLUMN] == condition.expected)
            .values({table.c[VERSION_COLUMN]: entity.version})
        )
        cursor = self.session.execute(stmt)
        if cursor.rowcount < 1:
            logger.warning(
                "Version repair after soft delete matched no row for %s %r (expected version %s)",
                type(entity).__name__,
                entity._identity(),
                condition.expected,
            )

    def _pending_values(self, entity: Versioned) -> dict:
        state = sa.inspect(entity)
        values = {}
        for attr in state.mapper.column_attrs:
            if attr.key == VERSION_COLUMN:
                continue
            if state.attrs[attr.key].history.has_changes():
                values[attr.columns[0]] = getattr(entity, attr.key)
        return values

    def _settle(self, entity: Versioned, values: dict) -> None:
        mapper = sa.inspect(type(entity))
        for column, value in values.items():
            key = mapper.get_property_by_column(column).key
            if key != VERSION_COLUMN:
                set_committed_value(entity, key, value)

    @staticmethod
    def _identity_clause(entity: Versioned):
        # Persistent entities carry their identity key, even when expired.
        state = sa.inspect(entity)
        pk_values = state.identity or state.mapper.primary_key_from_instance(entity)
        return sa.and_(*[col == val for col, val in zip(state.mapper.primary_key, pk_values)])

    @staticmethod
    def _supports_soft_delete(model) -> bool:
        column = getattr(model, "__soft_delete_column__", None)
        return column is not None and column in sa.inspect(model).local_table.c

    def _scoped(self, model, stmt, unscoped: bool):
        if unscoped or not self._supports_soft_delete(model):
            return stmt
        return stmt.where(getattr(model, model.__soft_delete_column__).is_(None))
