# Overview: Version guard for optimistic concurrency control on versioned rows.

"""
Version Guard

Every versioned row carries a `version` column. Writes are conditioned on the
version this in-memory copy last confirmed in storage:

    UPDATE t SET ..., version = :read + 1 WHERE id = :id AND version = :read
    DELETE FROM t WHERE id = :id AND version = :read

If the statement affects zero rows, somebody else changed (or removed) the
row since it was read, and the write is reported as a
ConcurrentModificationError.

The guard holds no locks. It relies on a single UPDATE/DELETE being applied
atomically by the database.

POLICIES:
- CACHED_READ: the read-check value is a transient `_read_version` captured
  at create/load time and refreshed after each successful write. Direct
  edits of `version` by application code do not affect it.
- INLINE: the read-check value is the in-memory `version` field itself.
  An expired field is never reloaded for the check; it reads as 0, so the
  write conflicts until the copy is loaded again.

The persistence layer (see persistence.VersionedStore) calls into the guard
at explicit points; the guard never talks to the database on its own.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.orm.attributes import set_committed_value

from .extensions import db


VERSION_COLUMN = "version"


class ConcurrentModificationError(Exception):
    """409-level conflict: a conditioned write matched no row."""

    def __init__(self, model_name: str, identity, expected_version: int):
        self.model_name = model_name
        self.identity = identity
        self.expected_version = expected_version
        super().__init__(
            f"Concurrent modification detected on {model_name} {identity!r}: "
            f"no row matched version {expected_version}"
        )


class VersionPolicy(str, enum.Enum):
    CACHED_READ = "cached_read"
    INLINE = "inline"


@dataclass(frozen=True)
class WriteCondition:
    """Condition to merge into an outgoing statement."""
    column: str
    expected: int
    assigned: Optional[int] = None

    @property
    def bumps_version(self) -> bool:
        return self.assigned is not None


@dataclass(frozen=True)
class StatementResult:
    """What the executor reports back after running a statement."""
    rowcount: int
    error: Optional[BaseException] = None


class Versioned:
    """
    Mixin adding an optimistic-lock version to a db.Model.

    The column is NOT NULL with a default of 1. Writes must go through a
    VersionedStore; a plain ORM flush of a versioned entity is unconditioned.
    """
    __version_policy__ = VersionPolicy.CACHED_READ

    version = db.Column(db.BigInteger, nullable=False, default=1)

    # Never persisted. None until created or loaded through the store.
    _read_version = None

    @property
    def read_version(self) -> Optional[int]:
        return self._read_version

    def read_check_value(self) -> int:
        if self.__version_policy__ is VersionPolicy.INLINE:
            # Loaded state only; an expired copy is never refreshed here.
            return inspect(self).dict.get(VERSION_COLUMN) or 0
        return self._read_version or 0

    def prepare_conditioned_write(self, bump_version: bool) -> WriteCondition:
        """
        Build the version condition for the next write.

        When bump_version is set, the in-memory version is advanced before
        the statement runs. It stays advanced even if the write fails.
        """
        expected = self.read_check_value()
        if not bump_version:
            return WriteCondition(column=VERSION_COLUMN, expected=expected)

        assigned = expected + 1
        set_committed_value(self, VERSION_COLUMN, assigned)
        return WriteCondition(column=VERSION_COLUMN, expected=expected, assigned=assigned)

    def confirm_write_applied(self, result: StatementResult, condition: WriteCondition) -> None:
        """
        Interpret the affected-row count of a conditioned write.

        A statement that already failed at the storage level is not checked;
        the caller re-raises that error as-is.
        """
        if result.error is not None:
            return

        if result.rowcount < 1:
            raise ConcurrentModificationError(
                type(self).__name__, self._identity(), condition.expected
            )

        if self.__version_policy__ is VersionPolicy.CACHED_READ:
            self._read_version = self.version

    def needs_version_repair(self, soft_delete: bool, marker_carries_version: bool) -> bool:
        """True when a soft delete left the stored version at its old value."""
        return (
            soft_delete
            and not marker_carries_version
            and self.__version_policy__ is VersionPolicy.CACHED_READ
        )

    def on_created(self, error: Optional[BaseException] = None) -> None:
        if error is not None:
            return
        if self.__version_policy__ is VersionPolicy.CACHED_READ:
            self._read_version = self.version

    def on_loaded(self, error: Optional[BaseException] = None) -> None:
        if error is not None:
            return
        if self.__version_policy__ is VersionPolicy.CACHED_READ:
            self._read_version = self.version

    def assume_read_version(self, version: int) -> None:
        """Condition the next write on a version the caller saw elsewhere."""
        if self.__version_policy__ is VersionPolicy.INLINE:
            set_committed_value(self, VERSION_COLUMN, version)
        else:
            self._read_version = version

    def _identity(self):
        ident = inspect(self).identity
        if ident is None:
            return getattr(self, "id", None)
        return ident[0] if len(ident) == 1 else ident
