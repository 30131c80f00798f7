from __future__ import annotations

from ..extensions import db
from ..guard import Versioned, VersionPolicy
from ..time_utils import to_utc_z
from .mixins import SoftDeleteMixin


class Record(SoftDeleteMixin, Versioned, db.Model):
    """
    General-purpose versioned row.

    OPTIMISTIC LOCK: every update and delete is conditioned on the version
    the caller last read; the read version is cached per in-memory copy.

    SOFT DELETE: deleting sets deleted_at and bumps the version. Deleted rows
    are only visible to unscoped reads.
    """
    __tablename__ = "records"
    __table_args__ = {"sqlite_autoincrement": True}
    __version_policy__ = VersionPolicy.CACHED_READ

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Record {self.id} {self.name!r} v{self.version}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at),
            "version": self.version,
        }
