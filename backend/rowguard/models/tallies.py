from __future__ import annotations

from ..extensions import db
from ..guard import Versioned, VersionPolicy
from ..time_utils import to_utc_z


class Tally(Versioned, db.Model):
    """
    Named counter.

    Uses the inline version policy: the version field on the object is
    itself the value the next write is conditioned on. No soft delete;
    deleting a tally removes the row.
    """
    __tablename__ = "tallies"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_tallies_name"),
        {"sqlite_autoincrement": True},
    )
    __version_policy__ = VersionPolicy.INLINE

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "count": self.count,
            "created_at": to_utc_z(self.created_at),
            "version": self.version,
        }
