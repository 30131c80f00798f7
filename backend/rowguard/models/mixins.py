from __future__ import annotations

from ..extensions import db


class SoftDeleteMixin:
    """
    Rows are marked deleted instead of being removed.

    Default-scoped reads exclude rows whose `deleted_at` is set; unscoped
    reads return them. The marker is written by VersionedStore.delete().
    """
    __soft_delete_column__ = "deleted_at"

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
