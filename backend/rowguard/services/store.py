# Overview: Builds the VersionedStore used by the service layer for the current app.

from flask import current_app

from ..extensions import db
from ..persistence import VersionedStore


def get_store() -> VersionedStore:
    """Store bound to the request-scoped session and the app's soft-delete setting."""
    return VersionedStore(
        db.session,
        soft_delete_sets_version=current_app.config.get("ROWGUARD_SOFT_DELETE_SETS_VERSION", True),
    )
