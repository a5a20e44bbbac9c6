"""Shared async Firestore client helper.

``firestore_async.client()`` memoises its client on the firebase app, so a
client that has been closed can only be replaced by deleting its app. Each
project therefore gets its own named app, and ``discard_firestore_client``
deletes that app together with the cache entry.
"""
from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "[DEFAULT]"

# project key -> (firebase app, async client)
_firestore_clients: dict = {}


def _app_name(project_id: Optional[str]) -> str:
    return f"contacts-{project_id}" if project_id else DEFAULT_APP_NAME


def get_firestore_client(project_id: Optional[str] = None):
    """Return a cached async Firestore client for ``project_id``."""

    key = project_id or ""
    if key in _firestore_clients:
        return _firestore_clients[key][1]

    try:
        import firebase_admin
        from firebase_admin import firestore_async
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise RuntimeError(
            "firebase-admin is required for the Firestore contacts store. "
            "Install dependencies before selecting a firestore:// store URL."
        ) from exc

    name = _app_name(project_id)
    try:
        app = firebase_admin.get_app(name)
    except ValueError:
        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(options=options, name=name)
    client = firestore_async.client(app=app)
    _firestore_clients[key] = (app, client)
    return client


def discard_firestore_client(client) -> None:
    """Forget ``client`` and delete its app so the next lookup builds a fresh one."""

    for key, (app, cached) in list(_firestore_clients.items()):
        if cached is not client:
            continue
        del _firestore_clients[key]
        import firebase_admin

        try:
            firebase_admin.delete_app(app)
        except ValueError:
            logger.debug("Firebase app %s was already deleted", app.name)
