"""Firestore-backed contacts store.

Architecture:
- Firestore path: {collection}/{contact_id}
- Id counter: {id_collection}/nextId (transactional increment + salt)

Each document holds the caller's contact fields plus two internal fields
that are never returned:
- ``_prefix``: every prefix of every lower-cased name word, queried with
  ``array_contains`` for word-prefix search. This trades storage (one token
  per prefix character) for an indexed lookup.
- ``_sortName``: the lower-cased name, for case-insensitive ordering.

Queries need composite indexes on (userId, _sortName, id) and on
(userId, _prefix/emails, _sortName, id).
"""
from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Dict, List

from ..results import ErrorCode, Result, err_result, errors_result, ok_result
from .ids import FirestoreIdGenerator
from .query import SearchQuery
from .store import ContactsStore, _key_params, merge_update
from .validation import name_prefixes, validate_contact

logger = logging.getLogger(__name__)

INTERNAL_FIELDS = ("_prefix", "_sortName")
BATCH_LIMIT = 500


def to_document(contact: Mapping[str, Any]) -> Dict[str, Any]:
    """Stored shape of ``contact``: a deep copy plus the search fields."""
    doc = copy.deepcopy(dict(contact))
    doc["_prefix"] = name_prefixes(doc["name"])
    doc["_sortName"] = doc["name"].lower()
    return doc


def from_document(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in INTERNAL_FIELDS}


class FirestoreContactsStore(ContactsStore):
    """Contacts persisted in a single Firestore collection."""

    def __init__(
        self,
        client,
        *,
        collection: str = "contacts",
        id_collection: str = "id_gen",
        id_generator=None,
    ) -> None:
        super().__init__()
        self._client = client
        self._collection_name = collection
        self._ids = id_generator or FirestoreIdGenerator(client, id_collection)

    @property
    def _collection(self):
        return self._client.collection(self._collection_name)

    def _db_error(self, op: str, exc: Exception) -> Result[Any]:
        logger.exception("Firestore %s failed", op)
        return err_result(f"{op} failed: {exc}", ErrorCode.DB, cause=exc)

    async def _owned_snapshot(self, user_id: str, contact_id: str):
        """Snapshot of ``contact_id`` if it exists and belongs to ``user_id``."""
        snapshot = await self._collection.document(contact_id).get()
        if not snapshot.exists:
            return None
        if (snapshot.to_dict() or {}).get("userId") != user_id:
            return None
        return snapshot

    async def create(self, contact: Mapping[str, Any]) -> Result[str]:
        if self._closed:
            return self._closed_result()
        validation = validate_contact(contact)
        if not validation.ok:
            return errors_result(validation.errors)
        try:
            contact_id = await self._ids.next_id()
            doc = to_document(contact)
            doc["id"] = contact_id
            await self._collection.document(contact_id).set(doc)
        except Exception as exc:
            return self._db_error("create", exc)
        return ok_result(contact_id)

    async def read(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "read")
        if not keys.ok:
            return keys
        try:
            snapshot = await self._owned_snapshot(keys.val["userId"], keys.val["id"])
        except Exception as exc:
            return self._db_error("read", exc)
        if snapshot is None:
            return err_result(f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND)
        return ok_result(from_document(snapshot.to_dict()))

    def _build_query(self, query: SearchQuery):
        """Firestore query for ``query``; returns (query, windowed_server_side)."""
        fs_query = self._collection.where("userId", "==", query.user_id)
        if query.id is not None:
            fs_query = fs_query.where("id", "==", query.id)

        # Only one array_contains filter is allowed per query.
        if query.prefix is not None:
            fs_query = fs_query.where("_prefix", "array_contains", query.prefix.lower())
        elif query.email is not None:
            fs_query = fs_query.where("emails", "array_contains", query.email)
        fs_query = fs_query.order_by("_sortName").order_by("id")

        if query.prefix is not None and query.email is not None:
            return fs_query, False
        return fs_query.offset(query.index).limit(query.count), True

    async def search(self, query: SearchQuery) -> Result[List[Dict[str, Any]]]:
        if self._closed:
            return self._closed_result()
        if query.count == 0:
            return ok_result([])
        try:
            fs_query, windowed = self._build_query(query)
            results = [from_document(doc.to_dict()) async for doc in fs_query.stream()]
        except Exception as exc:
            return self._db_error("search", exc)
        if not windowed:
            results = query.window(
                [c for c in results if query.email in c.get("emails", ())]
            )
        return ok_result(results)

    async def update(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "update")
        if not keys.ok:
            return keys
        try:
            snapshot = await self._owned_snapshot(keys.val["userId"], keys.val["id"])
            if snapshot is None:
                return err_result(
                    f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND
                )
            merged = merge_update(from_document(snapshot.to_dict()), params)
            if not merged.ok:
                return merged
            await self._collection.document(keys.val["id"]).set(to_document(merged.val))
        except Exception as exc:
            return self._db_error("update", exc)
        return ok_result(merged.val)

    async def delete(self, params: Mapping[str, Any]) -> Result[None]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "delete")
        if not keys.ok:
            return keys
        try:
            snapshot = await self._owned_snapshot(keys.val["userId"], keys.val["id"])
            if snapshot is None:
                return err_result(
                    f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND
                )
            await snapshot.reference.delete()
        except Exception as exc:
            return self._db_error("delete", exc)
        return ok_result(None)

    async def _delete_matching(self, fs_query) -> int:
        count = 0
        batch = self._client.batch()
        pending = 0
        async for doc in fs_query.stream():
            batch.delete(doc.reference)
            pending += 1
            count += 1
            if pending == BATCH_LIMIT:
                await batch.commit()
                batch = self._client.batch()
                pending = 0
        if pending:
            await batch.commit()
        return count

    async def clear(self, params: Mapping[str, Any]) -> Result[int]:
        if self._closed:
            return self._closed_result()
        user_id = params.get("userId") if isinstance(params, Mapping) else None
        if not isinstance(user_id, str) or not user_id:
            return ok_result(0)
        try:
            count = await self._delete_matching(
                self._collection.where("userId", "==", user_id)
            )
        except Exception as exc:
            return self._db_error("clear", exc)
        logger.info("Cleared %d contacts for user %s", count, user_id)
        return ok_result(count)

    async def clear_all(self) -> Result[int]:
        if self._closed:
            return self._closed_result()
        try:
            count = await self._delete_matching(self._collection)
        except Exception as exc:
            return self._db_error("clear_all", exc)
        logger.info("Cleared %d contacts for all users", count)
        return ok_result(count)

    async def close(self) -> Result[None]:
        if self._closed:
            return ok_result(None)
        self._closed = True
        try:
            closer = getattr(self._client, "close", None)
            if closer is not None:
                outcome = closer()
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception as exc:
            return self._db_error("close", exc)
        finally:
            from ..firestore import discard_firestore_client
            discard_firestore_client(self._client)
        logger.info("Closed Firestore contacts store")
        return ok_result(None)
