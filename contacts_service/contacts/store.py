"""Contacts store: common contract, in-memory backend and factory.

Every operation is a coroutine returning a ``Result``; expected failures
(bad input, missing contact, backend errors) are never raised.

Architecture:
- ``MemoryContactsStore``: one ``UserContacts`` partition per userId, kept
  for the lifetime of the store, each with a name-prefix token index.
- ``FirestoreContactsStore`` (firestore_store.py): one collection, every
  query filtered on userId.
"""
from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from ..results import ErrorCode, Result, err_result, errors_result, ok_result
from .ids import SequentialIdGenerator
from .query import DEFAULT_COUNT, SearchQuery
from .validation import name_prefixes, validate_contact, validate_fields

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = ("id", "_id", "userId")


def sort_key(contact: Mapping) -> str:
    return str(contact.get("name", "")).lower()


def _key_params(params: Any, op: str) -> Result[Dict[str, str]]:
    """Extract ``userId``/``id`` for single-contact operations."""
    if not isinstance(params, Mapping):
        return err_result(f"{op} requires userId and id", ErrorCode.BAD_REQ)
    user_id, contact_id = params.get("userId"), params.get("id")
    if not isinstance(user_id, str) or not user_id:
        return err_result(f"{op}: userId must be a non-empty string", ErrorCode.BAD_REQ)
    if not isinstance(contact_id, str) or not contact_id:
        return err_result(f"{op}: contact id must be a non-empty string", ErrorCode.BAD_REQ)
    return ok_result({"userId": user_id, "id": contact_id})


def merge_update(stored: Mapping, changes: Mapping) -> Result[Dict[str, Any]]:
    """Return ``stored`` with ``changes`` applied, re-validated.

    ``id`` and ``userId`` are locked; a differing value is BAD_REQ.
    """
    for key in IMMUTABLE_FIELDS:
        if key in changes and changes[key] != stored.get(key):
            return err_result(f"contact {key} cannot be changed", ErrorCode.BAD_REQ)
    merged = copy.deepcopy(dict(stored))
    for key, value in changes.items():
        if key not in IMMUTABLE_FIELDS:
            merged[key] = copy.deepcopy(value)
    errors = validate_fields(merged)
    if errors:
        return errors_result(errors)
    return ok_result(merged)


class ContactsStore(ABC):
    """Async contract implemented by every backend."""

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _closed_result(self) -> Result[Any]:
        return err_result("store is closed", ErrorCode.DB)

    async def search_params(
        self,
        params: Mapping[str, Any],
        *,
        default_count: int = DEFAULT_COUNT,
    ) -> Result[List[Dict[str, Any]]]:
        """Normalise raw caller parameters and run ``search``."""
        query = SearchQuery.from_params(params, default_count=default_count)
        if not query.ok:
            return errors_result(query.errors)
        return await self.search(query.val)

    @abstractmethod
    async def create(self, contact: Mapping[str, Any]) -> Result[str]:
        ...

    @abstractmethod
    async def read(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        ...

    @abstractmethod
    async def search(self, query: SearchQuery) -> Result[List[Dict[str, Any]]]:
        ...

    @abstractmethod
    async def update(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete(self, params: Mapping[str, Any]) -> Result[None]:
        ...

    @abstractmethod
    async def clear(self, params: Mapping[str, Any]) -> Result[int]:
        ...

    @abstractmethod
    async def clear_all(self) -> Result[int]:
        ...

    @abstractmethod
    async def close(self) -> Result[None]:
        ...


@dataclass
class UserContacts:
    """The partition of contacts owned by a single user."""

    user_id: str
    contacts: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    prefix_index: Dict[str, Set[str]] = field(default_factory=dict)

    def add(self, contact: Dict[str, Any]) -> None:
        contact_id = contact["id"]
        self.contacts[contact_id] = contact
        for token in name_prefixes(contact["name"]):
            self.prefix_index.setdefault(token, set()).add(contact_id)

    def remove(self, contact_id: str) -> Optional[Dict[str, Any]]:
        contact = self.contacts.pop(contact_id, None)
        if contact is not None:
            for token in name_prefixes(contact["name"]):
                ids = self.prefix_index.get(token)
                if ids is not None:
                    ids.discard(contact_id)
                    if not ids:
                        del self.prefix_index[token]
        return contact

    def matching(self, query: SearchQuery) -> List[Dict[str, Any]]:
        """Contacts satisfying every filter present in ``query``, unsorted."""
        if query.prefix is not None:
            ids = self.prefix_index.get(query.prefix.lower(), set())
            candidates = [c for cid, c in self.contacts.items() if cid in ids]
        else:
            candidates = list(self.contacts.values())
        if query.id is not None:
            candidates = [c for c in candidates if c["id"] == query.id]
        if query.email is not None:
            candidates = [c for c in candidates if query.email in c.get("emails", ())]
        return candidates

    def __len__(self) -> int:
        return len(self.contacts)


class MemoryContactsStore(ContactsStore):
    """Contacts kept in process memory; ids from a per-store counter."""

    def __init__(self) -> None:
        super().__init__()
        self._partitions: Dict[str, UserContacts] = {}
        self._ids = SequentialIdGenerator()

    def user_contacts(self, user_id: str) -> UserContacts:
        """Return the single partition for ``user_id``, creating it once."""
        partition = self._partitions.get(user_id)
        if partition is None:
            partition = self._partitions[user_id] = UserContacts(user_id)
        return partition

    async def create(self, contact: Mapping[str, Any]) -> Result[str]:
        if self._closed:
            return self._closed_result()
        validation = validate_contact(contact)
        if not validation.ok:
            return errors_result(validation.errors)

        contact_id = await self._ids.next_id()
        stored = copy.deepcopy(dict(contact))
        stored["id"] = contact_id
        self.user_contacts(stored["userId"]).add(stored)
        return ok_result(contact_id)

    async def read(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "read")
        if not keys.ok:
            return keys
        partition = self._partitions.get(keys.val["userId"])
        contact = partition.contacts.get(keys.val["id"]) if partition else None
        if contact is None:
            return err_result(f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND)
        return ok_result(copy.deepcopy(contact))

    async def search(self, query: SearchQuery) -> Result[List[Dict[str, Any]]]:
        if self._closed:
            return self._closed_result()
        partition = self._partitions.get(query.user_id)
        if partition is None:
            return ok_result([])
        # sorted() is stable, so equal names keep insertion order
        results = sorted(partition.matching(query), key=sort_key)
        return ok_result([copy.deepcopy(c) for c in query.window(results)])

    async def update(self, params: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "update")
        if not keys.ok:
            return keys
        partition = self._partitions.get(keys.val["userId"])
        stored = partition.contacts.get(keys.val["id"]) if partition else None
        if stored is None:
            return err_result(f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND)

        merged = merge_update(stored, params)
        if not merged.ok:
            return merged
        partition.remove(stored["id"])
        partition.add(merged.val)
        return ok_result(copy.deepcopy(merged.val))

    async def delete(self, params: Mapping[str, Any]) -> Result[None]:
        if self._closed:
            return self._closed_result()
        keys = _key_params(params, "delete")
        if not keys.ok:
            return keys
        partition = self._partitions.get(keys.val["userId"])
        removed = partition.remove(keys.val["id"]) if partition else None
        if removed is None:
            return err_result(f"no contact for contactId {keys.val['id']}", ErrorCode.NOT_FOUND)
        return ok_result(None)

    async def clear(self, params: Mapping[str, Any]) -> Result[int]:
        if self._closed:
            return self._closed_result()
        user_id = params.get("userId") if isinstance(params, Mapping) else None
        partition = self._partitions.get(user_id) if user_id else None
        if partition is None:
            return ok_result(0)
        count = len(partition)
        partition.contacts.clear()
        partition.prefix_index.clear()
        return ok_result(count)

    async def clear_all(self) -> Result[int]:
        if self._closed:
            return self._closed_result()
        count = sum(len(p) for p in self._partitions.values())
        for partition in self._partitions.values():
            partition.contacts.clear()
            partition.prefix_index.clear()
        return ok_result(count)

    async def close(self) -> Result[None]:
        if not self._closed:
            self._closed = True
            logger.info("Closed in-memory contacts store")
        return ok_result(None)


def make_contacts_store(
    locator: Optional[str] = None,
    *,
    contacts_collection: str = "contacts",
    id_collection: str = "id_gen",
    client: Any = None,
) -> Result[ContactsStore]:
    """Return a store for ``locator``.

    Args:
        locator: None/"memory" for the in-memory backend; "firestore" or
            "firestore://<project-id>" for Firestore.
        contacts_collection: Firestore collection holding contacts.
        id_collection: Firestore collection holding the id counter.
        client: Pre-built async Firestore client (tests, custom credentials).

    Errors:
        DB: unknown locator or the Firestore client could not be created.
    """
    url = (locator or "memory").strip()
    if url in ("memory", "memory:"):
        logger.info("Using in-memory contacts store")
        return ok_result(MemoryContactsStore())

    if url == "firestore" or url.startswith("firestore://"):
        from .firestore_store import FirestoreContactsStore

        project_id = None
        if url.startswith("firestore://"):
            project_id = url[len("firestore://"):] or None
        try:
            if client is None:
                from ..firestore import get_firestore_client
                client = get_firestore_client(project_id)
        except Exception as exc:
            logger.exception("Unable to create Firestore client for %s", url)
            return err_result(f"cannot connect to {url}: {exc}", ErrorCode.DB, cause=exc)
        logger.info(
            "Using Firestore contacts store (project=%s, collection=%s)",
            project_id or "default",
            contacts_collection,
        )
        return ok_result(FirestoreContactsStore(
            client,
            collection=contacts_collection,
            id_collection=id_collection,
        ))

    return err_result(f"unsupported contacts store URL {url!r}", ErrorCode.DB)
