"""Contact identifier generators.

Two backends:
- ``SequentialIdGenerator``: a counter owned by one in-memory store.
- ``FirestoreIdGenerator``: a counter document incremented inside a
  Firestore transaction, salted with random digits so ids are hard to guess.
"""
from __future__ import annotations

import secrets

NEXT_ID_KEY = "nextId"
SALT_DIGITS = 5


class SequentialIdGenerator:
    """Monotonic ids scoped to a single store instance."""

    def __init__(self, start: int = 0) -> None:
        self._counter = start

    async def next_id(self) -> str:
        self._counter += 1
        return str(self._counter)


def salted_id(seq: int, digits: int = SALT_DIGITS) -> str:
    salt = "".join(str(secrets.randbelow(10)) for _ in range(digits))
    return f"{seq}_{salt}"


class FirestoreIdGenerator:
    """Ids backed by a persisted counter at ``{collection}/nextId``."""

    def __init__(self, client, collection: str = "id_gen") -> None:
        self._client = client
        self._collection = collection

    @property
    def counter_ref(self):
        return self._client.collection(self._collection).document(NEXT_ID_KEY)

    async def _increment(self) -> int:
        """Atomically bump the counter; Firestore retries on contention."""
        from google.cloud.firestore import async_transactional

        @async_transactional
        async def bump(transaction, ref) -> int:
            snapshot = await ref.get(transaction=transaction)
            current = 0
            if snapshot.exists:
                current = (snapshot.to_dict() or {}).get(NEXT_ID_KEY, 0)
            value = current + 1
            transaction.set(ref, {NEXT_ID_KEY: value})
            return value

        return await bump(self._client.transaction(), self.counter_ref)

    async def next_id(self) -> str:
        return salted_id(await self._increment())
