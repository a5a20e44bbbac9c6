"""Shared fixtures for the contacts test suite."""
from __future__ import annotations

import asyncio

import pytest

from contacts_service.contacts import MemoryContactsStore, SearchQuery


@pytest.fixture
def memory_store():
    return MemoryContactsStore()


@pytest.fixture
def make_query():
    def _make(user_id="u1", **kwargs):
        return SearchQuery(user_id=user_id, **kwargs)
    return _make


@pytest.fixture
def seed():
    """Create ``names`` for ``user_id`` in ``store``; returns the new ids."""
    def _seed(store, names, user_id="u1", **fields):
        async def create_all():
            ids = []
            for name in names:
                result = await store.create({"userId": user_id, "name": name, **fields})
                assert result.ok, result.errors
                ids.append(result.val)
            return ids
        return asyncio.run(create_all())
    return _seed
