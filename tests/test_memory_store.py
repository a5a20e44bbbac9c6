"""Tests for the in-memory contacts store."""
from __future__ import annotations

import asyncio

import pytest

from contacts_service.contacts import make_contacts_store
from contacts_service.contacts.store import MemoryContactsStore
from contacts_service.results import ErrorCode


def _names(result):
    return [c["name"] for c in result.val]


class TestCreate:

    def test_create_returns_new_id(self, memory_store):
        result = asyncio.run(memory_store.create({"userId": "u1", "name": "Jo"}))
        assert result.ok
        assert result.val == "1"

    def test_create_rejects_caller_id(self, memory_store):
        result = asyncio.run(memory_store.create({"userId": "u1", "name": "Jo", "id": "9"}))
        assert result.has_code(ErrorCode.BAD_REQ)

    def test_failed_create_stores_nothing(self, memory_store, make_query):
        asyncio.run(memory_store.create({"userId": "u1", "name": "1 2 3"}))
        assert asyncio.run(memory_store.search(make_query())).val == []

    def test_extra_fields_preserved(self, memory_store):
        contact = {"userId": "u1", "name": "Jo", "phone": "555", "tags": ["a"]}
        contact_id = asyncio.run(memory_store.create(contact)).val
        stored = asyncio.run(memory_store.read({"userId": "u1", "id": contact_id})).val
        assert stored == {**contact, "id": contact_id}

    def test_caller_object_not_aliased(self, memory_store):
        contact = {"userId": "u1", "name": "Jo", "emails": ["jo@x.com"]}
        contact_id = asyncio.run(memory_store.create(contact)).val
        contact["emails"].append("other@x.com")
        stored = asyncio.run(memory_store.read({"userId": "u1", "id": contact_id})).val
        assert stored["emails"] == ["jo@x.com"]
        assert "id" not in contact


class TestRead:

    def test_read_missing_is_not_found(self, memory_store):
        result = asyncio.run(memory_store.read({"userId": "u1", "id": "99"}))
        assert result.has_code(ErrorCode.NOT_FOUND)

    def test_read_other_users_contact_is_not_found(self, memory_store, seed):
        [contact_id] = seed(memory_store, ["Jo"], user_id="u1")
        result = asyncio.run(memory_store.read({"userId": "u2", "id": contact_id}))
        assert result.has_code(ErrorCode.NOT_FOUND)

    def test_read_requires_string_id(self, memory_store):
        result = asyncio.run(memory_store.read({"userId": "u1", "id": 3}))
        assert result.has_code(ErrorCode.BAD_REQ)

    def test_mutating_read_result_does_not_change_store(self, memory_store):
        contact_id = asyncio.run(
            memory_store.create({"userId": "u1", "name": "Jo", "emails": ["jo@x.com"]})
        ).val
        first = asyncio.run(memory_store.read({"userId": "u1", "id": contact_id})).val
        first["name"] = "Changed"
        first["emails"].clear()
        second = asyncio.run(memory_store.read({"userId": "u1", "id": contact_id})).val
        assert second["name"] == "Jo"
        assert second["emails"] == ["jo@x.com"]


class TestPartitions:

    def test_same_partition_for_same_user(self, memory_store):
        assert memory_store.user_contacts("u1") is memory_store.user_contacts("u1")
        assert memory_store.user_contacts("u1") is not memory_store.user_contacts("u2")

    def test_search_is_scoped_to_user(self, memory_store, seed, make_query):
        seed(memory_store, ["Alice A"], user_id="u1")
        seed(memory_store, ["Bob B"], user_id="u2")
        assert _names(asyncio.run(memory_store.search(make_query("u1")))) == ["Alice A"]
        assert _names(asyncio.run(memory_store.search(make_query("u2")))) == ["Bob B"]


class TestSearch:

    def test_sorted_case_insensitively(self, memory_store, seed, make_query):
        seed(memory_store, ["Charlie C", "bob B", "Alice A"])
        result = asyncio.run(memory_store.search(make_query(count=10)))
        assert _names(result) == ["Alice A", "bob B", "Charlie C"]

    def test_prefix_matches_any_word(self, memory_store, seed, make_query):
        seed(memory_store, ["John Smith", "Mary Jones"])
        assert _names(asyncio.run(memory_store.search(make_query(prefix="Jo")))) == [
            "John Smith",
            "Mary Jones",
        ]
        assert _names(asyncio.run(memory_store.search(make_query(prefix="sm")))) == ["John Smith"]
        assert asyncio.run(memory_store.search(make_query(prefix="xyz"))).val == []

    def test_email_filter(self, memory_store, make_query):
        asyncio.run(memory_store.create({"userId": "u1", "name": "Jo", "emails": ["jo@x.com"]}))
        asyncio.run(memory_store.create({"userId": "u1", "name": "Al"}))
        result = asyncio.run(memory_store.search(make_query(email="jo@x.com")))
        assert _names(result) == ["Jo"]

    def test_id_filter(self, memory_store, seed, make_query):
        ids = seed(memory_store, ["Alice A", "Bob B"])
        result = asyncio.run(memory_store.search(make_query(id=ids[1])))
        assert _names(result) == ["Bob B"]

    def test_filters_are_conjunctive(self, memory_store, make_query):
        asyncio.run(memory_store.create({"userId": "u1", "name": "John A", "emails": ["a@x.com"]}))
        asyncio.run(memory_store.create({"userId": "u1", "name": "John B", "emails": ["b@x.com"]}))
        result = asyncio.run(memory_store.search(make_query(prefix="jo", email="b@x.com")))
        assert _names(result) == ["John B"]

    def test_window_always_sliced(self, memory_store, seed, make_query):
        seed(memory_store, ["Alice A", "bob B", "Charlie C"])
        # fewer results than count must still honour the start index
        result = asyncio.run(memory_store.search(make_query(index=2, count=5)))
        assert _names(result) == ["Charlie C"]
        result = asyncio.run(memory_store.search(make_query(index=1, count=1)))
        assert _names(result) == ["bob B"]

    def test_index_past_end_is_empty(self, memory_store, seed, make_query):
        seed(memory_store, ["Alice A"])
        assert asyncio.run(memory_store.search(make_query(index=5))).val == []

    def test_search_params_normalises_aliases(self, memory_store, seed):
        seed(memory_store, ["Alice A", "Alan B", "Bob C"])
        result = asyncio.run(memory_store.search_params(
            {"userId": "u1", "nameWordPrefix": "al", "startIndex": "1", "count": "1"}
        ))
        assert _names(result) == ["Alice A"]

    @pytest.mark.parametrize("params", [
        {"userId": "u1", "prefix": "a"},
        {"userId": "u1", "index": "-1"},
        {"userId": "u1", "count": "ten"},
        {"userId": "u1", "index": "²"},
        {"userId": "u1", "count": "١"},
        {"prefix": "al"},
    ])
    def test_bad_search_params(self, memory_store, params):
        result = asyncio.run(memory_store.search_params(params))
        assert result.has_code(ErrorCode.BAD_REQ)


class TestUpdateDelete:

    def test_update_merges_and_reindexes(self, memory_store, seed, make_query):
        [contact_id] = seed(memory_store, ["John Smith"])
        result = asyncio.run(memory_store.update(
            {"userId": "u1", "id": contact_id, "name": "Jane Doe", "phone": "555"}
        ))
        assert result.ok
        assert result.val["phone"] == "555"
        assert asyncio.run(memory_store.search(make_query(prefix="jo"))).val == []
        assert _names(asyncio.run(memory_store.search(make_query(prefix="do")))) == ["Jane Doe"]

    def test_update_validates(self, memory_store, seed):
        [contact_id] = seed(memory_store, ["John Smith"])
        result = asyncio.run(memory_store.update({"userId": "u1", "id": contact_id, "name": "1"}))
        assert result.has_code(ErrorCode.BAD_REQ)

    def test_update_missing(self, memory_store):
        result = asyncio.run(memory_store.update({"userId": "u1", "id": "7", "name": "Jo"}))
        assert result.has_code(ErrorCode.NOT_FOUND)

    def test_delete(self, memory_store, seed):
        [contact_id] = seed(memory_store, ["Jo"])
        assert asyncio.run(memory_store.delete({"userId": "u1", "id": contact_id})).ok
        again = asyncio.run(memory_store.delete({"userId": "u1", "id": contact_id}))
        assert again.has_code(ErrorCode.NOT_FOUND)


class TestClearAndClose:

    def test_clear_returns_count(self, memory_store, seed, make_query):
        seed(memory_store, ["Alice A", "bob B", "Charlie C"], user_id="u1")
        seed(memory_store, ["Dave D"], user_id="u2")
        assert asyncio.run(memory_store.clear({"userId": "u1"})).val == 3
        assert asyncio.run(memory_store.search(make_query("u1"))).val == []
        assert _names(asyncio.run(memory_store.search(make_query("u2")))) == ["Dave D"]

    def test_clear_unknown_user(self, memory_store):
        assert asyncio.run(memory_store.clear({"userId": "nobody"})).val == 0

    def test_clear_all(self, memory_store, seed, make_query):
        seed(memory_store, ["Alice A"], user_id="u1")
        seed(memory_store, ["Dave D", "Eve E"], user_id="u2")
        assert asyncio.run(memory_store.clear_all()).val == 3
        assert asyncio.run(memory_store.search(make_query("u2"))).val == []

    def test_operations_fail_after_close(self, memory_store, make_query):
        assert asyncio.run(memory_store.close()).ok
        assert memory_store.closed
        result = asyncio.run(memory_store.search(make_query()))
        assert result.has_code(ErrorCode.DB)
        result = asyncio.run(memory_store.create({"userId": "u1", "name": "Jo"}))
        assert result.has_code(ErrorCode.DB)


class TestFactory:

    @pytest.mark.parametrize("locator", [None, "", "memory", "memory:"])
    def test_memory_locators(self, locator):
        result = make_contacts_store(locator)
        assert result.ok
        assert isinstance(result.val, MemoryContactsStore)

    def test_unknown_locator(self):
        result = make_contacts_store("postgres://localhost/db")
        assert result.has_code(ErrorCode.DB)
