"""Contact validation, identifiers and storage backends."""
from .ids import FirestoreIdGenerator, SequentialIdGenerator
from .query import DEFAULT_COUNT, PARAM_ALIASES, SearchQuery, parse_non_neg_int
from .store import (
    ContactsStore,
    MemoryContactsStore,
    UserContacts,
    make_contacts_store,
)
from .validation import (
    is_valid_email,
    is_valid_name,
    matches_prefix,
    name_prefixes,
    validate_contact,
)

__all__ = [
    # Validation
    "validate_contact",
    "is_valid_name",
    "is_valid_email",
    "name_prefixes",
    "matches_prefix",
    # Identifiers
    "SequentialIdGenerator",
    "FirestoreIdGenerator",
    # Querying
    "DEFAULT_COUNT",
    "PARAM_ALIASES",
    "SearchQuery",
    "parse_non_neg_int",
    # Storage
    "ContactsStore",
    "MemoryContactsStore",
    "UserContacts",
    "make_contacts_store",
]
