"""Contact shape validation and name-prefix token helpers."""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, List

from ..results import AppError, ErrorCode, Result, errors_result, ok_result

logger = logging.getLogger(__name__)

# A run of two or more letters anywhere in the string; not word-boundary aware.
NAME_PATTERN = re.compile(r"[A-Za-z]{2,}")

# Loose email check: <non-empty>@<non-empty>.<non-empty>
EMAIL_PATTERN = re.compile(r"^.+?@.+?\..+$")

ID_FIELDS = ("id", "_id")


def is_valid_name(text: Any) -> bool:
    return isinstance(text, str) and NAME_PATTERN.search(text) is not None


def is_valid_email(text: Any) -> bool:
    return isinstance(text, str) and EMAIL_PATTERN.match(text) is not None


def name_words(name: str) -> List[str]:
    """Lower-cased whitespace-delimited words of ``name``."""
    return [word.lower() for word in name.split()]


def name_prefixes(name: str) -> List[str]:
    """Every non-empty prefix of every word in ``name``, lower-cased.

    ``"John Smith"`` yields ``["j", "jo", "joh", "john", "s", "sm", ...]``
    (sorted, without duplicates).
    """
    tokens = set()
    for word in name_words(name):
        for end in range(1, len(word) + 1):
            tokens.add(word[:end])
    return sorted(tokens)


def matches_prefix(name: str, prefix: str) -> bool:
    """True if any word of ``name`` starts with ``prefix`` (case-insensitive)."""
    lowered = prefix.lower()
    return any(word.startswith(lowered) for word in name_words(name))


def _bad(message: str) -> AppError:
    return AppError(message=message, code=ErrorCode.BAD_REQ)


def validate_fields(contact: Mapping) -> List[AppError]:
    """Check ``name`` and ``emails``; shared by create and update."""
    errors: List[AppError] = []

    name = contact.get("name")
    if name is None:
        errors.append(_bad("contact name is required"))
    elif not is_valid_name(name):
        errors.append(
            _bad(f"contact name {name!r} must contain a word with at least 2 letters")
        )

    if "emails" in contact:
        emails = contact["emails"]
        if not isinstance(emails, (list, tuple)):
            errors.append(_bad("contact emails must be a list"))
        else:
            for email in emails:
                if not is_valid_email(email):
                    errors.append(_bad(f"bad email address {email!r}"))
    return errors


def validate_contact(contact: Any) -> Result[None]:
    """Validate a contact submitted for creation.

    Every problem is reported as a BAD_REQ error; the contact is not modified.
    """
    if not isinstance(contact, Mapping):
        return errors_result([_bad("contact must be an object")])

    errors: List[AppError] = []
    for key in ID_FIELDS:
        if key in contact:
            errors.append(_bad(f"contact must not contain an {key} property"))

    user_id = contact.get("userId")
    if not isinstance(user_id, str) or not user_id:
        errors.append(_bad("contact userId must be a non-empty string"))

    errors.extend(validate_fields(contact))

    if errors:
        logger.debug("Rejected contact: %s", "; ".join(e.message for e in errors))
        return errors_result(errors)
    return ok_result(None)
