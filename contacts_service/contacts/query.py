"""Search query normalisation shared by both store backends."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional

from ..results import AppError, ErrorCode, Result, errors_result, ok_result
from .validation import is_valid_name

DEFAULT_COUNT = 5

# Alternative parameter names accepted from callers.
PARAM_ALIASES = {
    "nameWordPrefix": "prefix",
    "startIndex": "index",
}


def parse_non_neg_int(value: Any, key: str, default: int) -> Result[int]:
    """Return ``value`` as a non-negative int; text must be ASCII digits."""
    if value is None:
        return ok_result(default)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return ok_result(value)
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return ok_result(int(value))
    return Result(errors=[AppError(
        message=f'{key} "{value}" must be a non-negative integer',
        code=ErrorCode.BAD_REQ,
    )])


@dataclass(slots=True)
class SearchQuery:
    """A validated, normalised search request for one user."""

    user_id: str
    id: Optional[str] = None
    prefix: Optional[str] = None
    email: Optional[str] = None
    index: int = 0
    count: int = DEFAULT_COUNT

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any],
        *,
        default_count: int = DEFAULT_COUNT,
    ) -> Result["SearchQuery"]:
        """Build a query from caller parameters.

        Accepts ``nameWordPrefix``/``startIndex`` as aliases for
        ``prefix``/``index``; an alias given after its canonical name wins.
        Empty strings and None are treated as absent.
        """
        normalized = {}
        for key, value in params.items():
            if value is None:
                continue
            normalized[PARAM_ALIASES.get(key, key)] = value

        errors: List[AppError] = []

        user_id = normalized.get("userId")
        if not isinstance(user_id, str) or not user_id:
            errors.append(AppError("userId must be a non-empty string", ErrorCode.BAD_REQ))

        prefix = normalized.get("prefix") or None
        if prefix is not None and not is_valid_name(prefix):
            errors.append(AppError(
                f"prefix {prefix!r} must contain at least 2 letters",
                ErrorCode.BAD_REQ,
            ))

        index = parse_non_neg_int(normalized.get("index"), "index", 0)
        count = parse_non_neg_int(normalized.get("count"), "count", default_count)
        errors.extend(index.errors)
        errors.extend(count.errors)

        if errors:
            return errors_result(errors)

        return ok_result(cls(
            user_id=user_id,
            id=normalized.get("id") or None,
            prefix=prefix,
            email=normalized.get("email") or None,
            index=index.val,
            count=count.val,
        ))

    def window(self, items: List[Any]) -> List[Any]:
        """Slice ``items`` to ``[index, index + count)``."""
        return items[self.index:self.index + self.count]
