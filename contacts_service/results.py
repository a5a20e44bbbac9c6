"""Discriminated success/failure results returned by the contacts store."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Stable error codes shared by every layer."""

    BAD_REQ = "BAD_REQ"  # malformed/invalid caller input
    NOT_FOUND = "NOT_FOUND"
    DB = "DB"  # storage backend failure


@dataclass(slots=True)
class AppError:
    """A single failure with a stable code and a human-readable message."""

    message: str
    code: ErrorCode
    cause: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message}


@dataclass(slots=True)
class Result(Generic[T]):
    """Either a value (``errors`` empty) or one or more ``AppError``s."""

    val: Optional[T] = None
    errors: List[AppError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> Optional[AppError]:
        return self.errors[0] if self.errors else None

    def has_code(self, code: ErrorCode) -> bool:
        return any(err.code == code for err in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"val": self.val}
        return {"errors": [err.to_dict() for err in self.errors]}


def ok_result(val: T = None) -> Result[T]:
    return Result(val=val)


def err_result(
    message: str,
    code: ErrorCode,
    cause: Optional[BaseException] = None,
) -> Result[Any]:
    return Result(errors=[AppError(message=message, code=code, cause=cause)])


def errors_result(errors: List[AppError]) -> Result[Any]:
    """Wrap an already-collected error list."""
    return Result(errors=list(errors))
