"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_store, get_settings, error_response
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterable

from fastapi import Request
from fastapi.responses import JSONResponse

from contacts_service.config import Settings, load_settings
from contacts_service.contacts import ContactsStore
from contacts_service.results import ErrorCode, Result

logger = logging.getLogger(__name__)


# =============================================================================
# Error Mapping
# =============================================================================

# Codes not listed here map to 400.
ERROR_STATUS = {
    ErrorCode.BAD_REQ: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.DB: 500,
}


def http_status(codes: Iterable[ErrorCode]) -> int:
    """Status for the first code, except that a 500 dominates."""
    status = None
    for code in codes:
        code_status = ERROR_STATUS.get(code, 400)
        if status is None or code_status == 500:
            status = code_status
    return status or 400


def error_response(result: Result[Any]) -> JSONResponse:
    """Map a failed store result to a JSON error response."""
    status = http_status(err.code for err in result.errors)
    if status == 500:
        for err in result.errors:
            logger.error("Contacts store error: %s", err.message, exc_info=err.cause)
    return JSONResponse(
        status_code=status,
        content={"status": status, "errors": [err.to_dict() for err in result.errors]},
    )


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


def get_store(request: Request) -> ContactsStore:
    """The store opened by the application lifespan."""
    return request.app.state.store
