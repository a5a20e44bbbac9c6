"""Contacts Router - per-user contact CRUD and paged search.

Handles:
- Contact creation (Location header points at the new contact)
- Paged search with self/next/prev links
- Read, update and delete of single contacts
- Clearing all contacts of a user
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from api.dependencies import error_response, get_settings, get_store
from api.models import ClearResponse, ContactEnvelope, ErrorResponse, PageModel
from contacts_service.contacts import PARAM_ALIASES, ContactsStore, SearchQuery
from contacts_service.paging import base_url, build_page, self_link
from contacts_service.results import ErrorCode, err_result

logger = logging.getLogger(__name__)

# Mounted at /contacts
router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _envelope(request: Request, contact: Dict[str, Any]) -> dict:
    return {"result": contact, "links": [self_link(str(request.url)).to_dict()]}


@router.post("/{user_id}", status_code=201, responses=ERROR_RESPONSES)
async def create_contact(
    user_id: str,
    request: Request,
    contact: Dict[str, Any] = Body(...),
    store: ContactsStore = Depends(get_store),
):
    """Create a contact for ``user_id``; the id is assigned by the store."""
    result = await store.create({**contact, "userId": user_id})
    if not result.ok:
        return error_response(result)
    href = f"{base_url(str(request.url))}/{result.val}"
    logger.info("Created contact %s for user %s", result.val, user_id)
    return Response(status_code=201, headers={"Location": href})


@router.get("/{user_id}", response_model=PageModel, responses=ERROR_RESPONSES)
async def search_contacts(
    user_id: str,
    request: Request,
    prefix: Optional[str] = Query(None, description="Name-word prefix (2+ letters)."),
    email: Optional[str] = Query(None),
    index: Optional[str] = Query(None, description="Offset of the first result."),
    count: Optional[str] = Query(None, description="Page size."),
    nameWordPrefix: Optional[str] = Query(None, description="Alias of prefix."),
    startIndex: Optional[str] = Query(None, description="Alias of index."),
    store: ContactsStore = Depends(get_store),
):
    """Search the user's contacts, sorted case-insensitively by name.

    ``prefix`` and ``index`` take precedence over their aliases when both
    are sent. Paging links always use the canonical names.
    """
    params = {
        "userId": user_id,
        "nameWordPrefix": nameWordPrefix,
        "startIndex": startIndex,
        "prefix": prefix,
        "email": email,
        "index": index,
        "count": count,
    }
    query = SearchQuery.from_params(params, default_count=get_settings().default_count)
    if not query.ok:
        return error_response(query)

    # one extra row tells us whether a next page exists
    probe = dataclasses.replace(query.val, count=query.val.count + 1)
    result = await store.search(probe)
    if not result.ok:
        return error_response(result)

    link_params = {}
    for key, value in request.query_params.items():
        canonical = PARAM_ALIASES.get(key, key)
        if canonical == key or canonical not in request.query_params:
            link_params[canonical] = value

    page = build_page(
        result.val,
        url=str(request.url),
        params=link_params,
        index=query.val.index,
        count=query.val.count,
    )
    return page.to_dict()


@router.delete("/{user_id}", response_model=ClearResponse, responses=ERROR_RESPONSES)
async def clear_contacts(
    user_id: str,
    store: ContactsStore = Depends(get_store),
):
    """Delete every contact belonging to ``user_id``."""
    result = await store.clear({"userId": user_id})
    if not result.ok:
        return error_response(result)
    return {"deleted": result.val}


@router.get("/{user_id}/{contact_id}", response_model=ContactEnvelope, responses=ERROR_RESPONSES)
async def get_contact(
    user_id: str,
    contact_id: str,
    request: Request,
    store: ContactsStore = Depends(get_store),
):
    result = await store.read({"userId": user_id, "id": contact_id})
    if not result.ok:
        return error_response(result)
    return _envelope(request, result.val)


@router.patch("/{user_id}/{contact_id}", response_model=ContactEnvelope, responses=ERROR_RESPONSES)
async def update_contact(
    user_id: str,
    contact_id: str,
    request: Request,
    changes: Optional[Dict[str, Any]] = Body(None),
    store: ContactsStore = Depends(get_store),
):
    """Merge ``changes`` into the stored contact."""
    changes = changes or {}
    path_keys = {"userId": user_id, "id": contact_id}
    for key, value in path_keys.items():
        if key in changes and changes[key] != value:
            return error_response(err_result(f"contact {key} cannot be changed", ErrorCode.BAD_REQ))

    result = await store.update({**changes, **path_keys})
    if not result.ok:
        return error_response(result)
    return _envelope(request, result.val)


@router.delete("/{user_id}/{contact_id}", status_code=204, responses=ERROR_RESPONSES)
async def delete_contact(
    user_id: str,
    contact_id: str,
    store: ContactsStore = Depends(get_store),
):
    result = await store.delete({"userId": user_id, "id": contact_id})
    if not result.ok:
        return error_response(result)
    return Response(status_code=204)
