"""Pydantic response models for the contacts API.

Contacts themselves are free-form JSON objects, so entities are typed as
plain dicts; only the hyperlink envelope and errors are modelled.
"""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class LinkModel(BaseModel):
    rel: str
    name: str
    href: str


class ContactEnvelope(BaseModel):
    """A single contact wrapped with its self link."""
    result: Dict[str, Any]
    links: List[LinkModel] = Field(default_factory=list)


class PageModel(BaseModel):
    """A page of search results with self/next/prev links."""
    result: List[ContactEnvelope] = Field(default_factory=list)
    links: List[LinkModel] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    status: int
    errors: List[ErrorDetail]


class ClearResponse(BaseModel):
    deleted: int
