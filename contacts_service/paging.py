"""Wrap search results in hyperlinked pages.

A page carries a ``self`` link and, when applicable, ``next``/``prev``
links. Link URLs clone the request's query parameters and overwrite only
``index``; ``count`` is left as the caller sent it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlencode, urlsplit, urlunsplit


@dataclass(slots=True)
class Link:
    rel: str
    href: str
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {"rel": self.rel, "name": self.name or self.rel, "href": self.href}


@dataclass(slots=True)
class PageItem:
    """One entity plus its own ``self`` link."""

    result: Any
    links: List[Link] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"result": self.result, "links": [link.to_dict() for link in self.links]}


@dataclass(slots=True)
class Page:
    result: List[PageItem] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)

    def link(self, rel: str) -> Optional[Link]:
        return next((link for link in self.links if link.rel == rel), None)

    @property
    def has_next(self) -> bool:
        return self.link("next") is not None

    @property
    def has_prev(self) -> bool:
        return self.link("prev") is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": [item.to_dict() for item in self.result],
            "links": [link.to_dict() for link in self.links],
        }


def base_url(url: str) -> str:
    """``url`` without query string, fragment or trailing slash."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def page_url(url: str, params: Mapping[str, Any], **overrides: Any) -> str:
    """Return ``url`` with ``params`` (updated by ``overrides``) as the query."""
    query = {k: v for k, v in params.items() if v is not None}
    query.update(overrides)
    base = base_url(url)
    if not query:
        return base
    return f"{base}?{urlencode(query)}"


def self_link(url: str, item_id: Optional[Any] = None) -> Link:
    href = base_url(url)
    if item_id is not None:
        href = f"{href}/{item_id}"
    return Link(rel="self", name="self", href=href)


def build_page(
    results: Sequence[Any],
    *,
    url: str,
    params: Mapping[str, Any],
    index: int,
    count: int,
    id_key: Optional[str] = "id",
    has_more: Optional[bool] = None,
) -> Page:
    """Build a page from ``results`` for the window starting at ``index``.

    Args:
        results: Search results; may hold ``count + 1`` items, the extra
            one only signalling that a next page exists.
        url: The request URL the links are derived from.
        params: The request's query parameters.
        index: Offset of the first result.
        count: Page size.
        id_key: Field used for per-item self links (None: link to ``url``).
        has_more: Overrides the ``len(results) > count`` test, for callers
            that probe for further rows separately. Ignored when ``count``
            is 0.
    """
    more = count > 0 and (has_more if has_more is not None else len(results) > count)

    links = [Link(rel="self", name="self", href=page_url(url, params))]
    if more:
        links.append(Link(rel="next", name="next", href=page_url(url, params, index=index + count)))
    if index > 0:
        links.append(
            Link(rel="prev", name="prev", href=page_url(url, params, index=max(0, index - count)))
        )

    items = []
    for entity in list(results)[:count]:
        item_id = entity.get(id_key) if id_key and isinstance(entity, Mapping) else None
        items.append(PageItem(result=entity, links=[self_link(url, item_id)]))
    return Page(result=items, links=links)
