"""API Routers Package.

Routers:
- contacts.py: per-user contact CRUD and paged search

Usage in main.py:
    from api.routers import contacts_router

    app.include_router(contacts_router, prefix="/contacts", tags=["contacts"])
"""

from .contacts import router as contacts_router

__all__ = [
    "contacts_router",
]
