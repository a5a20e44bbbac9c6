"""FastAPI service for the contacts store."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_settings
from api.routers import contacts_router
from contacts_service import __version__
from contacts_service.config import ConfigError
from contacts_service.contacts import make_contacts_store

load_dotenv()

logger = logging.getLogger(__name__)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("CONTACTS_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the contacts store on startup and close it on shutdown."""
    settings = get_settings()
    result = make_contacts_store(
        settings.store_url,
        contacts_collection=settings.contacts_collection,
        id_collection=settings.id_collection,
    )
    if not result.ok:
        raise ConfigError(result.first_error.message)
    app.state.store = result.val
    try:
        yield
    finally:
        closed = await app.state.store.close()
        if not closed.ok:
            logger.error("Failed to close contacts store: %s", closed.first_error.message)


app = FastAPI(
    title="Contacts API",
    version=__version__,
    description="Per-user contacts with paged, hyperlinked search.",
    lifespan=lifespan,
)

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    get_settings().allowed_frontend,
]
origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Location"],
    )

app.include_router(contacts_router, prefix="/contacts", tags=["contacts"])


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with store configuration status."""
    settings = get_settings()
    backend = "memory" if settings.store_url in ("memory", "memory:") else "firestore"
    return {
        "status": "ok",
        "environment": settings.environment,
        "store": backend,
        "version": __version__,
    }
