"""Configuration helpers for the contacts service."""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or malformed."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the store and the REST layer."""

    store_url: str = "memory"
    contacts_collection: str = "contacts"
    id_collection: str = "id_gen"
    default_count: int = 5
    environment: str = "local"
    allowed_frontend: Optional[str] = None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()) or int(raw) == 0:
        raise ConfigError(f"{name} must be a positive integer, got {raw!r}.")
    return int(raw)


def load_settings(*, url_var: str = "CONTACTS_STORE_URL") -> Settings:
    """Load settings from environment variables.

    Args:
        url_var: Env var holding the backend locator ("memory",
            "firestore" or "firestore://<project-id>").

    Returns:
        Settings with defaults filled in for anything unset.

    Raises:
        ConfigError: if a numeric setting cannot be parsed.
    """

    store_url = (os.getenv(url_var) or "memory").strip()
    frontend = os.getenv("CONTACTS_ALLOWED_FRONTEND", "").strip() or None

    return Settings(
        store_url=store_url,
        contacts_collection=os.getenv("CONTACTS_COLLECTION", "contacts"),
        id_collection=os.getenv("CONTACTS_ID_COLLECTION", "id_gen"),
        default_count=_int_env("CONTACTS_DEFAULT_COUNT", 5),
        environment=os.getenv("CONTACTS_ENV", "local"),
        allowed_frontend=frontend,
    )
