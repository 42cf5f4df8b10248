from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Cached JSON document for a library or template key."""

    key: str  # "library.json" or "<type>/<id>.json"
    data: dict[str, Any]
    modified_at: datetime
    expires_at: datetime
    stale: bool = False


class DecodeResult(BaseModel):
    """Outcome of decoding JSON text. ``ok`` is False on any decode failure."""

    ok: bool
    data: dict[str, Any] = {}
    error: str | None = None


class FetchResult(BaseModel):
    """Document returned by the cache-fill fetcher."""

    data: dict[str, Any]
    source: Literal["cache", "remote", "stale", "none"]
    # "used" when the remote told us to keep our copy, "cleared" when refreshed,
    # "stale" when the remote failed and an expired copy was served
    cache: Literal["used", "cleared", "stale"] | None = None
