from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator


class RequestConfig(BaseModel):
    """One outbound call to the template-library service."""

    path: str | None = None  # e.g. "library/", "template/", "template_share/"
    headers: dict[str, str] = {}
    body: dict[str, Any] = {}
    # Return the redirect target instead of following it
    no_redirect: bool = False
    # Inbound browser user agent, forwarded as Redux-User-Agent
    user_agent: str | None = None


class FetchParams(BaseModel):
    """Caller parameters that influence a cache fetch."""

    no_cache: bool = False
    registered_blocks: list[str] | None = None

    @field_validator("registered_blocks", mode="before")
    @classmethod
    def split_blocks(cls, v: object) -> object:
        # Accepts "a,b" or a list; numeric items are block names too
        if isinstance(v, str):
            return [b for b in v.split(",") if b]
        if isinstance(v, list):
            return [
                str(b) if isinstance(b, int | float) and not isinstance(b, bool) else b
                for b in v
            ]
        return v
