"""Shared fixtures: isolated settings, a sample catalog and wired app state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from templateproxy.config import Settings
from templateproxy.state import AppState, build_state

if TYPE_CHECKING:
    from pathlib import Path

API_BASE = "https://api.redux.io/"
LIBRARY_URL = "https://files.redux.io/library.json"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        cache={"cache_dir": str(tmp_path / "cache")},
        site={
            "url": "https://site.example",
            "site_hash": "abc123",
            "plugins_dir": str(tmp_path / "plugins"),
        },
    )


@pytest.fixture()
def sample_catalog() -> dict[str, Any]:
    return {
        "plugins": {
            "core": {},
            "stackable": {"name": "Stackable"},
            "stackable-pro": {"free_slug": "stackable"},
            "qubely": {"name": "Qubely", "no_plugin": True},
        },
        "sections": {
            "s1": {"name": "Hero", "dependencies": ["core", "stackable"]},
            "s2": {"name": "Pricing", "dependencies": ["stackable-pro", "qubely"]},
        },
        "pages": {
            "p1": {"name": "Landing", "dependencies": ["stackable", "stackable"]},
        },
    }


@pytest.fixture()
async def http_client():
    async with httpx.AsyncClient(follow_redirects=False) as client:
        yield client


@pytest.fixture()
def app_state(settings: Settings, http_client: httpx.AsyncClient) -> AppState:
    return build_state(settings, http_client)
