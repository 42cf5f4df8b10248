"""Integration test fixtures.

Provides the FastAPI app wired to a tmp_path-backed AppState and an ASGI
client. Remote calls are mocked per test with respx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from templateproxy.server import create_app

if TYPE_CHECKING:
    from fastapi import FastAPI

    from templateproxy.state import AppState


@pytest.fixture()
def app(app_state: AppState) -> FastAPI:
    return create_app(state=app_state)


@pytest.fixture()
async def client(app: FastAPI):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
