"""End-to-end tests through the HTTP surface."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx
import respx

if TYPE_CHECKING:
    from templateproxy.state import AppState

PREFIX = "/redux/v1/templates"
LIBRARY_URL = "https://files.redux.io/library.json"
API = "https://api.redux.io/"


class TestLibraryRoutes:
    async def test_library_served_and_cached(
        self, client: httpx.AsyncClient, sample_catalog: dict[str, Any]
    ) -> None:
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(LIBRARY_URL).mock(
                return_value=httpx.Response(200, json=sample_catalog)
            )
            first = await client.get(f"{PREFIX}/library")
            second = await client.get(f"{PREFIX}/sections")
            assert route.call_count == 1

        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["data"]["sections"]["s2"]["proDependencies"] == ["stackable-pro"]
        assert second.json()["data"]["sections"].keys() == body["data"]["sections"].keys()

    async def test_no_cache_param_forces_refresh(
        self, client: httpx.AsyncClient, sample_catalog: dict[str, Any]
    ) -> None:
        with respx.mock:
            route = respx.get(LIBRARY_URL).mock(
                return_value=httpx.Response(200, json=sample_catalog)
            )
            await client.get(f"{PREFIX}/library")
            response = await client.get(f"{PREFIX}/library", params={"no_cache": "1"})
            assert route.call_count == 2
        assert response.json()["data"]["cache"] == "cleared"

    async def test_numeric_registered_blocks_accepted(
        self, client: httpx.AsyncClient, sample_catalog: dict[str, Any]
    ) -> None:
        with respx.mock:
            respx.get(LIBRARY_URL).mock(return_value=httpx.Response(200, json=sample_catalog))
            response = await client.post(f"{PREFIX}/library", json={"registered_blocks": [1, 2]})
        assert response.status_code == 200
        assert response.json()["success"] is True

    async def test_malformed_registered_blocks_use_error_envelope(
        self, client: httpx.AsyncClient
    ) -> None:
        response = await client.post(
            f"{PREFIX}/library", json={"registered_blocks": {"core": True}}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["code"] == "MISSING_PARAMETER"
        assert body["data"]["field"] == "registered_blocks"

    async def test_stale_library_when_remote_down(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        app_state.cache.set("library.json", {"sections": {"old": {}}})
        path = app_state.cache.resolve("library.json")
        ts = (datetime.now(UTC) - timedelta(days=2)).timestamp()
        os.utime(path, (ts, ts))

        with respx.mock:
            respx.get(LIBRARY_URL).mock(side_effect=httpx.ConnectError("down"))
            response = await client.post(f"{PREFIX}/collections")

        data = response.json()["data"]
        assert data["sections"]["old"] == {}
        assert data["status"] == "error"


class TestTemplateRoutes:
    async def test_template_uses_user_header_for_quota(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        with respx.mock:
            respx.post(API + "template/").mock(
                return_value=httpx.Response(200, json={"template": "<p/>"})
            )
            response = await client.get(
                f"{PREFIX}/template",
                params={"id": "10", "type": "pages"},
                headers={"X-User-Id": "8"},
            )
        body = response.json()
        assert body["success"] is True
        assert body["data"]["template"] == "<p/>"
        assert app_state.quota.get(8) == app_state.settings.quota.default_left - 1

    async def test_error_envelope(self, client: httpx.AsyncClient, app_state: AppState) -> None:
        app_state.quota.set(8, 0)
        response = await client.post(
            f"{PREFIX}/template",
            json={"id": "10", "type": "page"},
            headers={"X-User-Id": "8"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["code"] == "QUOTA_EXHAUSTED"
        assert body["data"]["message"] == "Please activate Redux"
        assert body["data"]["left"] == 0

    async def test_share_is_post_only(self, client: httpx.AsyncClient) -> None:
        response = await client.get(f"{PREFIX}/share")
        assert response.status_code == 405

    async def test_share(self, client: httpx.AsyncClient) -> None:
        with respx.mock:
            respx.post(API + "template_share/").mock(
                return_value=httpx.Response(200, json={"status": "success", "url": "https://x/1"})
            )
            response = await client.post(f"{PREFIX}/share", json={"title": "Landing"})
        assert response.json() == {"success": True, "data": {"url": "https://x/1"}}


class TestMiscRoutes:
    async def test_saved_blocks(self, client: httpx.AsyncClient, app_state: AppState) -> None:
        block = app_state.saved_blocks.add("Hero", "<h1/>")
        listed = await client.get(f"{PREFIX}/get_saved_blocks")
        assert [b["ID"] for b in listed.json()["data"]] == [block["ID"]]

        deleted = await client.post(f"{PREFIX}/delete_saved_block", json={"block_id": block["ID"]})
        assert deleted.json()["data"]["ID"] == block["ID"]

    async def test_activate_not_activated(self, client: httpx.AsyncClient) -> None:
        response = await client.get(f"{PREFIX}/activate", headers={"X-User-Id": "1"})
        body = response.json()
        assert body["success"] is False
        assert body["data"]["left"] == 5

    async def test_plugin_install_missing_slug(self, client: httpx.AsyncClient) -> None:
        response = await client.get(f"{PREFIX}/plugin-install")
        body = response.json()
        assert body["success"] is False
        assert body["data"]["code"] == "MISSING_PARAMETER"
