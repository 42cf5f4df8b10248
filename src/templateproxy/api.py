"""Request handlers for the template library endpoints.

Each handler takes the merged request parameters and returns a JSON-able
value, or raises ``TemplateProxyError`` which the server turns into an
error envelope.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from templateproxy.dependencies import annotate_catalog, merge_registered_blocks
from templateproxy.errors import ErrorCode, TemplateProxyError
from templateproxy.fetcher import LIBRARY_PATH
from templateproxy.jsonstore import decode_json
from templateproxy.models.api import (
    ActivateOutput,
    DeleteBlockInput,
    PluginInstallInput,
    ShareOutput,
    TemplateInput,
)
from templateproxy.models.requests import FetchParams, RequestConfig
from templateproxy.patterns import PATTERN_SOURCE

if TYPE_CHECKING:
    from templateproxy.state import AppState

log = structlog.get_logger()

LIBRARY_KEY = "library.json"
INDEX_ROUTES = ("library", "pages", "sections", "collections")
PRO_REQUIRED_MESSAGE = "A valid Redux Pro subscription is required."

_SAFE_KEY_PART = re.compile(r"^[A-Za-z0-9_-]+$")

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], fields: dict[str, Any]) -> M:
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        message = str(first["msg"]).removeprefix("Value error, ")
        raise TemplateProxyError(
            ErrorCode.MISSING_PARAMETER,
            f"{field}: {message}",
            data={"field": field},
        ) from exc


def _fetch_params(params: dict[str, Any]) -> FetchParams:
    return _validate(
        FetchParams,
        {"no_cache": "no_cache" in params, "registered_blocks": params.get("registered_blocks")},
    )


def filter_empty(value: Any) -> Any:
    """Recursively drop empty values ("", 0, None, False, empty containers)."""
    if isinstance(value, dict):
        cleaned = {k: filter_empty(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if v}
    if isinstance(value, list):
        return [v for v in (filter_empty(item) for item in value) if v]
    return value


class TemplatesApi:
    def __init__(self, state: AppState) -> None:
        self._state = state
        self._settings = state.settings

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_index(
        self,
        route: str | None,
        params: dict[str, Any],
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """Library listing for ``library``, ``pages``, ``sections`` and ``collections``."""
        index_type = (route or "").replace("/", "")
        if not index_type:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "No type specified.")

        data = await self._load_library(params, user_agent)

        plugins = data.get("plugins")
        if isinstance(plugins, dict):
            data["plugins"] = self._state.plugins.annotate_catalog_plugins(
                plugins, self._settings.site
            )
            annotate_catalog(data)

        pattern_sections = self._state.patterns.as_sections()
        if pattern_sections:
            sections = data.get("sections")
            data["sections"] = {**(sections if isinstance(sections, dict) else {}), **pattern_sections}

        log.info("library_served", route=index_type, cache=data.get("cache"))
        return data

    async def _load_library(
        self,
        params: dict[str, Any],
        user_agent: str | None,
    ) -> dict[str, Any]:
        override = self._settings.api.library_override
        if override:
            path = Path(override).expanduser()
            if path.is_file():
                decoded = decode_json(path.read_text(encoding="utf-8"))
                if decoded.ok:
                    return decoded.data
                log.warning("library_override_invalid", path=str(path), error=decoded.error)

        result = await self._state.library.fetch(
            LIBRARY_KEY,
            RequestConfig(path=LIBRARY_PATH, user_agent=user_agent),
            _fetch_params(params),
        )
        return dict(result.data)

    async def with_registered_blocks(self, params: dict[str, Any]) -> dict[str, Any]:
        """Add installed plugins (``slug~version``) to the caller's registered blocks.

        Uses the cached library only. The caller's list is normalised but
        otherwise unchanged when no catalog has been cached yet.
        """
        blocks = _fetch_params(params).registered_blocks
        cached = await self._state.library.fetch(
            LIBRARY_KEY, RequestConfig(path=LIBRARY_PATH), cache_only=True
        )
        plugins = cached.data.get("plugins")
        if not isinstance(plugins, dict):
            return {**params, "registered_blocks": blocks}
        annotated = self._state.plugins.annotate_catalog_plugins(plugins, self._settings.site)
        return {**params, "registered_blocks": merge_registered_blocks(blocks, annotated)}

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def get_template(
        self,
        params: dict[str, Any],
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        params = await self.with_registered_blocks(params)
        request = _validate(TemplateInput, params)

        if request.source == PATTERN_SOURCE:
            pattern = self._state.patterns.get_by_section_id(request.id)
            if pattern is None:
                raise TemplateProxyError(
                    ErrorCode.TEMPLATE_NOT_FOUND, f"Unknown block pattern: {request.id}"
                )
            self.check_template_response(request.uid)
            return {"template": pattern.content}

        if not (_SAFE_KEY_PART.match(request.type) and _SAFE_KEY_PART.match(request.id)):
            raise TemplateProxyError(
                ErrorCode.MISSING_PARAMETER,
                f"Invalid template reference: {request.type}/{request.id}",
            )

        template_response = self.check_template_response(request.uid)
        config = RequestConfig(
            path="template/",
            body={"id": request.id, "type": request.type, "source": request.source},
            user_agent=user_agent,
        )
        fetch_params = FetchParams(no_cache=True, registered_blocks=params["registered_blocks"])
        result = await self._state.library.fetch(
            f"{request.type}/{request.id}.json", config, fetch_params
        )
        response = {**template_response, **result.data}

        # Plain-text bodies arrive wrapped as "message"
        if "message" in response and "template" not in response:
            response["template"] = response.pop("message")
        return response

    def check_template_response(self, uid: int) -> dict[str, Any]:
        """Charge one template import against the user's quota.

        Pro sites are never charged, activated sites are unlimited.
        """
        site = self._settings.site
        quota = self._settings.quota
        if site.pro_activated:
            return {}
        if site.activated:
            return {"left": quota.unlimited}

        count = self._state.quota.get(uid)
        if count is None:
            count = quota.default_left
        count -= 1
        if count < 0:
            self._state.quota.set(uid, 0)
            log.info("quota_exhausted", uid=uid)
            raise TemplateProxyError(
                ErrorCode.QUOTA_EXHAUSTED,
                "Please activate Redux",
                data={"left": 0},
            )
        self._state.quota.set(uid, count)
        return {"left": count}

    async def share_template(
        self,
        params: dict[str, Any],
        uid: int,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        if not params:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "No template data found.")
        params = await self.with_registered_blocks(params)

        body = filter_empty(
            {
                "uid": uid,
                "editor_content": str(params.get("editor_content", "")),
                "editor_blocks": params.get("editor_blocks", ""),
                "postID": str(params.get("postID", "")).strip(),
                "title": str(params.get("title", "The Title")).strip(),
                "type": str(params.get("type", "page")).strip(),
                "categories": str(params.get("categories", "")).strip(),
                "description": str(params.get("description", "")).strip(),
            }
        )
        if "title" not in body:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "A title is required.")
        if "type" not in body:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "A type is required.")

        headers = filter_empty(
            {"Redux-Registered-Blocks": ",".join(params.get("registered_blocks") or [])}
        )
        raw = await self._state.fetcher.request(
            RequestConfig(
                path="template_share/",
                headers=headers,
                body=body,
                user_agent=user_agent,
            )
        )
        decoded = decode_json(raw)
        data = decoded.data if decoded.ok else {"message": raw}
        if data.get("status") == "success" and data.get("url"):
            log.info("template_shared", uid=uid, url=data["url"])
            return ShareOutput(url=str(data["url"])).model_dump()
        raise TemplateProxyError(
            ErrorCode.REMOTE_ERROR,
            str(data.get("message", "The template could not be shared.")),
            data={k: v for k, v in data.items() if k != "message"},
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    async def send_feedback(
        self, params: dict[str, Any], user_agent: str | None = None
    ) -> dict[str, Any]:
        return await self._post_message("feedback/", params, user_agent)

    async def send_suggestion(
        self, params: dict[str, Any], user_agent: str | None = None
    ) -> dict[str, Any]:
        return await self._post_message("suggestion/", params, user_agent)

    async def _post_message(
        self,
        path: str,
        params: dict[str, Any],
        user_agent: str | None,
    ) -> dict[str, Any]:
        body = filter_empty(dict(params))
        if not body:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "No message data found.")
        raw = await self._state.fetcher.request(
            RequestConfig(path=path, body=body, user_agent=user_agent)
        )
        decoded = decode_json(raw)
        data = decoded.data if decoded.ok else {"message": raw}
        if data.get("status") == "error":
            raise TemplateProxyError(
                ErrorCode.REMOTE_ERROR, str(data.get("message", "Request failed."))
            )
        return data

    # ------------------------------------------------------------------
    # Saved blocks
    # ------------------------------------------------------------------

    def get_saved_blocks(self) -> list[dict[str, Any]]:
        return self._state.saved_blocks.list_published()

    def delete_saved_block(self, params: dict[str, Any]) -> dict[str, Any] | None:
        if "block_id" not in params:
            raise TemplateProxyError(ErrorCode.MISSING_PARAMETER, "Missing block_id.")
        request = _validate(DeleteBlockInput, params)
        return self._state.saved_blocks.delete(request.block_id)

    # ------------------------------------------------------------------
    # Activation and plugins
    # ------------------------------------------------------------------

    def activate(self, uid: int) -> dict[str, Any]:
        quota = self._settings.quota
        if self._settings.site.activated:
            left = quota.unlimited
        else:
            stored = self._state.quota.get(uid)
            if stored is None:
                stored = quota.default_left
                self._state.quota.set(uid, stored)
            left = stored

        if left == quota.unlimited:
            return ActivateOutput(left=left).model_dump()
        raise TemplateProxyError(
            ErrorCode.NOT_ACTIVATED,
            "This site is not activated.",
            data={"left": left},
        )

    async def plugin_install(
        self,
        params: dict[str, Any],
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        request = _validate(
            PluginInstallInput,
            {"slug": params.get("slug") or "", "redux_pro": bool(params.get("redux_pro"))},
        )
        if not request.redux_pro:
            return await self._state.installer.run(request.slug)

        if not self._settings.site.pro_activated:
            raise TemplateProxyError(ErrorCode.PRO_REQUIRED, PRO_REQUIRED_MESSAGE)

        raw = await self._state.fetcher.request(
            RequestConfig(
                path="installer/",
                body={"slug": request.slug},
                no_redirect=True,
                user_agent=user_agent,
            )
        )
        decoded = decode_json(raw)
        data = decoded.data if decoded.ok else {"message": raw}
        source_url = str(data.get("message", ""))
        if self._settings.api.vendor_domain in source_url:
            return await self._state.installer.run(request.slug, source_url)
        if data.get("error"):
            raise TemplateProxyError(ErrorCode.PRO_REQUIRED, str(data["error"]))
        raise TemplateProxyError(ErrorCode.PRO_REQUIRED, PRO_REQUIRED_MESSAGE)
