"""HTTP surface: FastAPI routes under ``/redux/v1/templates``.

Every response uses the envelope the admin UI expects:
``{"success": true, "data": ...}`` or ``{"success": false, "data": {...}}``.
Request parameters are the query string merged with a JSON body.

Run with ``python -m templateproxy.server``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from templateproxy import __version__
from templateproxy.api import INDEX_ROUTES, TemplatesApi
from templateproxy.config import Settings
from templateproxy.errors import TemplateProxyError
from templateproxy.jsonstore import decode_json
from templateproxy.logging_config import configure_logging
from templateproxy.state import AppState, build_state

log = structlog.get_logger()

ROUTE_PREFIX = "/redux/v1/templates"
USER_HEADER = "x-user-id"

router = APIRouter(prefix=ROUTE_PREFIX, tags=["templates"])


def _success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


async def _params(request: Request) -> dict[str, Any]:
    params: dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        body = await request.body()
        if body:
            decoded = decode_json(body)
            if decoded.ok:
                params.update(decoded.data)
            else:
                log.debug("request_body_ignored", path=request.url.path, error=decoded.error)
    return params


def _uid(request: Request) -> int:
    try:
        return int(request.headers.get(USER_HEADER, "0"))
    except ValueError:
        return 0


def _api(request: Request) -> TemplatesApi:
    return TemplatesApi(request.app.state.templates)


def _index_endpoint(route: str) -> Callable[[Request], Awaitable[dict[str, Any]]]:
    async def endpoint(request: Request) -> dict[str, Any]:
        params = await _params(request)
        data = await _api(request).get_index(
            route, params, request.headers.get("user-agent")
        )
        return _success(data)

    endpoint.__name__ = f"get_{route}"
    return endpoint


for _route in INDEX_ROUTES:
    router.add_api_route(f"/{_route}", _index_endpoint(_route), methods=["GET", "POST"])


@router.api_route("/template", methods=["GET", "POST"])
async def get_template(request: Request) -> dict[str, Any]:
    params = await _params(request)
    params.setdefault("uid", _uid(request))
    data = await _api(request).get_template(params, request.headers.get("user-agent"))
    return _success(data)


@router.post("/share")
async def share_template(request: Request) -> dict[str, Any]:
    params = await _params(request)
    data = await _api(request).share_template(
        params, _uid(request), request.headers.get("user-agent")
    )
    return _success(data)


@router.api_route("/feedback", methods=["GET", "POST"])
async def send_feedback(request: Request) -> dict[str, Any]:
    params = await _params(request)
    data = await _api(request).send_feedback(params, request.headers.get("user-agent"))
    return _success(data)


@router.api_route("/suggestion", methods=["GET", "POST"])
async def send_suggestion(request: Request) -> dict[str, Any]:
    params = await _params(request)
    data = await _api(request).send_suggestion(params, request.headers.get("user-agent"))
    return _success(data)


@router.api_route("/get_saved_blocks", methods=["GET", "POST"])
async def get_saved_blocks(request: Request) -> dict[str, Any]:
    return _success(_api(request).get_saved_blocks())


@router.post("/delete_saved_block")
async def delete_saved_block(request: Request) -> dict[str, Any]:
    params = await _params(request)
    return _success(_api(request).delete_saved_block(params))


@router.get("/activate")
async def activate(request: Request) -> dict[str, Any]:
    return _success(_api(request).activate(_uid(request)))


@router.get("/plugin-install")
async def plugin_install(request: Request) -> dict[str, Any]:
    params = await _params(request)
    data = await _api(request).plugin_install(params, request.headers.get("user-agent"))
    return _success(data)


async def _handle_error(request: Request, exc: TemplateProxyError) -> JSONResponse:
    log.warning(
        "request_failed",
        path=request.url.path,
        code=exc.code,
        error=exc.message,
    )
    return JSONResponse({"success": False, "data": exc.to_payload()})


def create_app(settings: Settings | None = None, state: AppState | None = None) -> FastAPI:
    """Build the application. A prebuilt ``state`` is used as-is and not closed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if state is not None:
            app.state.templates = state
            yield
            return
        built = build_state(settings or Settings())
        app.state.templates = built
        log.info("server_started", cache_dir=str(built.cache.folder))
        try:
            yield
        finally:
            await built.http_client.aclose()

    app = FastAPI(title="templateproxy", version=__version__, lifespan=lifespan)
    if state is not None:
        app.state.templates = state
    app.add_exception_handler(TemplateProxyError, _handle_error)
    app.include_router(router)
    return app


def main() -> None:
    settings = Settings()
    configure_logging(settings.logging)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
