"""HTTP client for the remote template-library service.

The library listing is a plain GET of a static file. Every other operation
is a JSON POST to ``api.base_url + path`` carrying ``Redux-*`` headers.
Redirects are handled manually: a redirect to the catalog files host is
followed with one GET, anything else is rejected.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import structlog

from templateproxy import __version__
from templateproxy.errors import ErrorCode, TemplateProxyError

if TYPE_CHECKING:
    from templateproxy.config import ApiSettings, SiteSettings
    from templateproxy.models.requests import RequestConfig

log = structlog.get_logger()

LIBRARY_PATH = "library/"


def build_http_client(settings: ApiSettings | None = None) -> httpx.AsyncClient:
    timeout = settings.timeout_seconds if settings is not None else 120.0
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": f"templateproxy/{__version__}"},
    )


def build_default_headers(api: ApiSettings, site: SiteSettings) -> dict[str, str]:
    """Headers identifying this installation on every API call."""
    headers = {
        "Redux-Version": site.plugin_version,
        "Redux-Multisite": "1" if site.multisite else "",
        "Redux-API-Key": api.api_key,
    }
    if site.pro_version:
        headers["Redux-Pro"] = site.pro_version
    return headers


class Fetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api: ApiSettings,
        site: SiteSettings,
    ) -> None:
        self._client = client
        self._api = api
        self._site = site
        self._default_headers = build_default_headers(api, site)

    def build_headers(self, config: RequestConfig) -> dict[str, str]:
        headers = dict(config.headers)
        if "p" in config.body:
            headers["Redux-P"] = str(config.body["p"])
        if config.path:
            headers["Redux-Path"] = config.path
        headers["Redux-Slug"] = self._site.site_hash
        for name, value in self._default_headers.items():
            headers.setdefault(name, value)
        headers["Content-Type"] = "application/json; charset=utf-8"
        headers = {name: value for name, value in headers.items() if value}
        if config.user_agent:
            headers["Redux-User-Agent"] = config.user_agent
        headers["Redux-SiteURL"] = self._site.url
        return headers

    def build_body(self, config: RequestConfig) -> dict:
        return {k: v for k, v in config.body.items() if k not in ("_locale", "p")}

    async def request(self, config: RequestConfig) -> str:
        """Perform one API call and return the raw response body.

        Raises ``TemplateProxyError``; transport failures and server errors
        are marked recoverable so callers can fall back to cached data.
        """
        if config.path == LIBRARY_PATH:
            return await self._get_library()

        url = self._api.base_url + (config.path or "")
        headers = self.build_headers(config)
        body = json.dumps(self.build_body(config))

        log.debug("api_request", url=url, path=config.path)
        try:
            response = await self._client.post(
                url,
                content=body,
                headers=headers,
                timeout=self._api.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            log.warning("api_transport_error", url=url, error=str(exc))
            raise TemplateProxyError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Could not reach the template library: {exc}",
                recoverable=True,
            ) from exc

        if response.is_redirect:
            location = str(response.url.join(response.headers.get("location", "")))
            if not self._is_files_host(location):
                raise TemplateProxyError(
                    ErrorCode.REMOTE_ERROR,
                    f"Unexpected redirect to {location}",
                )
            if config.no_redirect:
                return location
            response = await self._follow(location)

        return self._body_of(response, not_found=ErrorCode.TEMPLATE_NOT_FOUND)

    def _is_files_host(self, location: str) -> bool:
        host = httpx.URL(location).host
        return host == self._api.files_host or host.endswith("." + self._api.files_host)

    async def _follow(self, location: str) -> httpx.Response:
        log.debug("api_redirect", location=location)
        try:
            return await self._client.get(
                location,
                timeout=self._api.redirect_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            log.warning("api_transport_error", url=location, error=str(exc))
            raise TemplateProxyError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Could not reach the template library: {exc}",
                recoverable=True,
            ) from exc

    async def _get_library(self) -> str:
        url = self._api.library_url
        log.debug("library_request", url=url)
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            log.warning("library_transport_error", url=url, error=str(exc))
            raise TemplateProxyError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Could not reach the template library: {exc}",
                recoverable=True,
            ) from exc
        return self._body_of(response, not_found=ErrorCode.LIBRARY_NOT_FOUND)

    def _body_of(self, response: httpx.Response, not_found: ErrorCode) -> str:
        if response.status_code == 404:
            message = (
                "Error fetching library, URL not found. Please try again"
                if not_found is ErrorCode.LIBRARY_NOT_FOUND
                else "Error fetching template. Please try again"
            )
            raise TemplateProxyError(not_found, message)
        if response.status_code >= 500:
            raise TemplateProxyError(
                ErrorCode.REMOTE_UNAVAILABLE,
                f"Template library returned HTTP {response.status_code}",
                recoverable=True,
            )
        if not response.text:
            raise TemplateProxyError(
                ErrorCode.REMOTE_UNAVAILABLE,
                "API fetch failure.",
                recoverable=True,
            )
        return response.text
