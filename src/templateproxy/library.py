"""Cache-fill fetcher: serve from the local JSON cache, refresh from remote.

A cached document is used while ``now <= mtime + ttl``. On a miss the
remote service is asked for a fresh copy, which replaces the cache file.
When the remote call fails, the previous copy (however old) is returned
with ``status``, ``cache`` and ``error`` markers added; its own keys are
left untouched.

There is no single-flight guard: concurrent refreshes of one key race and
the last writer wins.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from templateproxy.errors import ErrorCode, TemplateProxyError
from templateproxy.jsonstore import decode_json
from templateproxy.models.cache import FetchResult
from templateproxy.models.requests import FetchParams, RequestConfig

if TYPE_CHECKING:
    from pathlib import Path

    from templateproxy.cache import FileCache
    from templateproxy.fetcher import Fetcher

log = structlog.get_logger()

STALE_MESSAGE = "Fetching failed, used a cached version."
FAILED_MESSAGE = "Error Fetching"


class CacheFetcher:
    def __init__(self, cache: FileCache, fetcher: Fetcher) -> None:
        self._cache = cache
        self._fetcher = fetcher

    async def fetch(
        self,
        key: str,
        config: RequestConfig,
        params: FetchParams | None = None,
        cache_only: bool = False,
        now: datetime | None = None,
    ) -> FetchResult:
        """Return the document for ``key``, refreshing it when stale.

        ``cache_only`` never touches the network and returns ``{}`` when
        nothing usable is cached. ``params.no_cache`` forces a refresh.
        """
        params = params or FetchParams()
        path = self._cache.resolve(key)
        modified = self._cache.modified_at(path)
        headers = dict(config.headers)

        use_cache = not params.no_cache
        if modified is not None:
            headers["Redux-Cache-Time"] = str(int(modified.timestamp()))
            if not self._cache.is_fresh(modified, now or datetime.now(UTC)):
                use_cache = False

        if cache_only:
            cached = self._cache.read(path)
            return FetchResult(data=cached.data, source="cache" if cached.ok else "none")

        if use_cache:
            cached = self._cache.read(path)
            if cached.ok and cached.data:
                log.debug("cache_hit", key=key)
                return FetchResult(data=cached.data, source="cache")
        else:
            headers.pop("Redux-Cache-Time", None)

        if params.registered_blocks is not None:
            headers["Redux-Registered-Blocks"] = ",".join(params.registered_blocks)

        log.info("cache_miss", key=key, forced=params.no_cache)
        request = config.model_copy(update={"headers": headers})
        try:
            body = await self._fetcher.request(request)
        except TemplateProxyError as exc:
            if not exc.recoverable:
                raise
            log.warning("remote_fetch_failed", key=key, code=exc.code, error=exc.message)
            return self._fallback(path)

        decoded = decode_json(body)
        if decoded.ok and "use_cache" in decoded.data:
            cached = self._cache.read(path)
            if not cached.ok:
                return self._fallback(path)
            return FetchResult(
                data={**cached.data, "cache": "used"},
                source="cache",
                cache="used",
            )

        data: dict[str, Any] = decoded.data if decoded.ok and decoded.data else {"message": body}
        if data.get("status") == "error":
            raise TemplateProxyError(
                ErrorCode.REMOTE_ERROR,
                str(data.get("message", "The template library reported an error.")),
            )

        self._cache.write(path, data)
        if use_cache:
            return FetchResult(data=data, source="remote")
        return FetchResult(data={**data, "cache": "cleared"}, source="remote", cache="cleared")

    def _fallback(self, path: Path) -> FetchResult:
        cached = self._cache.read(path)
        if cached.ok and cached.data:
            return FetchResult(
                data={
                    **cached.data,
                    "status": "error",
                    "cache": "stale",
                    "error": STALE_MESSAGE,
                },
                source="stale",
                cache="stale",
            )
        return FetchResult(data={"message": FAILED_MESSAGE}, source="none")
