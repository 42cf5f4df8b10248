from __future__ import annotations

from templateproxy.models.api import (
    ActivateOutput,
    DeleteBlockInput,
    PluginInstallInput,
    ShareOutput,
    TemplateInput,
)
from templateproxy.models.cache import CacheEntry, DecodeResult, FetchResult
from templateproxy.models.requests import FetchParams, RequestConfig

__all__ = [
    # cache
    "CacheEntry",
    "DecodeResult",
    "FetchResult",
    # outbound requests
    "RequestConfig",
    "FetchParams",
    # api
    "TemplateInput",
    "PluginInstallInput",
    "DeleteBlockInput",
    "ShareOutput",
    "ActivateOutput",
]
