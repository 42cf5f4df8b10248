"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (TEMPLATEPROXY__API__BASE_URL=https://...)
  2. templateproxy.yaml     (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional; every field has a default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("templateproxy")
_DEFAULT_CACHE_DIR = str(Path(_DEFAULT_DATA_DIR) / "cache")


def _find_config_file() -> str | None:
    """Return the path of the first templateproxy.yaml found, or None."""
    candidates = [
        Path("templateproxy.yaml"),
        Path(platformdirs.user_config_dir("templateproxy")) / "templateproxy.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ServerSettings(_Section):
    host: str = "127.0.0.1"
    port: int = 8080


class ApiSettings(_Section):
    base_url: str = "https://api.redux.io/"
    library_url: str = "https://files.redux.io/library.json"
    # Redirects pointing at this host are followed with a secondary GET
    files_host: str = "files.redux.io"
    vendor_domain: str = "redux.io"
    timeout_seconds: float = 120.0
    redirect_timeout_seconds: float = 145.0
    api_key: str = ""
    # Local library.json that replaces the remote catalog when set
    library_override: str | None = None


class CacheSettings(_Section):
    ttl_hours: int = 24
    cache_dir: str = _DEFAULT_CACHE_DIR


class SiteSettings(_Section):
    url: str = "http://localhost"
    site_hash: str = ""
    multisite: bool = False
    core_version: str = "4.0.0"
    plugin_version: str = "4.0.0"
    # Pro plugin version when the pro add-on is loaded
    pro_version: str | None = None
    # Site holds a valid pro subscription
    pro_activated: bool = False
    # Site is registered with the vendor (unlimited template imports)
    activated: bool = False
    plugins_dir: str = str(Path(_DEFAULT_DATA_DIR) / "plugins")


class QuotaSettings(_Section):
    default_left: int = 5
    unlimited: int = 999


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: TEMPLATEPROXY__SERVER__PORT=9090
        env_prefix="TEMPLATEPROXY__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
    )

    data_dir: str = _DEFAULT_DATA_DIR
    server: ServerSettings = ServerSettings()
    api: ApiSettings = ApiSettings()
    cache: CacheSettings = CacheSettings()
    site: SiteSettings = SiteSettings()
    quota: QuotaSettings = QuotaSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
