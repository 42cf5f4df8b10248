"""Unit tests for configuration defaults and validation."""

from __future__ import annotations

import platformdirs
import pytest
from pydantic import ValidationError

from templateproxy.config import _DEFAULT_CACHE_DIR, _DEFAULT_DATA_DIR, CacheSettings, Settings


class TestPlatformDefaults:
    def test_default_data_dir_matches_platformdirs(self) -> None:
        assert platformdirs.user_data_dir("templateproxy") == _DEFAULT_DATA_DIR

    def test_default_cache_dir_under_data_dir(self) -> None:
        assert _DEFAULT_CACHE_DIR.startswith(_DEFAULT_DATA_DIR)
        assert CacheSettings().cache_dir == _DEFAULT_CACHE_DIR

    def test_ttl_default_is_one_day(self) -> None:
        assert CacheSettings().ttl_hours == 24


class TestEnvironment:
    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEMPLATEPROXY__API__BASE_URL", "https://staging.example/")
        monkeypatch.setenv("TEMPLATEPROXY__CACHE__TTL_HOURS", "6")
        settings = Settings()
        assert settings.api.base_url == "https://staging.example/"
        assert settings.cache.ttl_hours == 6


class TestConfigValidation:
    def test_wrong_type_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            Settings(server={"port": "not-a-number"})  # type: ignore[arg-type]

    def test_unknown_top_level_field_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            Settings(completely_unknown_field="oops")  # type: ignore[call-arg]

    def test_unknown_nested_field_raises_validation_error(self) -> None:
        """A typo like 'ttl_hour' is caught instead of silently using the default."""
        with pytest.raises(ValidationError):
            CacheSettings(ttl_hour=1)  # type: ignore[call-arg]
