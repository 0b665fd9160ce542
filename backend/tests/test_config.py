"""Tests for application configuration and settings.

This module contains unit tests for the Settings Pydantic model in
ogc_gateway.core.config. It ensures that default values, environment
parsing of empty limits, services configuration and get_settings caching
work as expected.
"""

from __future__ import annotations

import pathlib

import pytest

from ogc_gateway.core import config
from ogc_gateway.db import models as db_models


def test_settings_defaults() -> None:
    """Test that Settings has expected default values."""
    settings = config.Settings()
    assert settings.wms_max_width is None
    assert settings.wms_max_height is None
    assert settings.cache_driver is None
    assert settings.media_endpoint == "getMedia"
    assert settings.allow_origins == ["*"]
    assert settings.trust_identity_headers is False
    assert settings.cache_max_entries == 10000


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables override defaults."""
    monkeypatch.setenv("WMS_MAX_WIDTH", "")
    monkeypatch.setenv("WMS_MAX_HEIGHT", "3000")
    monkeypatch.setenv("CACHE_DRIVER", "memory")
    monkeypatch.setenv("REPOSITORIES", '{"demo": "/srv/demo"}')
    settings = config.Settings()
    assert settings.wms_max_width is None
    assert settings.wms_max_height == 3000
    assert settings.cache_driver == "memory"
    assert settings.repositories == {"demo": pathlib.Path("/srv/demo")}


def test_services_config() -> None:
    """Test the immutable services configuration."""
    settings = config.Settings(wms_max_width=2000, cache_driver="memory")
    assert settings.services_config() == db_models.ServicesConfig(
        wms_max_width=2000, wms_max_height=None, cache_driver="memory"
    )


def test_get_settings_cached() -> None:
    """Test that get_settings returns cached instance."""
    config.get_settings.cache_clear()
    settings1 = config.get_settings()
    settings2 = config.get_settings()
    assert settings1 is settings2
    config.get_settings.cache_clear()
