"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
the map engine URL and timeouts, service-wide image size limits, the cache
driver, published repositories, the media endpoint name and the trusted
identity headers set by the authentication proxy.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from ogc_gateway.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.map_engine_url)

    Environment variables can override defaults:
        >>> MAP_ENGINE_URL=http://qgis-server/ows/
        >>> WMS_MAX_HEIGHT=3000
        >>> CACHE_DRIVER=memory
        >>> REPOSITORIES='{"demo": "/srv/projects/demo"}'
"""

import functools
import pathlib

import pydantic
import pydantic_settings

from ogc_gateway.db import models as db_models


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    Attributes:
        map_engine_url: Base URL of the backend OGC map server.
        web_request_timeout: Timeout in seconds for tile-sized requests.
        gis_request_timeout: Timeout in seconds for large renderings sent
            straight to the map engine.
        wms_max_width: Service-wide maximum image width (empty = unset).
        wms_max_height: Service-wide maximum image height (empty = unset).
        cache_driver: Cache driver name ("memory"), empty for no cache.
        cache_ttl_seconds: Lifetime of cached map responses.
        cache_max_entries: Maximum number of responses kept by the
            in-memory cache driver.
        repositories: Repository key to project directory mapping.
        media_endpoint: Endpoint that serves project media files.
        trust_identity_headers: Read the identity headers. Enable only when
            the authentication proxy is the sole route to the gateway and
            overwrites those headers on every request.
        identity_user_header: Header carrying the authenticated login.
        identity_groups_header: Header carrying comma-separated groups.
        login_filter_override_groups: Groups allowed to see rows hidden
            by login filters.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        log_level: Root log level name.
    """

    map_engine_url: pydantic.AnyHttpUrl | str = "http://localhost:8080/ows/"
    web_request_timeout: float = 30.0
    gis_request_timeout: float = 300.0
    wms_max_width: int | None = None
    wms_max_height: int | None = None
    cache_driver: str | None = None
    cache_ttl_seconds: int = 3600
    cache_max_entries: int = 10000
    repositories: dict[str, pathlib.Path] = {}
    media_endpoint: str = "getMedia"
    trust_identity_headers: bool = False
    identity_user_header: str = "X-Lizmap-User"
    identity_groups_header: str = "X-Lizmap-User-Groups"
    login_filter_override_groups: list[str] = []
    allow_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @pydantic.field_validator(
        "wms_max_width", "wms_max_height", "cache_driver", mode="before"
    )
    @classmethod
    def _empty_as_unset(cls, value: object) -> object:
        """Treat empty strings from the environment as unset values."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def services_config(self) -> db_models.ServicesConfig:
        """Build the immutable service-wide configuration.

        Returns:
            ServicesConfig carrying the fallback size limits and the
            configured cache driver name.
        """
        return db_models.ServicesConfig(
            wms_max_width=self.wms_max_width,
            wms_max_height=self.wms_max_height,
            cache_driver=self.cache_driver,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Subsequent calls return the same
    cached instance.

    Returns:
        Settings instance with all configuration values populated.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    return Settings()
