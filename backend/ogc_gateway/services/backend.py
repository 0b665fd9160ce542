"""HTTP clients forwarding mediated requests to the map engine.

Two client kinds exist: "web" for tile-sized requests, which may be
served through the cache, and "gis" for large renderings sent straight
to the engine with a longer timeout. Non-2xx responses are returned as
they are; transport failures raise ``BackendError``. No retries are
attempted here.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from ogc_gateway.db import models as db_models
from ogc_gateway.services import cache

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ogc_gateway.core import config

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """The map engine could not be reached or did not answer in time."""

    def __init__(self, message: str, *, timeout: bool = False) -> None:
        super().__init__(message)
        self.timeout = timeout


class BackendClientProtocol(Protocol):
    """Protocol interface for map engine clients."""

    def request(
        self,
        params: Mapping[str, str | None],
        client_kind: db_models.ClientKind,
    ) -> db_models.OGCResponse: ...

    def close(self) -> None: ...


def _query(params: Mapping[str, str | None]) -> dict[str, str]:
    return {name: value for name, value in params.items() if value is not None}


class HttpBackendClient(BackendClientProtocol):
    """Synchronous httpx client for the map engine.

    Example:
        >>> client = HttpBackendClient("http://qgis-server/ows/")
        >>> response = client.request({"service": "WMS"}, "web")
        >>> client.close()
    """

    def __init__(
        self,
        base_url: str,
        web_timeout: float = 30.0,
        gis_timeout: float = 300.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Map engine OGC endpoint.
            web_timeout: Timeout in seconds for "web" requests.
            gis_timeout: Timeout in seconds for "gis" requests.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = base_url
        self.timeouts: dict[db_models.ClientKind, float] = {
            "web": web_timeout,
            "gis": gis_timeout,
        }
        self._client = httpx.Client(follow_redirects=True, transport=transport)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if not self._client.is_closed:
            self._client.close()

    def request(
        self,
        params: Mapping[str, str | None],
        client_kind: db_models.ClientKind,
    ) -> db_models.OGCResponse:
        """Send the parameters to the map engine.

        Args:
            params: Outbound parameters; None values are not sent.
            client_kind: "web" or "gis", selecting the timeout.

        Returns:
            The engine status code, mime type and body. Textual bodies are
            decoded, others are kept as bytes.

        Raises:
            BackendError: On timeout or transport failure.
        """
        timeout = self.timeouts[client_kind]
        try:
            response = self._client.get(
                self.base_url,
                params=_query(params),
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as exc:
            logger.warning("Map engine timeout after %ss (%s)", timeout, client_kind)
            raise BackendError(
                f"Map engine request timeout after {timeout}s", timeout=True
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("Map engine request error: %s", exc)
            raise BackendError(f"Map engine request error: {exc}") from exc

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        result = db_models.OGCResponse(
            status_code=response.status_code,
            mime_type=mime_type,
            body=response.content,
        )
        if result.is_textual:
            return dataclasses.replace(result, body=response.text)
        return result


class CachedBackendClient(BackendClientProtocol):
    """Cache-fronted client for tile-sized requests.

    Successful image responses are stored in the cache driver under a key
    scoped by repository and project; later identical requests are served
    without reaching the engine.
    """

    def __init__(
        self,
        backend: BackendClientProtocol,
        driver: cache.CacheDriverProtocol,
        repository_key: str,
        project_key: str,
        ttl: int = 3600,
    ) -> None:
        self.backend = backend
        self.driver = driver
        self.repository_key = repository_key
        self.project_key = project_key
        self.ttl = ttl

    def request(
        self,
        params: Mapping[str, str | None],
        client_kind: db_models.ClientKind,
    ) -> db_models.OGCResponse:
        key = cache.cache_key(self.repository_key, self.project_key, params)
        cached = self.driver.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        response = self.backend.request(params, client_kind)
        if response.status_code == 200 and response.mime_type.startswith("image/"):
            self.driver.set(key, response, self.ttl)
        return response

    def close(self) -> None:
        """Close the wrapped client; cached entries are kept."""
        self.backend.close()


def get_backend_client(settings: config.Settings) -> HttpBackendClient:
    """Factory function to create the map engine client.

    Args:
        settings: Application settings with the engine URL and timeouts.

    Returns:
        HttpBackendClient for production use.
    """
    return HttpBackendClient(
        str(settings.map_engine_url),
        web_timeout=settings.web_request_timeout,
        gis_timeout=settings.gis_request_timeout,
    )
