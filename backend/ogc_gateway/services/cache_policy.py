"""Cache admission policy for map requests.

Tile-sized requests on layers flagged as cached may be served through
the cache-fronted "web" client when a cache driver is configured. Larger
images always go to the map engine through the direct "gis" client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ogc_gateway.db import models as db_models

# Heights above this are rendered as single images, not tiles.
SINGLE_TILE_MAX_HEIGHT = 350


def _height(params: Mapping[str, object]) -> int:
    try:
        return int(params.get("height") or 0)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0


def select_client(params: Mapping[str, object]) -> db_models.ClientKind:
    """Pick the client kind from the requested image height."""
    if _height(params) > SINGLE_TILE_MAX_HEIGHT:
        return "gis"
    return "web"


def use_cache(
    layer_config: db_models.LayerConfig | None,
    params: Mapping[str, object],
    cache_driver: object | None,
) -> tuple[bool, db_models.ClientKind]:
    """Decide cache eligibility and the client handling the request.

    Args:
        layer_config: Configuration of the requested layer, None if the
            layer is unknown or several layers are requested.
        params: Request parameters; only ``height`` is read.
        cache_driver: Configured cache driver, None when caching is off.

    Returns:
        Tuple of (use_cache, client_kind). Caching requires the "web"
        client, a cache driver and a layer flagged as cached.

    Example:
        >>> from ogc_gateway.db.models import LayerConfig
        >>> use_cache(LayerConfig(name="osm", cached=True), {"height": 256}, object())
        (True, 'web')
        >>> use_cache(LayerConfig(name="osm", cached=True), {"height": 351}, object())
        (False, 'gis')
    """
    client_kind = select_client(params)
    cached = layer_config is not None and layer_config.cached
    return (
        client_kind == "web" and cache_driver is not None and cached,
        client_kind,
    )
