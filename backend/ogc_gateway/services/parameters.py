"""Outbound parameter assembly for OGC requests.

Inbound OGC parameter names are case-insensitive; they are normalized to
lower case before the identity and access-control parameters are added.
The map engine receives the current user and groups on every request so
that its access-control plugins can apply per-user restrictions.

Example:
    >>> from ogc_gateway.db import models as db_models
    >>> project = db_models.Project(
    ...     key="events", repository=db_models.Repository(key="demo")
    ... )
    >>> build_parameters(
    ...     {"REQUEST": "GetCapabilities", "SERVICE": "WMS"},
    ...     project,
    ...     db_models.IdentityContext(),
    ... )
    {'request': 'GetCapabilities', 'service': 'WMS', 'map': None, 'Lizmap_User': '', 'Lizmap_User_Groups': ''}
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ogc_gateway.services import login_filters

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ogc_gateway.db import models as db_models

USER_PARAMETER = "Lizmap_User"
GROUPS_PARAMETER = "Lizmap_User_Groups"
GROUPS_SEPARATOR = ", "

# Requests whose rendered content must honour login filters.
FILTERED_REQUESTS = frozenset({"getmap", "getfeatureinfo", "getprint"})

# GetPrint names the layers of each map item as ``map<N>:layers``.
PRINT_LAYERS_PATTERN = re.compile(r"map\d+:layers")


def normalize_parameters(raw: Mapping[str, str | None]) -> db_models.RequestParameters:
    """Lower-case parameter names, keeping values untouched.

    When a name is given twice with different casing the last one wins.
    """
    return {key.lower(): value for key, value in raw.items()}


def _split_layers(value: str | None) -> list[str]:
    return [layer.strip() for layer in (value or "").split(",") if layer.strip()]


def requested_layers(params: Mapping[str, str | None]) -> list[str]:
    """List the layer names of the LAYERS parameter, in request order."""
    return _split_layers(params.get("layers"))


def filtered_layers(params: Mapping[str, str | None]) -> list[str]:
    """List every layer whose rows the request can expose.

    Covers ``layers``, ``query_layers`` and the ``map<N>:layers`` items of
    print requests, deduplicated in request order. Names must already be
    lower case.
    """
    names = ["layers", "query_layers"] + [
        name for name in params if PRINT_LAYERS_PATTERN.fullmatch(name)
    ]
    layers: dict[str, None] = {}
    for name in names:
        layers.update(dict.fromkeys(_split_layers(params.get(name))))
    return list(layers)


def identity_parameters(identity: db_models.IdentityContext) -> dict[str, str]:
    """Identity parameters forwarded to the map engine, never omitted."""
    return {
        USER_PARAMETER: identity.user or "",
        GROUPS_PARAMETER: GROUPS_SEPARATOR.join(identity.groups),
    }


def build_parameters(
    raw: Mapping[str, str | None],
    project: db_models.Project,
    identity: db_models.IdentityContext,
) -> db_models.RequestParameters:
    """Build the parameter set sent to the map engine.

    Args:
        raw: Inbound query or form parameters.
        project: Project the request targets.
        identity: Current user and groups.

    Returns:
        Normalized parameters with ``map``, ``Lizmap_User`` and
        ``Lizmap_User_Groups`` always present. For map-style requests on
        projects declaring login filters, ``filter`` holds the merged
        value, or is absent when the merge yields nothing.
    """
    params = normalize_parameters(raw)
    # Identity comes from the authentication collaborator only.
    for name in (USER_PARAMETER, GROUPS_PARAMETER):
        params.pop(name.lower(), None)
    params["map"] = project.map_path
    params.update(identity_parameters(identity))

    request = (params.get("request") or "").lower()
    if request in FILTERED_REQUESTS and project.has_login_filters():
        layer_filters = project.get_login_filters(
            filtered_layers(params), identity
        )
        merged = login_filters.merge_login_filters(
            params.get("filter"), layer_filters
        )
        if merged is None:
            params.pop("filter", None)
        else:
            params["filter"] = merged

    return params
