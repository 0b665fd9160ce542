"""Data models for repositories, projects and OGC exchanges.

This module defines the read-only configuration objects consumed by the
mediation layer (repositories, projects, per-layer settings, service-wide
limits), the identity fact supplied by the authentication collaborator,
and the immutable response triple returned by the map engine.

Configuration objects are frozen: they are loaded once per process or
request scope and shared across concurrent requests without locking.

Example:
    Describe a project with one cacheable layer:
        >>> from ogc_gateway.db.models import LayerConfig, Project, Repository
        >>> repo = Repository(key="montpellier", label="Demo", path="/srv/demo")
        >>> project = Project(
        ...     key="events",
        ...     repository=repo,
        ...     map_path="/srv/demo/events.qgs",
        ...     layers={"osm": LayerConfig(name="osm", cached=True)},
        ...     wms_max_height=2000,
        ... )

    Describe the current user:
        >>> identity = IdentityContext(user="admin", groups=("admins",))
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

ClientKind = Literal["web", "gis"]
RequestParameters = dict[str, str | None]

ALL_USERS_VALUE = "all"


@dataclasses.dataclass(frozen=True)
class Repository:
    """A directory of projects published together.

    Attributes:
        key: Identifier used in service URLs and to scope cache keys.
        label: Human-readable repository title.
        path: Directory holding the project files, None when unknown.
    """

    key: str
    label: str = ""
    path: str | None = None


@dataclasses.dataclass(frozen=True)
class LayerConfig:
    """Per-layer publication settings relevant to request mediation.

    Attributes:
        name: Layer name as used in the LAYERS parameter.
        cached: Whether tile-sized requests may be served by the cache.
        single_tile: Whether the client requests the layer as one image.
        image_format: Preferred image mime type.
        client_cache_expiration: Browser cache lifetime in seconds.
    """

    name: str
    cached: bool = False
    single_tile: bool = True
    image_format: str = "image/png"
    client_cache_expiration: int = 300


@dataclasses.dataclass(frozen=True)
class LoginFilteredLayer:
    """Attribute-based row restriction declared for a layer.

    Rows are visible when the value of ``filter_attribute`` is the user
    login (private filter), one of the user groups, or ``all``.
    """

    layer: str
    filter_attribute: str
    filter_private: bool = False

    def expression_for(self, identity: IdentityContext) -> str:
        """Build the QGIS expression restricting rows for ``identity``."""
        values: list[str] = []
        if identity.user:
            if self.filter_private:
                values.append(identity.user)
            else:
                values.extend(identity.groups)
        values.append(ALL_USERS_VALUE)
        quoted = " , ".join(
            "'{}'".format(value.replace("'", "''")) for value in values
        )
        return f'"{self.filter_attribute}" IN ( {quoted} )'


@dataclasses.dataclass(frozen=True)
class Project:
    """A published map configuration.

    Attributes:
        key: Project identifier inside its repository.
        repository: Owning repository.
        map_path: Path of the map file handed to the engine, None when
            it cannot be resolved.
        login_filters: Static layer name to filter expression mapping.
        login_filtered_layers: Attribute-based restrictions per layer.
        wms_max_width: Project-level maximum image width, None if unset.
        wms_max_height: Project-level maximum image height, None if unset.
        layers: Per-layer configuration keyed by layer name.
    """

    key: str
    repository: Repository
    map_path: str | None = None
    login_filters: Mapping[str, str] = dataclasses.field(default_factory=dict)
    login_filtered_layers: Mapping[str, LoginFilteredLayer] = dataclasses.field(
        default_factory=dict
    )
    wms_max_width: int | None = None
    wms_max_height: int | None = None
    layers: Mapping[str, LayerConfig] = dataclasses.field(default_factory=dict)

    def has_login_filters(self) -> bool:
        """Return True when any layer of the project is login filtered."""
        return bool(self.login_filters) or bool(self.login_filtered_layers)

    def get_login_filters(
        self,
        layers: Iterable[str],
        identity: IdentityContext,
    ) -> dict[str, str]:
        """Resolve login filter expressions for the requested layers.

        Args:
            layers: Layer names named by the request.
            identity: Current user, whose login or groups parameterize
                attribute-based rules.

        Returns:
            Mapping of layer name to expression, restricted to ``layers``.
            Empty when the user may override login filters.
        """
        if identity.can_override_login_filters:
            return {}

        filters: dict[str, str] = {}
        for layer in layers:
            if layer in self.login_filters:
                filters[layer] = self.login_filters[layer]
            elif layer in self.login_filtered_layers:
                rule = self.login_filtered_layers[layer]
                filters[layer] = rule.expression_for(identity)
        return filters

    def layer_config(self, name: str) -> LayerConfig | None:
        return self.layers.get(name)


@dataclasses.dataclass(frozen=True)
class ServicesConfig:
    """Process-wide fallback limits and cache settings.

    Attributes:
        wms_max_width: Fallback maximum image width, None if unset.
        wms_max_height: Fallback maximum image height, None if unset.
        cache_driver: Name of the configured cache driver, None if absent.
    """

    wms_max_width: int | None = None
    wms_max_height: int | None = None
    cache_driver: str | None = None


@dataclasses.dataclass(frozen=True)
class IdentityContext:
    """Current user as reported by the authentication collaborator."""

    user: str | None = None
    groups: tuple[str, ...] = ()
    can_override_login_filters: bool = False

    @property
    def is_anonymous(self) -> bool:
        return not self.user


@dataclasses.dataclass(frozen=True)
class OGCResponse:
    """Status, mime type and body returned by the map engine or cache."""

    status_code: int
    mime_type: str
    body: str | bytes

    @property
    def is_textual(self) -> bool:
        """Whether the body is an XML or text document that can be rewritten."""
        mime = self.mime_type.lower()
        return "xml" in mime or mime.startswith("text/")
