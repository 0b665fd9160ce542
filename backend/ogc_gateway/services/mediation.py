"""Request/response mediation between map clients and the map engine.

A mediated request goes through strictly sequential steps:

1. parameters are normalized and augmented with identity and login
   filters;
2. for GetMap, the image size is checked and the cache policy picks the
   client;
3. the selected client calls the map engine (or the cache);
4. capabilities and context documents get their ``xlink:href`` rewritten
   to the portal, and feature info HTML gets its media links routed
   through the media endpoint.

Nothing here keeps state between requests; the configuration and cache
driver are shared read-only.

Example:
    >>> mediator = OGCMediator(
    ...     backend=HttpBackendClient("http://qgis-server/ows/"),
    ...     services=settings.services_config(),
    ... )
    >>> response = mediator.handle(
    ...     project,
    ...     {"SERVICE": "WMS", "REQUEST": "GetCapabilities"},
    ...     IdentityContext(user="admin", groups=("admins",)),
    ...     full_url="https://portal/service?repository=demo&project=events",
    ... )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ogc_gateway.db import models as db_models
from ogc_gateway.services import backend as backend_service
from ogc_gateway.services import cache, cache_policy, parameters, rewriter, size_guard

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

HREF_REWRITTEN_REQUESTS = frozenset({"getcapabilities", "getcontext"})
MEDIA_REWRITTEN_REQUESTS = frozenset({"getfeatureinfo"})


def service_exception(
    code: str,
    message: str,
    status_code: int = 400,
) -> db_models.OGCResponse:
    """Create a ServiceExceptionReport response.

    Args:
        code: ServiceException code.
        message: ServiceException text.
        status_code: HTTP status of the response.
    """
    body = (
        '<ServiceExceptionReport version="1.3.0">\n'
        ' <ServiceException code="%s">%s</ServiceException>\n'
        "</ServiceExceptionReport>"
        % (code, message)
    )
    return db_models.OGCResponse(status_code, "text/xml", body)


class OGCMediator:
    """Runs OGC requests through parameter building, size and cache
    decisions, the backend call and response rewriting.

    Attributes:
        backend: Direct map engine client.
        services: Service-wide limits and cache driver name.
        cache_driver: Configured cache driver, None when caching is off.
        cache_ttl: Lifetime of cached responses in seconds.
        media_url: Media endpoint used by rewritten media links.
    """

    def __init__(
        self,
        backend: backend_service.BackendClientProtocol,
        services: db_models.ServicesConfig | None = None,
        cache_driver: cache.CacheDriverProtocol | None = None,
        cache_ttl: int = 3600,
        media_url: str = "getMedia",
    ) -> None:
        self.backend = backend
        self.services = services or db_models.ServicesConfig()
        self.cache_driver = cache_driver
        self.cache_ttl = cache_ttl
        self.media_url = media_url

    def close(self) -> None:
        """Release the map engine client."""
        self.backend.close()

    def handle(
        self,
        project: db_models.Project,
        raw_params: Mapping[str, str | None],
        identity: db_models.IdentityContext,
        full_url: str | None = None,
        media_url: str | None = None,
    ) -> db_models.OGCResponse:
        """Mediate one OGC request.

        Args:
            project: Project the request targets.
            raw_params: Inbound parameters, names in any case.
            identity: Current user and groups.
            full_url: Public service URL for this repository and project,
                written into capabilities and context documents.
            media_url: Media endpoint for this project, defaults to the
                mediator endpoint.

        Returns:
            The rewritten map engine response, or a ServiceExceptionReport
            when the request is rejected before reaching the engine.

        Raises:
            BackendError: If the map engine cannot be reached.
        """
        params = parameters.build_parameters(raw_params, project, identity)
        service = (params.get("service") or "").upper()
        request = (params.get("request") or "").lower()
        if not service:
            return service_exception(
                "OperationNotSupported",
                "Please add the value of the SERVICE parameter",
            )

        if service == "WMS" and request == "getmap":
            response = self._get_map(project, params)
        else:
            response = self.backend.request(params, "web")

        if service == "WMS" and request in HREF_REWRITTEN_REQUESTS:
            return rewriter.rewrite_hrefs(
                response, project.repository.key, project.key, full_url
            )
        if service == "WMS" and request in MEDIA_REWRITTEN_REQUESTS:
            return rewriter.rewrite_media_response(
                response, media_url or self.media_url
            )
        return response

    def _get_map(
        self,
        project: db_models.Project,
        params: db_models.RequestParameters,
    ) -> db_models.OGCResponse:
        width = params.get("width")
        height = params.get("height")
        if not size_guard.check_maximum_width_height(
            width, height, project, self.services
        ) and size_guard.exceeds_maximum_size(width, height, project, self.services):
            return service_exception(
                "InvalidParameterValue", "The requested map size is too large"
            )

        layers = parameters.requested_layers(params)
        layer_config = project.layer_config(layers[0]) if len(layers) == 1 else None
        use_cache, client_kind = cache_policy.use_cache(
            layer_config, params, self.cache_driver
        )
        logger.debug(
            "GetMap %s/%s: client=%s cache=%s",
            project.repository.key,
            project.key,
            client_kind,
            use_cache,
        )

        if use_cache and self.cache_driver is not None:
            client: backend_service.BackendClientProtocol = (
                backend_service.CachedBackendClient(
                    self.backend,
                    self.cache_driver,
                    project.repository.key,
                    project.key,
                    ttl=self.cache_ttl,
                )
            )
        else:
            client = self.backend
        return client.request(params, client_kind)
