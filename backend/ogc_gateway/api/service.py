"""OGC service endpoint proxying WMS, WFS and WMTS requests.

Clients address the map engine through this endpoint only. The target
project is selected with the ``repository`` and ``project`` query
parameters; every other parameter is an OGC parameter passed through the
mediation layer.

The user identity is taken from headers set by an authentication proxy.
The gateway must only be reachable through that proxy, which has to
strip client-supplied identity headers, before ``trust_identity_headers``
is enabled.

Example:
    Request the capabilities of a project:
        >>> response = client.get(
        ...     "/service",
        ...     params={
        ...         "repository": "demo",
        ...         "project": "events",
        ...         "SERVICE": "WMS",
        ...         "REQUEST": "GetCapabilities",
        ...     },
        ... )
        >>> # OnlineResource links point back to /service?repository=demo...

    Request a tile-sized map image of a cached layer:
        >>> response = client.get(
        ...     "/service",
        ...     params={
        ...         "repository": "demo",
        ...         "project": "events",
        ...         "SERVICE": "WMS",
        ...         "REQUEST": "GetMap",
        ...         "LAYERS": "osm",
        ...         "WIDTH": "256",
        ...         "HEIGHT": "256",
        ...     },
        ... )
"""

from __future__ import annotations

import functools

import fastapi
from fastapi import concurrency, responses

from ogc_gateway.core import config
from ogc_gateway.db import database
from ogc_gateway.db import models as db_models
from ogc_gateway.services import backend, cache, mediation, rewriter

router = fastapi.APIRouter(tags=["service"])

PROJECT_PARAMETERS = frozenset({"repository", "project"})


def _get_repo(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.ProjectRepositoryProtocol:
    """Resolve the project repository dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        ProjectRepositoryProtocol implementation
            (FileProjectRepository in production).
    """
    return database.get_project_repository(settings)


@functools.lru_cache
def _get_mediator() -> mediation.OGCMediator:
    """Build the process-wide mediator.

    The mediator is created once so that the backend HTTP client and the
    cache driver are shared by all requests.
    """
    settings = config.get_settings()
    return mediation.OGCMediator(
        backend=backend.get_backend_client(settings),
        services=settings.services_config(),
        cache_driver=cache.get_cache_driver(settings),
        cache_ttl=settings.cache_ttl_seconds,
        media_url=settings.media_endpoint,
    )


def close_mediator() -> None:
    """Close the process-wide mediator, if one was built.

    The next request builds a fresh mediator.
    """
    if _get_mediator.cache_info().currsize:
        _get_mediator().close()
    _get_mediator.cache_clear()


def get_identity(
    request: fastapi.Request,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> db_models.IdentityContext:
    """Read the current user from the authentication proxy headers.

    The headers are only honoured when ``trust_identity_headers`` is set:
    any client reaching the gateway directly could send them. Groups are
    ignored for anonymous requests.

    Args:
        request: Incoming request.
        settings: Application settings naming the identity headers.

    Returns:
        IdentityContext, anonymous when the headers are not trusted or
        the user header is missing.
    """
    if not settings.trust_identity_headers:
        return db_models.IdentityContext()

    user = request.headers.get(settings.identity_user_header, "").strip()
    if not user:
        return db_models.IdentityContext()

    raw_groups = request.headers.get(settings.identity_groups_header, "")
    groups = tuple(group.strip() for group in raw_groups.split(",") if group.strip())
    return db_models.IdentityContext(
        user=user,
        groups=groups,
        can_override_login_filters=any(
            group in settings.login_filter_override_groups for group in groups
        ),
    )


async def _request_parameters(request: fastapi.Request) -> dict[str, str]:
    """Merge query parameters with form fields of POST requests."""
    params = dict(request.query_params)
    if request.method == "POST":
        content_type = request.headers.get("content-type", "")
        if content_type.startswith(
            ("application/x-www-form-urlencoded", "multipart/form-data")
        ):
            form = await request.form()
            params.update(
                {key: value for key, value in form.items() if isinstance(value, str)}
            )
    return params


@router.api_route("/service", methods=["GET", "POST"], name="ogc_service")
async def ogc_service(
    request: fastapi.Request,
    repository: str,
    project: str,
    repo: database.ProjectRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
    mediator: mediation.OGCMediator = fastapi.Depends(_get_mediator),  # noqa: B008
    identity: db_models.IdentityContext = fastapi.Depends(get_identity),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> responses.Response:
    """Mediate an OGC request for a repository project.

    Args:
        request: Incoming request carrying the OGC parameters.
        repository: Repository key.
        project: Project key.
        repo: Project repository (injected via FastAPI Depends).
        mediator: OGC mediator (injected via FastAPI Depends).
        identity: Current user (injected via FastAPI Depends).
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        The map engine response after rewriting, with its status code and
        mime type.

    Raises:
        HTTPException: If the project is unknown (404), the map engine
            times out (504) or cannot be reached (502).
    """
    try:
        target = repo.get(repository, project)
    except database.ProjectNotFoundError as exc:
        raise fastapi.HTTPException(status_code=404, detail=str(exc)) from exc

    raw_params = {
        key: value
        for key, value in (await _request_parameters(request)).items()
        if key.lower() not in PROJECT_PARAMETERS
    }
    full_url = rewriter.build_service_url(
        str(request.url_for("ogc_service")), repository, project
    )
    media_url = rewriter.build_service_url(
        settings.media_endpoint, repository, project
    )

    try:
        result = await concurrency.run_in_threadpool(
            mediator.handle,
            target,
            raw_params,
            identity,
            full_url=full_url,
            media_url=media_url,
        )
    except backend.BackendError as exc:
        raise fastapi.HTTPException(
            status_code=504 if exc.timeout else 502,
            detail=str(exc),
        ) from exc

    return responses.Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.mime_type or None,
    )
