"""Image size limits for WMS GetMap requests.

Limits are resolved per dimension: a project value wins when set,
otherwise the service-wide value applies. An empty or zero value means
the dimension is not bounded.

``check_maximum_width_height`` only tells whether a height bound is
configured: it returns True when no effective maximum height exists, in
which case enforcement is skipped. ``exceeds_maximum_size`` performs the
actual comparison against the resolved limits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ogc_gateway.db import models as db_models

Limit = int | str | None


def _resolve(project_value: Limit, services_value: Limit) -> int | None:
    value = project_value if project_value else services_value
    if not value:
        return None
    return int(value)


def effective_maximum_size(
    project: db_models.Project,
    services: db_models.ServicesConfig | None,
) -> tuple[int | None, int | None]:
    """Resolve the maximum width and height for a project.

    Args:
        project: Project carrying optional WMS limits.
        services: Service-wide fallback limits, None when not loaded.

    Returns:
        Tuple of (max_width, max_height); None marks an unbounded dimension.
    """
    services_width = services.wms_max_width if services else None
    services_height = services.wms_max_height if services else None
    return (
        _resolve(project.wms_max_width, services_width),
        _resolve(project.wms_max_height, services_height),
    )


def check_maximum_width_height(
    request_width: int | str | None,
    request_height: int | str | None,
    project: db_models.Project,
    services: db_models.ServicesConfig | None,
) -> bool:
    """Tell whether no maximum height applies to the project.

    The requested dimensions and the maximum width do not influence the
    result.

    Args:
        request_width: Requested image width.
        request_height: Requested image height.
        project: Project carrying optional WMS limits.
        services: Service-wide fallback limits.

    Returns:
        True when the effective maximum height is unset, False otherwise.
    """
    _, max_height = effective_maximum_size(project, services)
    return max_height is None


def _as_int(value: int | str | None) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def exceeds_maximum_size(
    request_width: int | str | None,
    request_height: int | str | None,
    project: db_models.Project,
    services: db_models.ServicesConfig | None,
) -> bool:
    """Compare requested dimensions with the resolved limits.

    Unparsable dimensions count as zero and never exceed a limit.
    """
    max_width, max_height = effective_maximum_size(project, services)
    if max_width is not None and _as_int(request_width) > max_width:
        return True
    return max_height is not None and _as_int(request_height) > max_height
