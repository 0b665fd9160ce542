"""Unit tests for ogc_gateway.services.size_guard.

``check_maximum_width_height`` is True only when no maximum height is
configured, whatever the requested size or maximum width. Limits come
from the project first, then from the service-wide configuration.

See Also:
    - backend/ogc_gateway/services/size_guard.py for implementation.
"""

from __future__ import annotations

import pytest

from ogc_gateway.db import models as db_models
from ogc_gateway.services import size_guard


def _setup(
    max_width: int | str,
    max_height: int | str,
    use_services: bool,
) -> tuple[db_models.Project, db_models.ServicesConfig]:
    project = db_models.Project(
        key="proj",
        repository=db_models.Repository(key="key"),
        wms_max_width=None if use_services else max_width,  # type: ignore[arg-type]
        wms_max_height=None if use_services else max_height,  # type: ignore[arg-type]
    )
    services = db_models.ServicesConfig(
        wms_max_width=max_width if use_services else None,  # type: ignore[arg-type]
        wms_max_height=max_height if use_services else None,  # type: ignore[arg-type]
    )
    return project, services


@pytest.mark.parametrize(
    ("width", "max_width", "height", "max_height", "use_services", "expected"),
    [
        (50, 25, 50, 25, False, False),
        (50, 25, 50, 25, True, False),
        (50, 25, 50, 55, False, False),
        (50, 55, 50, 25, True, False),
        (50, 55, 50, "", True, True),
        (50, 55, 50, "", False, True),
    ],
)
def test_check_maximum_width_height(
    width: int,
    max_width: int,
    height: int,
    max_height: int | str,
    use_services: bool,
    expected: bool,
) -> None:
    """Test the maximum height gate against the reference table."""
    project, services = _setup(max_width, max_height, use_services)
    result = size_guard.check_maximum_width_height(width, height, project, services)
    assert result is expected


def test_check_without_any_configuration() -> None:
    """Test that missing limits everywhere are a valid state."""
    project = db_models.Project(key="p", repository=db_models.Repository(key="r"))
    assert size_guard.check_maximum_width_height(5000, 5000, project, None)


def test_effective_maximum_size_prefers_project() -> None:
    """Test that project limits win per dimension over service limits."""
    project = db_models.Project(
        key="p", repository=db_models.Repository(key="r"), wms_max_width=800
    )
    services = db_models.ServicesConfig(wms_max_width=3000, wms_max_height=2000)
    assert size_guard.effective_maximum_size(project, services) == (800, 2000)


def test_exceeds_maximum_size() -> None:
    """Test the comparison of requested dimensions with limits."""
    project = db_models.Project(
        key="p",
        repository=db_models.Repository(key="r"),
        wms_max_width=100,
        wms_max_height=100,
    )
    assert not size_guard.exceeds_maximum_size("100", "100", project, None)
    assert size_guard.exceeds_maximum_size("101", "50", project, None)
    assert size_guard.exceeds_maximum_size(50, 101, project, None)
    assert not size_guard.exceeds_maximum_size("abc", None, project, None)
