"""Unit tests for ogc_gateway.db.models.

Covers the behaviour attached to the data model: login filter resolution
per requested layer and identity, textual response detection, and the
immutability of configuration objects.

See Also:
    - backend/ogc_gateway/db/models.py for implementation.
"""

from __future__ import annotations

import dataclasses

import pytest

from ogc_gateway.db import models as db_models


def _project() -> db_models.Project:
    return db_models.Project(
        key="events",
        repository=db_models.Repository(key="demo"),
        login_filters={"static": "\"id\" > 3"},
        login_filtered_layers={
            "shared": db_models.LoginFilteredLayer(
                layer="shared", filter_attribute="grp"
            ),
            "private": db_models.LoginFilteredLayer(
                layer="private", filter_attribute="owner", filter_private=True
            ),
        },
    )


def test_login_filters_restricted_to_requested_layers() -> None:
    """Test that only requested layers get a login filter."""
    identity = db_models.IdentityContext(user="jane", groups=("gis",))
    filters = _project().get_login_filters(["static", "other"], identity)
    assert filters == {"static": "\"id\" > 3"}


def test_login_filter_expressions() -> None:
    """Test group, private and anonymous expressions."""
    project = _project()
    jane = db_models.IdentityContext(user="jane", groups=("gis", "admins"))
    filters = project.get_login_filters(["shared", "private"], jane)
    assert filters["shared"] == "\"grp\" IN ( 'gis' , 'admins' , 'all' )"
    assert filters["private"] == "\"owner\" IN ( 'jane' , 'all' )"

    anonymous = project.get_login_filters(["shared"], db_models.IdentityContext())
    assert anonymous["shared"] == "\"grp\" IN ( 'all' )"


def test_login_filters_override() -> None:
    """Test that the override right removes every login filter."""
    identity = db_models.IdentityContext(
        user="admin", can_override_login_filters=True
    )
    assert _project().get_login_filters(["static", "shared"], identity) == {}


def test_response_is_textual() -> None:
    """Test the mime types considered rewritable."""
    assert db_models.OGCResponse(200, "text/xml", "").is_textual
    assert db_models.OGCResponse(200, "application/vnd.ogc.wms_xml", "").is_textual
    assert db_models.OGCResponse(200, "text/html", "").is_textual
    assert not db_models.OGCResponse(200, "image/png", b"").is_textual


def test_configuration_is_frozen() -> None:
    """Test that configuration objects cannot be mutated."""
    project = _project()
    with pytest.raises(dataclasses.FrozenInstanceError):
        project.key = "other"  # type: ignore[misc]


def test_identity_anonymous() -> None:
    """Test the anonymous identity defaults."""
    identity = db_models.IdentityContext()
    assert identity.is_anonymous
    assert identity.groups == ()
