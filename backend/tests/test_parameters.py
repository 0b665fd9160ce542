"""Unit tests for ogc_gateway.services.parameters.

This module checks the outbound parameter contract:
    - ``map``, ``Lizmap_User`` and ``Lizmap_User_Groups`` are always set,
      empty for anonymous users,
    - parameter names are normalized to lower case,
    - map-style requests merge login filters of every layer they name,
    - ``filter`` is absent, not empty, when the merge yields nothing,
    - unknown request types are passed through.

See Also:
    - backend/ogc_gateway/services/parameters.py for implementation.
"""

from __future__ import annotations

from ogc_gateway.db import models as db_models
from ogc_gateway.services import parameters

ANONYMOUS = db_models.IdentityContext()


def _project(**kwargs: object) -> db_models.Project:
    return db_models.Project(
        key="proj",
        repository=db_models.Repository(key="key"),
        **kwargs,  # type: ignore[arg-type]
    )


def test_unknown_request_gets_identity_parameters() -> None:
    """Test that identity parameters are added to any request."""
    params = parameters.build_parameters(
        {"request": "falseRequest", "service": "WMS"},
        _project(),
        ANONYMOUS,
    )
    assert params == {
        "request": "falseRequest",
        "service": "WMS",
        "map": None,
        "Lizmap_User": "",
        "Lizmap_User_Groups": "",
    }


def test_getmap_without_login_filters() -> None:
    """Test that GetMap without login filters gets no filter key."""
    params = parameters.build_parameters(
        {"request": "getmap", "service": "WMS"},
        _project(),
        ANONYMOUS,
    )
    assert params == {
        "request": "getmap",
        "service": "WMS",
        "map": None,
        "Lizmap_User": "",
        "Lizmap_User_Groups": "",
    }


def test_parameter_names_are_lower_cased() -> None:
    """Test that OGC parameter names are case-insensitive."""
    params = parameters.build_parameters(
        {"REQUEST": "GetMap", "Service": "WMS", "LAYERS": "a,b"},
        _project(map_path="/srv/demo/proj.qgs"),
        ANONYMOUS,
    )
    assert params["request"] == "GetMap"
    assert params["service"] == "WMS"
    assert params["layers"] == "a,b"
    assert params["map"] == "/srv/demo/proj.qgs"


def test_identity_parameters_for_user() -> None:
    """Test that user and groups are forwarded to the map engine."""
    identity = db_models.IdentityContext(user="jane", groups=("admins", "gis"))
    params = parameters.build_parameters(
        {"request": "GetCapabilities", "service": "WMS"}, _project(), identity
    )
    assert params["Lizmap_User"] == "jane"
    assert params["Lizmap_User_Groups"] == "admins, gis"


def test_filter_kept_when_login_filter_is_empty() -> None:
    """Test that an explicit filter survives an empty login filter."""
    params = parameters.build_parameters(
        {"request": "getmap", "service": "WMS", "filter": "layer:filter"},
        _project(login_filters={"layer": ""}),
        ANONYMOUS,
    )
    assert params["filter"] == "layer:filter"


def test_filter_unchanged_for_unrequested_login_filtered_layers() -> None:
    """Test that login filters only apply to requested layers."""
    params = parameters.build_parameters(
        {
            "request": "getmap",
            "service": "WMS",
            "filter": "layer1:filter;layer:dontExists",
        },
        _project(login_filters={"layer1": "test", "layer2": "other test"}),
        ANONYMOUS,
    )
    assert params["filter"] == "layer1:filter;layer:dontExists"


def test_login_filters_appended_for_requested_layers() -> None:
    """Test that missing requested layers get their login filter."""
    params = parameters.build_parameters(
        {
            "REQUEST": "GetMap",
            "SERVICE": "WMS",
            "LAYERS": "layer1,layer2",
            "FILTER": "layer1:filter",
        },
        _project(login_filters={"layer1": "test", "layer2": "other test"}),
        ANONYMOUS,
    )
    assert params["filter"] == "layer1:filter;layer2:other test"


def test_filter_absent_when_merge_yields_nothing() -> None:
    """Test that an empty merge drops the filter key entirely."""
    params = parameters.build_parameters(
        {"request": "getmap", "service": "WMS", "layers": "other", "filter": ""},
        _project(login_filters={"layer1": "test"}),
        ANONYMOUS,
    )
    assert "filter" not in params


def test_attribute_rule_uses_groups() -> None:
    """Test that attribute rules filter on the user groups and all."""
    rule = db_models.LoginFilteredLayer(layer="roads", filter_attribute="grp")
    identity = db_models.IdentityContext(user="jane", groups=("gis", "o'neil"))
    params = parameters.build_parameters(
        {"request": "GetFeatureInfo", "service": "WMS", "layers": "roads"},
        _project(login_filtered_layers={"roads": rule}),
        identity,
    )
    assert params["filter"] == "roads:\"grp\" IN ( 'gis' , 'o''neil' , 'all' )"


def test_override_right_disables_login_filters() -> None:
    """Test that users allowed to override login filters see all rows."""
    identity = db_models.IdentityContext(
        user="admin", groups=("admins",), can_override_login_filters=True
    )
    params = parameters.build_parameters(
        {"request": "getmap", "service": "WMS", "layers": "layer1"},
        _project(login_filters={"layer1": "test"}),
        identity,
    )
    assert "filter" not in params


def test_non_map_requests_are_not_filtered() -> None:
    """Test that capabilities requests keep their parameters as sent."""
    params = parameters.build_parameters(
        {"request": "GetCapabilities", "service": "WMS", "layers": "layer1"},
        _project(login_filters={"layer1": "test"}),
        ANONYMOUS,
    )
    assert "filter" not in params


def test_requested_layers() -> None:
    """Test that LAYERS is split on commas, skipping blanks."""
    assert parameters.requested_layers({"layers": "a, b,,c"}) == ["a", "b", "c"]
    assert parameters.requested_layers({}) == []


def test_inbound_identity_parameters_are_dropped() -> None:
    """Test that clients cannot impersonate another user."""
    params = parameters.build_parameters(
        {
            "request": "GetMap",
            "service": "WMS",
            "LIZMAP_USER": "admin",
            "lizmap_user_groups": "admins",
        },
        _project(),
        ANONYMOUS,
    )
    assert "lizmap_user" not in params
    assert "lizmap_user_groups" not in params
    assert params["Lizmap_User"] == ""
    assert params["Lizmap_User_Groups"] == ""


def test_print_map_layers_get_login_filters() -> None:
    """Test that GetPrint layers named per map item are filtered."""
    params = parameters.build_parameters(
        {
            "SERVICE": "WMS",
            "REQUEST": "GetPrint",
            "TEMPLATE": "A4",
            "map0:LAYERS": "roads",
        },
        _project(login_filters={"roads": "owner = 'jane'"}),
        ANONYMOUS,
    )
    assert params["filter"] == "roads:owner = 'jane'"


def test_query_layers_get_login_filters() -> None:
    """Test that GetFeatureInfo on QUERY_LAYERS alone is filtered."""
    params = parameters.build_parameters(
        {"SERVICE": "WMS", "REQUEST": "GetFeatureInfo", "QUERY_LAYERS": "roads"},
        _project(login_filters={"roads": "owner = 'jane'"}),
        ANONYMOUS,
    )
    assert params["filter"] == "roads:owner = 'jane'"


def test_filtered_layers_collects_every_layer_parameter() -> None:
    """Test that layer names are gathered once, in request order."""
    assert parameters.filtered_layers(
        {
            "layers": "a, b",
            "query_layers": "b,c",
            "map0:layers": "d",
            "map1:layers": "a,e",
            "mapx:layers": "ignored",
        }
    ) == ["a", "b", "c", "d", "e"]
