"""Merging of login-based row restrictions into the FILTER parameter.

The FILTER parameter of a WMS request is a ``;``-separated list of
``layer:expression`` pairs. Login filters declared on a project restrict
which features a user may see; they are appended for layers the request
does not filter yet. An explicit filter for a layer is never replaced.

Example:
    >>> merge_login_filters("cities:pop > 1000", {"roads": "owner = 'all'"})
    "cities:pop > 1000;roads:owner = 'all'"
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

FILTER_SEPARATOR = ";"
LAYER_SEPARATOR = ":"


def parse_filter(filter_param: str | None) -> dict[str, str]:
    """Split a FILTER value into an ordered layer to pair mapping.

    Pairs are kept verbatim so that re-joining them reproduces the
    incoming text. Empty segments are dropped. Layer names are
    matched without surrounding whitespace.

    Args:
        filter_param: Raw FILTER parameter, possibly None.

    Returns:
        Ordered mapping of layer name to the original ``layer:expression``
        text. The first pair wins when a layer is repeated.
    """
    pairs: dict[str, str] = {}
    if not filter_param:
        return pairs

    for pair in filter_param.split(FILTER_SEPARATOR):
        if not pair:
            continue
        layer = pair.split(LAYER_SEPARATOR, 1)[0].strip()
        pairs.setdefault(layer, pair)
    return pairs


def merge_login_filters(
    filter_param: str | None,
    login_filters: Mapping[str, str],
) -> str | None:
    """Append login filters for layers absent from the FILTER value.

    Args:
        filter_param: Existing FILTER parameter, possibly None.
        login_filters: Layer name to expression mapping resolved for the
            current user.

    Returns:
        The merged FILTER value, or None when neither the request nor the
        login filters provide any pair.
    """
    pairs = parse_filter(filter_param)
    for layer, expression in login_filters.items():
        if layer in pairs or not expression:
            continue
        pairs[layer] = f"{layer}{LAYER_SEPARATOR}{expression}"

    if not pairs:
        return None
    return FILTER_SEPARATOR.join(pairs.values())
