"""Rewriting of URLs embedded in map engine responses.

Two narrow patterns are applied instead of a document parser so that the
markup around each match is kept byte for byte:

- every ``xlink:href`` attribute of capabilities and context documents
  is replaced by the portal service URL, so clients never see the
  internal map engine address;
- ``src``/``href`` attributes pointing into a project ``media/``
  directory (as found in feature info maptips) are routed through the
  media endpoint.

Example:
    >>> rewrite_media_urls('<img src="media/photo.jpg">')
    '<img src="getMedia?path=media/photo.jpg">'
"""

from __future__ import annotations

import dataclasses
import re
import urllib.parse
from xml.sax import saxutils

from ogc_gateway.db import models as db_models

XLINK_HREF_PATTERN = re.compile(r'xlink:href="[^"]*"')

# media/<name>.<ext> or ../media/<name>.<ext>, optionally in sub-directories.
MEDIA_URL_PATTERN = re.compile(
    r"""(?P<attribute>src|href)=(?P<quote>["'])"""
    r"""(?P<path>(?P<parent>\.\./)?media/(?:[^"'/]+/)*[^"'/.][^"'/]*\.\w{2,})"""
    r"""(?P=quote)"""
)

# Appended to the service URL before escaping; clients rely on it.
SERVICE_URL_SUFFIX = "&&"


def build_service_url(
    base_url: str,
    repository_key: str,
    project_key: str,
) -> str:
    """Build the portal service URL of a repository project.

    Args:
        base_url: Absolute or relative URL of the service endpoint.
        repository_key: Repository identifier.
        project_key: Project identifier.

    Returns:
        ``base_url`` with the repository and project query parameters.
    """
    query = urllib.parse.urlencode(
        {"repository": repository_key, "project": project_key}
    )
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{query}"


def _text(body: str | bytes) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8")
    return body


def rewrite_hrefs(
    response: db_models.OGCResponse,
    repository_key: str,
    project_key: str,
    full_url: str | None = None,
) -> db_models.OGCResponse:
    """Point every ``xlink:href`` of an XML response at the portal.

    Args:
        response: Map engine response.
        repository_key: Repository identifier, used when ``full_url`` is
            not given.
        project_key: Project identifier, used when ``full_url`` is not
            given.
        full_url: Public service URL for this repository and project.

    Returns:
        A response whose ``xlink:href`` values are all replaced by the
        XML-escaped service URL followed by ``&amp;&amp;``. Responses that
        are not XML or text, or contain no ``xlink:href``, are returned
        unchanged.

    Example:
        >>> response = db_models.OGCResponse(
        ...     200, "text/xml", '<a><b xlink:href="x"/></a>'
        ... )
        >>> rewrite_hrefs(response, "r", "p", "http://h?repo=r&project=p").body
        '<a><b xlink:href="http://h?repo=r&amp;project=p&amp;&amp;"/></a>'
    """
    if not response.is_textual:
        return response

    body = _text(response.body)
    if XLINK_HREF_PATTERN.search(body) is None:
        return response

    if full_url is None:
        full_url = build_service_url("", repository_key, project_key)
    replacement = 'xlink:href="{}"'.format(
        saxutils.escape(full_url + SERVICE_URL_SUFFIX)
    )
    return dataclasses.replace(
        response,
        body=XLINK_HREF_PATTERN.sub(lambda _match: replacement, body),
    )


def media_url_for(path: str, media_url: str = "getMedia") -> str:
    """Media endpoint URL serving ``path``."""
    separator = "&" if "?" in media_url else "?"
    return f"{media_url}{separator}path={path}"


def rewrite_media_urls(html_fragment: str, media_url: str = "getMedia") -> str:
    """Route project media references through the media endpoint.

    Args:
        html_fragment: HTML text, typically a feature info maptip.
        media_url: Media endpoint, possibly carrying its own query.

    Returns:
        The fragment with each matching ``src``/``href`` value replaced by
        ``<media_url>?path=<original path>``, keeping attribute name and
        quotes.
    """

    def _replace(match: re.Match[str]) -> str:
        quote = match.group("quote")
        url = media_url_for(match.group("path"), media_url)
        return f"{match.group('attribute')}={quote}{url}{quote}"

    return MEDIA_URL_PATTERN.sub(_replace, html_fragment)


def rewrite_media_response(
    response: db_models.OGCResponse,
    media_url: str = "getMedia",
) -> db_models.OGCResponse:
    """Apply ``rewrite_media_urls`` to a textual response body."""
    if not response.is_textual:
        return response
    body = _text(response.body)
    rewritten = rewrite_media_urls(body, media_url)
    if rewritten == body:
        return response
    return dataclasses.replace(response, body=rewritten)
