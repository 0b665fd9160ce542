"""OGC request/response mediation between web map clients and a map server.

The gateway sits in front of a WMS/WFS/WMTS map engine and:

- augments every request with the current user and groups, and merges
  per-layer login filters into the FILTER parameter;
- enforces image size limits and routes tile-sized requests of cached
  layers through a response cache;
- rewrites ``xlink:href`` links of capabilities/context documents and
  ``media/`` links of feature info maptips so that clients always go
  through the portal.

Authentication, project publication and rendering are external concerns:
identity arrives as trusted proxy headers, project configuration is read
from repository directories, and rendering is left to the map engine.
"""
