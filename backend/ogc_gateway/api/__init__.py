"""API router subpackage for the OGC gateway.

Submodules:
    - service: The OGC endpoint mediating WMS/WFS/WMTS requests for a
      repository project.
"""
