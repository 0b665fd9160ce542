"""Mediation services: parameter building, size and cache decisions,
map engine clients and response rewriting."""
