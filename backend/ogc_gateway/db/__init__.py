"""Configuration models and read-only project repositories.

Re-exports nothing: import ``ogc_gateway.db.models`` for the data model
and ``ogc_gateway.db.database`` for repository constructors.
"""
