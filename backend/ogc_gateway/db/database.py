"""Read-only project configuration repositories.

Project configuration is owned by the publishing tools; the gateway only
reads it. Repositories map a repository key to a directory holding
``<project>.qgs`` map files and their ``<project>.qgs.cfg`` JSON
configuration.
"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import TYPE_CHECKING, Any, Protocol

from ogc_gateway.db import models as db_models

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ogc_gateway.core import config

logger = logging.getLogger(__name__)

CONFIG_SUFFIX = ".qgs.cfg"
MAP_SUFFIX = ".qgs"


class ProjectNotFoundError(LookupError):
    """The repository or project does not exist."""


class ProjectRepositoryProtocol(Protocol):
    """Protocol interface for retrieving project configuration."""

    def get(self, repository_key: str, project_key: str) -> db_models.Project: ...


class InMemoryProjectRepository(ProjectRepositoryProtocol):
    """Simple in-memory store for tests and local development."""

    def __init__(self) -> None:
        """Initialize an empty in-memory repository."""
        self._store: dict[tuple[str, str], db_models.Project] = {}

    def add(self, project: db_models.Project) -> db_models.Project:
        """Add or replace a project.

        Args:
            project: Project configuration to store.

        Returns:
            The stored project.
        """
        self._store[(project.repository.key, project.key)] = project
        return project

    def get(self, repository_key: str, project_key: str) -> db_models.Project:
        """Retrieve a project.

        Raises:
            ProjectNotFoundError: If the project is not stored.
        """
        try:
            return self._store[(repository_key, project_key)]
        except KeyError:
            raise ProjectNotFoundError(
                f"Unknown project {repository_key}~{project_key}"
            ) from None


def _as_bool(value: Any) -> bool:
    """Parse configuration booleans, stored as "True"/"False" strings."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_limit(value: Any) -> int | None:
    """Parse an optional size limit; empty values mean unset."""
    if value is None or value == "":
        return None
    return int(value)


def parse_project_config(
    project_key: str,
    repository: db_models.Repository,
    cfg: Mapping[str, Any],
    map_path: str | None = None,
) -> db_models.Project:
    """Build a Project from a decoded ``.qgs.cfg`` document.

    Args:
        project_key: Project identifier.
        repository: Owning repository.
        cfg: Decoded JSON configuration.
        map_path: Map file path, None when the file is missing.

    Returns:
        Project with size limits, layer cache flags and login filter rules.
    """
    options = cfg.get("options") or {}
    layers = {
        name: db_models.LayerConfig(
            name=name,
            cached=_as_bool(layer.get("cached", False)),
            single_tile=_as_bool(layer.get("singleTile", True)),
            image_format=str(layer.get("imageFormat") or "image/png"),
            client_cache_expiration=int(layer.get("clientCacheExpiration") or 0),
        )
        for name, layer in (cfg.get("layers") or {}).items()
    }
    login_filtered_layers = {
        name: db_models.LoginFilteredLayer(
            layer=name,
            filter_attribute=str(rule["filterAttribute"]),
            filter_private=_as_bool(rule.get("filterPrivate", False)),
        )
        for name, rule in (cfg.get("loginFilteredLayers") or {}).items()
        if rule.get("filterAttribute")
    }
    return db_models.Project(
        key=project_key,
        repository=repository,
        map_path=map_path,
        login_filtered_layers=login_filtered_layers,
        wms_max_width=_as_limit(options.get("wmsMaxWidth")),
        wms_max_height=_as_limit(options.get("wmsMaxHeight")),
        layers=layers,
    )


class FileProjectRepository(ProjectRepositoryProtocol):
    """Project configuration read from repository directories.

    Files are read on each lookup, so configuration published while the
    process runs is picked up without restart.
    """

    def __init__(self, repositories: Mapping[str, pathlib.Path]) -> None:
        """Initialize with the repository key to directory mapping."""
        self.repositories = dict(repositories)

    def repository(self, repository_key: str) -> db_models.Repository:
        """Resolve a repository.

        Raises:
            ProjectNotFoundError: If the repository is not configured.
        """
        path = self.repositories.get(repository_key)
        if path is None:
            raise ProjectNotFoundError(f"Unknown repository {repository_key}")
        return db_models.Repository(
            key=repository_key, label=repository_key, path=str(path)
        )

    def get(self, repository_key: str, project_key: str) -> db_models.Project:
        """Load a project configuration.

        Raises:
            ProjectNotFoundError: If the repository or the project
                configuration file does not exist, or the project key
                tries to leave the repository directory.
        """
        repository = self.repository(repository_key)
        directory = pathlib.Path(str(repository.path))
        if pathlib.Path(project_key).name != project_key:
            raise ProjectNotFoundError(f"Invalid project {project_key}")

        cfg_path = directory / f"{project_key}{CONFIG_SUFFIX}"
        if not cfg_path.is_file():
            raise ProjectNotFoundError(
                f"Unknown project {repository_key}~{project_key}"
            )

        cfg = json.loads(cfg_path.read_text(encoding="utf-8"))
        map_file = directory / f"{project_key}{MAP_SUFFIX}"
        map_path = str(map_file) if map_file.is_file() else None
        if map_path is None:
            logger.warning("No map file for %s~%s", repository_key, project_key)
        return parse_project_config(project_key, repository, cfg, map_path)


def get_project_repository(
    settings: config.Settings,
) -> ProjectRepositoryProtocol:
    """Factory function to create a project repository.

    Args:
        settings: Application settings listing published repositories.

    Returns:
        FileProjectRepository instance for production use.
    """
    return FileProjectRepository(settings.repositories)
