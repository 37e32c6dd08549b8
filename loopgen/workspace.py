"""Access to the JSON documents of a LoopBack project.

A ``Workspace`` wraps a ``GeneratorConfig`` and reads/writes the conventional
project files (``server/middleware.json``, ``server/model-config.json``,
``server/datasources.json``, ``common/models/<slug>.json``).  Reads happen
before any write so a generator that fails validation leaves the project
untouched.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .config import GeneratorConfig
from .errors import WorkspaceError
from .utils import kebab_case, load_json, print_file_action, relative_to, save_json

logger = logging.getLogger(__name__)

DEFAULT_MODEL_SOURCES: list[str] = [
    "loopback/common/models",
    "loopback/server/models",
    "../common/models",
    "./models",
]

DEFAULT_MIXIN_SOURCES: list[str] = [
    "loopback/common/mixins",
    "loopback/server/mixins",
    "../common/mixins",
    "./mixins",
]


class Workspace:
    """The on-disk LoopBack project a generator edits."""

    def __init__(self, config: GeneratorConfig) -> None:
        self.config = config

    @property
    def root(self) -> Path:
        return self.config.project_root

    def exists(self) -> bool:
        """Return ``True`` if the root looks like a LoopBack project."""
        return self.config.yo_rc_path.exists() or self.config.model_config_path.exists()

    def require_project(self) -> None:
        """Fail unless the root holds a scaffolded project."""
        if not self.exists():
            raise WorkspaceError(
                f"{self.root} is not a LoopBack project: "
                f"expected {self.config.server_facet}/model-config.json"
            )

    # -- Reading -----------------------------------------------------------

    def read(self, path: Path, default: dict[str, Any] | None = None) -> dict[str, Any]:
        """Read a JSON object, returning a copy of *default* when the file is absent."""
        if not path.exists():
            if default is None:
                raise WorkspaceError(f"Missing project file: {relative_to(path, self.root)}")
            return json.loads(json.dumps(default))
        try:
            return load_json(path)
        except (json.JSONDecodeError, ValueError) as exc:
            raise WorkspaceError(f"Invalid JSON in {relative_to(path, self.root)}: {exc}") from exc

    def read_middleware(self) -> dict[str, Any]:
        return self.read(self.config.middleware_path, {})

    def read_model_config(self) -> dict[str, Any]:
        return self.read(
            self.config.model_config_path,
            {"_meta": {"sources": DEFAULT_MODEL_SOURCES, "mixins": DEFAULT_MIXIN_SOURCES}},
        )

    def read_datasources(self) -> dict[str, Any]:
        return self.read(self.config.datasources_path, {})

    def model_path(self, name: str, facet: str = "common") -> Path:
        """Path of the JSON definition for model *name* in *facet*."""
        slug = kebab_case(name)
        if not slug:
            raise WorkspaceError(f"Model name {name!r} has no letters or digits to name its file")
        base = self.config.common_models_path if facet == "common" else self.config.server_models_path
        return base / f"{slug}.json"

    # -- Writing -----------------------------------------------------------

    async def write(self, path: Path, data: dict[str, Any]) -> Path:
        """Write a JSON document and report it on the console."""
        action = "update" if path.exists() else "create"
        await save_json(data, path)
        logger.debug("%s %s", action, path)
        print_file_action(action, relative_to(path, self.root))
        return path

    async def write_model(self, definition: dict[str, Any], facet: str = "common") -> Path:
        """Write a model definition to ``<facet>/models/<slug>.json``."""
        return await self.write(self.model_path(definition["name"], facet), definition)
