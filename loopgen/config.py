"""loopgen configuration.

Typed configuration shared by every generator. Settings use Pydantic v2 models
so they are validated at construction time and can be serialised to/from JSON
or read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

LOOPBACK_VERSIONS: tuple[str, ...] = ("2.x", "3.x")


class GeneratorConfig(BaseModel):
    """Global generator configuration.

    Holds the project root and the facet layout of a LoopBack application.
    Instances are created once by the CLI and passed to each generator.
    """

    project_root: Path = Field(default=Path("."))
    server_facet: str = Field(default="server")
    common_facet: str = Field(default="common")
    loopback_version: str = Field(default="3.x")
    explorer: bool = Field(default=True, description="Mount loopback-component-explorer")
    http_timeout: float = Field(default=30.0, ge=1, description="WSDL download timeout in seconds")

    @field_validator("server_facet", "common_facet")
    @classmethod
    def _facet_is_relative(cls, value: str) -> str:
        if not value or value.startswith(("/", ".")):
            raise ValueError(f"facet must be a relative directory name, got {value!r}")
        return value

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def server_path(self) -> Path:
        """Root of the server facet."""
        return self.project_root / self.server_facet

    @property
    def common_models_path(self) -> Path:
        """Directory holding shared model definitions (``common/models``)."""
        return self.project_root / self.common_facet / "models"

    @property
    def server_models_path(self) -> Path:
        """Directory holding server-only models (``server/models``)."""
        return self.server_path / "models"

    @property
    def middleware_path(self) -> Path:
        return self.server_path / "middleware.json"

    @property
    def model_config_path(self) -> Path:
        return self.server_path / "model-config.json"

    @property
    def datasources_path(self) -> Path:
        return self.server_path / "datasources.json"

    @property
    def component_config_path(self) -> Path:
        return self.server_path / "component-config.json"

    @property
    def yo_rc_path(self) -> Path:
        """Marker file identifying the project root."""
        return self.project_root / ".yo-rc.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<project_root>/.loopgen.json``.

        Returns:
            The path where the file was written.
        """
        target = path or (self.project_root / ".loopgen.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "GeneratorConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Build a ``GeneratorConfig`` from environment variables.

        Recognised variables (all optional):
            LOOPGEN_ROOT, LOOPGEN_LOOPBACK_VERSION, LOOPGEN_EXPLORER,
            LOOPGEN_HTTP_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("LOOPGEN_ROOT"):
            kwargs["project_root"] = Path(os.environ["LOOPGEN_ROOT"])
        if os.environ.get("LOOPGEN_LOOPBACK_VERSION"):
            kwargs["loopback_version"] = os.environ["LOOPGEN_LOOPBACK_VERSION"]
        if os.environ.get("LOOPGEN_EXPLORER"):
            kwargs["explorer"] = os.environ["LOOPGEN_EXPLORER"].strip().lower() not in (
                "0",
                "false",
                "no",
                "off",
            )
        if os.environ.get("LOOPGEN_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = os.environ["LOOPGEN_HTTP_TIMEOUT"]
        return cls(**kwargs)
