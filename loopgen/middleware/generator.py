"""Middleware registration generator.

Validates the requested middleware (name, phase, sub-phase, anchor, paths and
JSON params), inserts it into ``server/middleware.json`` through the phase
editor and writes the document back.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..errors import MiddlewareError
from ..workspace import Workspace
from . import phases as phase_editor

logger = logging.getLogger(__name__)


class MiddlewareRequest(BaseModel):
    """A single middleware registration request."""

    name: str = Field(..., description="Middleware source key, e.g. 'loopback#token' or './middleware/log'")
    phase: str = Field(..., description="Existing or new phase name")
    sub_phase: str | None = Field(default=None, description="'before' or 'after'")
    before: str | None = Field(default=None, description="Place a new phase before this phase key")
    after: str | None = Field(default=None, description="Place a new phase after this phase key")
    paths: list[str] = Field(default_factory=list)
    params: str | dict[str, Any] | None = Field(
        default=None, description="Middleware params as a JSON object or JSON object string"
    )
    enabled: bool | None = Field(default=None)

    @field_validator("name", "phase")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def parsed_params(self) -> dict[str, Any] | None:
        """Return the params as a dict.

        Raises:
            MiddlewareError: If the params string is not a JSON object.
        """
        if self.params is None or self.params == "":
            return None
        if isinstance(self.params, dict):
            return self.params
        try:
            value = json.loads(self.params)
        except json.JSONDecodeError as exc:
            raise MiddlewareError(f"Invalid params: {self.params}. Params must be a JSON object ({exc.msg})") from exc
        if not isinstance(value, dict):
            raise MiddlewareError(f"Invalid params: {self.params}. Params must be a JSON object")
        return value

    def entry(self) -> dict[str, Any]:
        """Build the configuration stored under the middleware key."""
        config: dict[str, Any] = {}
        params = self.parsed_params()
        if params is not None:
            config["params"] = params
        if self.paths:
            config["paths"] = list(self.paths)
        if self.enabled is not None:
            config["enabled"] = self.enabled
        return config


class MiddlewareGenerator:
    """Adds middleware entries to a project's ``server/middleware.json``."""

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def available_phases(self) -> list[str]:
        """Base phase names currently defined, in execution order."""
        return phase_editor.phase_names(
            phase_editor.from_document(self.workspace.read_middleware())
        )

    def plan(self, request: MiddlewareRequest) -> dict[str, Any]:
        """Compute the updated middleware document without writing it."""
        document = self.workspace.read_middleware()
        phases = phase_editor.from_document(document)
        updated = phase_editor.add_middleware(
            phases,
            request.phase,
            request.name,
            request.entry(),
            sub_phase=request.sub_phase,
            before=request.before,
            after=request.after,
        )
        target = phase_editor.phase_key(request.phase, request.sub_phase)
        if request.name in dict(phases).get(target, {}):
            logger.warning("Replacing existing middleware %s in phase %s", request.name, target)
        existing = phase_editor.phase_names(phases)
        if request.phase not in existing and not (request.before or request.after):
            logger.warning(
                "Phase %s is new and was added last; existing phases are %s",
                request.phase,
                ", ".join(existing),
            )
        return phase_editor.to_document(updated)

    async def generate(self, request: MiddlewareRequest) -> Path:
        """Register the middleware and write ``server/middleware.json``."""
        self.workspace.require_project()
        document = self.plan(request)
        return await self.workspace.write(self.workspace.config.middleware_path, document)
