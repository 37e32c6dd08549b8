"""Data source generator.

Adds a named data source to ``server/datasources.json``.  The ``soap``
connector gets its ``url``/``wsdl``/``remotingEnabled`` settings validated
here so the SOAP generator can rely on them later.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .errors import InvalidSelectionError, LoopgenError
from .workspace import Workspace

logger = logging.getLogger(__name__)

# Connectors offered by name; anything else must be passed as an npm package name.
KNOWN_CONNECTORS: dict[str, str] = {
    "memory": "",
    "mongodb": "loopback-connector-mongodb",
    "mysql": "loopback-connector-mysql",
    "postgresql": "loopback-connector-postgresql",
    "rest": "loopback-connector-rest",
    "soap": "loopback-connector-soap",
}

_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$-]*$")


class DataSourceRequest(BaseModel):
    """A data source to add to the project."""

    name: str
    connector: str = Field(default="memory")
    url: str | None = None
    wsdl: str | None = None
    remoting_enabled: bool = Field(default=True, description="Expose SOAP operations over REST")
    settings: dict[str, Any] = Field(default_factory=dict, description="Extra connector settings")


class DataSourceGenerator:
    """Registers data sources in ``server/datasources.json``."""

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def definition(self, request: DataSourceRequest) -> dict[str, Any]:
        """Build the datasources.json entry for *request*.

        Raises:
            LoopgenError: For an invalid name or missing SOAP url.
        """
        if not _NAME_RE.match(request.name):
            raise LoopgenError(
                f"Invalid data source name: {request.name}. "
                "Names must start with a letter, '_' or '$' and contain only letters, digits, '_', '$' or '-'"
            )
        connector = request.connector.strip()
        if not connector:
            raise InvalidSelectionError("connector", connector, sorted(KNOWN_CONNECTORS))

        entry: dict[str, Any] = {"name": request.name, "connector": connector}
        if connector == "soap":
            if not request.url:
                raise LoopgenError("The soap connector requires a service url")
            entry["url"] = request.url
            entry["wsdl"] = request.wsdl or f"{request.url}?WSDL"
            entry["remotingEnabled"] = request.remoting_enabled
        elif request.url:
            entry["url"] = request.url
        entry.update(request.settings)
        return entry

    async def generate(self, request: DataSourceRequest) -> Path:
        """Add the data source and write ``server/datasources.json``."""
        self.workspace.require_project()
        datasources = self.workspace.read_datasources()
        if request.name in datasources:
            raise LoopgenError(f"Data source {request.name} already exists in datasources.json")
        datasources[request.name] = self.definition(request)
        if request.connector not in KNOWN_CONNECTORS:
            logger.info("Connector %s is not a known connector; install it manually", request.connector)
        return await self.workspace.write(self.workspace.config.datasources_path, datasources)

    @staticmethod
    def connector_package(connector: str) -> str | None:
        """npm package providing *connector*, ``None`` for built-in ones."""
        if connector in KNOWN_CONNECTORS:
            return KNOWN_CONNECTORS[connector] or None
        return connector if connector.startswith("loopback-connector-") else None
