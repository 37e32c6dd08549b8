"""Shared pytest fixtures for the loopgen test suite.

Provides reusable fixtures for:
- Temporary project directories and configs
- Scaffolded LoopBack projects
- WSDL fixture files and parsed documents
- A mocked template renderer
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from loopgen.config import GeneratorConfig
from loopgen.scaffolder import AppGenerator, AppRequest, TemplateRenderer
from loopgen.soap import parse_wsdl
from loopgen.soap.models import WsdlDocument
from loopgen.workspace import Workspace

FIXTURES = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Empty directory a project can be generated into."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


@pytest.fixture
def config(tmp_project_dir: Path) -> GeneratorConfig:
    return GeneratorConfig(project_root=tmp_project_dir)


@pytest.fixture
def workspace(config: GeneratorConfig) -> Workspace:
    """Workspace over an empty (not yet scaffolded) directory."""
    return Workspace(config)


@pytest.fixture
def write_json():
    """Helper writing a JSON document below a root, creating parents."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def read_json():
    def _read(path: Path) -> Any:
        return json.loads(path.read_text(encoding="utf-8"))

    return _read


# ---------------------------------------------------------------------------
# Scaffolded projects
# ---------------------------------------------------------------------------

@pytest.fixture
async def project(config: GeneratorConfig) -> Workspace:
    """A freshly scaffolded ``empty-server`` project."""
    await AppGenerator(config).generate(AppRequest(name="test-project", template="empty-server"))
    return Workspace(config)


@pytest.fixture
async def soap_project(project: Workspace, write_json) -> Workspace:
    """An ``empty-server`` project with a ``soapds`` data source on the calculator WSDL."""
    write_json(
        project.config.datasources_path,
        {
            "soapds": {
                "name": "soapds",
                "connector": "soap",
                "url": "http://www.dneonline.com/calculator.asmx",
                "wsdl": str(FIXTURES / "calculator.wsdl"),
                "remotingEnabled": True,
            },
            "db": {"name": "db", "connector": "memory"},
        },
    )
    return project


# ---------------------------------------------------------------------------
# WSDL documents
# ---------------------------------------------------------------------------

@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


def _parse(name: str) -> WsdlDocument:
    path = FIXTURES / name
    assert path.exists(), f"WSDL fixture not found at {path}"
    return parse_wsdl(path.read_bytes(), location=str(path))


@pytest.fixture
def stockquote_wsdl() -> WsdlDocument:
    """Document/literal service with SOAP 1.1 and 1.2 bindings."""
    return _parse("stockquote.wsdl")


@pytest.fixture
def calculator_wsdl() -> WsdlDocument:
    """Document/literal calculator with four integer operations."""
    return _parse("calculator.wsdl")


@pytest.fixture
def rpc_literal_wsdl() -> WsdlDocument:
    """RPC/literal service whose binding name contains a version token."""
    return _parse("rpc_literal.wsdl")


# ---------------------------------------------------------------------------
# Mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_renderer() -> MagicMock:
    """A TemplateRenderer whose file writes are recorded, not performed."""
    renderer = MagicMock(spec=TemplateRenderer)
    renderer.render_to_file = AsyncMock(side_effect=lambda name, path, context: Path(path))
    renderer.render_tree = AsyncMock(return_value=[])
    return renderer
