"""Unit tests for Workspace (loopgen.workspace)."""

from __future__ import annotations

import pytest

from loopgen.errors import WorkspaceError
from loopgen.workspace import DEFAULT_MODEL_SOURCES, Workspace

pytestmark = pytest.mark.unit


class TestDetection:
    def test_empty_directory(self, workspace):
        assert not workspace.exists()
        with pytest.raises(WorkspaceError, match="is not a LoopBack project"):
            workspace.require_project()

    def test_model_config_marks_project(self, workspace, write_json):
        write_json(workspace.config.model_config_path, {})
        assert workspace.exists()
        workspace.require_project()

    def test_yo_rc_marks_project(self, workspace, write_json):
        write_json(workspace.config.yo_rc_path, {"loopgen": {}})
        assert workspace.exists()


class TestRead:
    def test_missing_documents_default(self, workspace):
        assert workspace.read_middleware() == {}
        assert workspace.read_datasources() == {}
        assert workspace.read_model_config()["_meta"]["sources"] == DEFAULT_MODEL_SOURCES

    def test_default_is_a_copy(self, workspace):
        workspace.read_model_config()["_meta"]["sources"].append("./extra")
        assert "./extra" not in DEFAULT_MODEL_SOURCES

    def test_missing_without_default(self, workspace):
        with pytest.raises(WorkspaceError, match="Missing project file: server/config.json"):
            workspace.read(workspace.config.server_path / "config.json")

    def test_invalid_json(self, workspace):
        path = workspace.config.middleware_path
        path.parent.mkdir(parents=True)
        path.write_text("{ nope", encoding="utf-8")
        with pytest.raises(WorkspaceError, match="Invalid JSON in server/middleware.json"):
            workspace.read_middleware()

    def test_non_object(self, workspace, write_json):
        write_json(workspace.config.datasources_path, ["db"])
        with pytest.raises(WorkspaceError, match="Invalid JSON in server/datasources.json"):
            workspace.read_datasources()

    def test_preserves_order(self, workspace, write_json):
        write_json(workspace.config.middleware_path, {"routes": {}, "initial": {}, "final": {}})
        assert list(workspace.read_middleware()) == ["routes", "initial", "final"]


class TestWrite:
    def test_model_path(self, workspace):
        assert workspace.model_path("GetQuoteResponse") == (
            workspace.config.common_models_path / "get-quote-response.json"
        )
        assert workspace.model_path("SoapCalc", facet="server") == (
            workspace.config.server_models_path / "soap-calc.json"
        )

    def test_model_path_non_ascii_name(self, workspace):
        assert workspace.model_path("Запрос").name == "запрос.json"

    def test_model_path_rejects_name_without_letters(self, workspace):
        with pytest.raises(WorkspaceError, match="has no letters or digits"):
            workspace.model_path("__")

    async def test_write_model(self, workspace, read_json):
        path = await workspace.write_model({"name": "GetQuote", "properties": {}})
        assert path.name == "get-quote.json"
        assert read_json(path)["name"] == "GetQuote"

    async def test_write_reports_action(self, workspace, capsys):
        path = workspace.config.middleware_path
        await workspace.write(path, {})
        await workspace.write(path, {"routes": {}})
        output = capsys.readouterr().out
        assert "create" in output
        assert "update" in output
