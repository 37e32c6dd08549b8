"""Tests for MiddlewareRequest and MiddlewareGenerator (loopgen.middleware.generator)."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from loopgen.errors import MiddlewareError, WorkspaceError
from loopgen.middleware import MiddlewareGenerator, MiddlewareRequest

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# MiddlewareRequest
# ---------------------------------------------------------------------------


class TestMiddlewareRequest:
    def test_entry_with_everything(self):
        request = MiddlewareRequest(
            name="./middleware/log",
            phase="routes",
            paths=["/api", "/admin"],
            params='{"level": "info"}',
            enabled=False,
        )
        assert request.entry() == {
            "params": {"level": "info"},
            "paths": ["/api", "/admin"],
            "enabled": False,
        }

    def test_entry_minimal(self):
        assert MiddlewareRequest(name="cors", phase="initial").entry() == {}

    def test_params_dict_passthrough(self):
        request = MiddlewareRequest(name="cors", phase="initial", params={"origin": True})
        assert request.parsed_params() == {"origin": True}

    def test_params_must_be_json(self):
        request = MiddlewareRequest(name="cors", phase="initial", params="{origin")
        with pytest.raises(MiddlewareError, match="Invalid params"):
            request.entry()

    def test_params_must_be_object(self):
        request = MiddlewareRequest(name="cors", phase="initial", params="[1, 2]")
        with pytest.raises(MiddlewareError, match="must be a JSON object"):
            request.parsed_params()

    @pytest.mark.parametrize("field", ["name", "phase"])
    def test_blank_fields_rejected(self, field):
        values = {"name": "cors", "phase": "initial", field: "  "}
        with pytest.raises(ValidationError):
            MiddlewareRequest(**values)

    def test_names_are_stripped(self):
        request = MiddlewareRequest(name=" cors ", phase=" initial ")
        assert (request.name, request.phase) == ("cors", "initial")


# ---------------------------------------------------------------------------
# MiddlewareGenerator
# ---------------------------------------------------------------------------


class TestMiddlewareGenerator:
    def test_available_phases(self, project):
        assert MiddlewareGenerator(project).available_phases() == [
            "initial", "session", "auth", "parse", "routes", "files", "final",
        ]

    async def test_generate_writes_new_phase_in_order(self, project, read_json):
        generator = MiddlewareGenerator(project)
        path = await generator.generate(
            MiddlewareRequest(name="./middleware/metrics", phase="metrics", before="routes")
        )
        assert path == project.config.middleware_path
        document = read_json(path)
        ordered = list(document)
        assert ordered.index("metrics") == ordered.index("routes") - 1
        assert document["metrics"] == {"./middleware/metrics": {}}

    async def test_generate_into_existing_phase(self, project, read_json):
        before = list(read_json(project.config.middleware_path))
        await MiddlewareGenerator(project).generate(
            MiddlewareRequest(
                name="loopback#token",
                phase="auth",
                params={"model": "accessToken"},
            )
        )
        document = read_json(project.config.middleware_path)
        assert list(document) == before
        assert document["auth"] == {"loopback#token": {"params": {"model": "accessToken"}}}

    async def test_generate_sub_phase(self, project, read_json):
        await MiddlewareGenerator(project).generate(
            MiddlewareRequest(name="./middleware/timing", phase="routes", sub_phase="before", paths=["/api"])
        )
        document = read_json(project.config.middleware_path)
        ordered = list(document)
        assert ordered.index("routes:before") == ordered.index("routes") - 1
        assert document["routes:before"]["./middleware/timing"] == {"paths": ["/api"]}

    def test_plan_warns_on_replacement(self, project, caplog):
        generator = MiddlewareGenerator(project)
        with caplog.at_level(logging.WARNING, logger="loopgen.middleware.generator"):
            document = generator.plan(MiddlewareRequest(name="compression", phase="initial", enabled=False))
        assert document["initial"]["compression"] == {"enabled": False}
        assert "Replacing existing middleware compression" in caplog.text

    def test_plan_warns_on_new_unanchored_phase(self, project, caplog):
        with caplog.at_level(logging.WARNING, logger="loopgen.middleware.generator"):
            document = MiddlewareGenerator(project).plan(MiddlewareRequest(name="x", phase="custom"))
        assert list(document)[-1] == "custom"
        assert "Phase custom is new" in caplog.text

    def test_plan_does_not_write(self, project, read_json):
        original = read_json(project.config.middleware_path)
        MiddlewareGenerator(project).plan(MiddlewareRequest(name="x", phase="custom"))
        assert read_json(project.config.middleware_path) == original

    async def test_invalid_anchor_leaves_file_untouched(self, project, read_json):
        original = project.config.middleware_path.read_text(encoding="utf-8")
        with pytest.raises(MiddlewareError, match="Invalid phase: nowhere"):
            await MiddlewareGenerator(project).generate(
                MiddlewareRequest(name="x", phase="custom", after="nowhere")
            )
        assert project.config.middleware_path.read_text(encoding="utf-8") == original

    async def test_requires_project(self, workspace):
        with pytest.raises(WorkspaceError, match="is not a LoopBack project"):
            await MiddlewareGenerator(workspace).generate(MiddlewareRequest(name="x", phase="routes"))

    async def test_missing_middleware_file_starts_empty(self, project, read_json):
        project.config.middleware_path.unlink()
        await MiddlewareGenerator(project).generate(MiddlewareRequest(name="loopback#rest", phase="routes"))
        assert read_json(project.config.middleware_path) == {"routes": {"loopback#rest": {}}}
