"""LoopBack application scaffolding.

Validates the requested LoopBack version and application template, then
renders the project skeleton:

- ``package.json``, ``.gitignore``, ``.yo-rc.json``, ``client/README.md``
- ``server/server.js`` and boot scripts
- ``server/config.json``, ``datasources.json``, ``model-config.json``,
  ``middleware.json`` and ``component-config.json``
- template-specific models under ``common/models/``
"""

from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .. import __version__
from ..config import LOOPBACK_VERSIONS, GeneratorConfig
from ..errors import InvalidSelectionError, WorkspaceError
from ..utils import print_file_action, relative_to, sanitize_name
from ..workspace import DEFAULT_MIXIN_SOURCES, DEFAULT_MODEL_SOURCES, Workspace
from .renderer import TemplateRenderer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Versions and templates
# ---------------------------------------------------------------------------

APP_TEMPLATES: dict[str, dict[str, str]] = {
    "2.x": {
        "api-server": "A LoopBack API server with local User auth",
        "empty-server": "An empty LoopBack API, without any configured models or datasources",
        "hello-world": "A project containing a controller with a single vanilla Message model and a remote method",
        "notes": "A project containing a basic working example, including a memory database",
    },
    "3.x": {
        "api-server": "A LoopBack API server with local User auth",
        "empty-server": "An empty LoopBack API, without any configured models or datasources",
        "hello-world": "A project containing a controller with a single vanilla Message model and a remote method",
        "notes": "A project containing a basic working example, including a memory database",
    },
}

DEPENDENCIES: dict[str, dict[str, str]] = {
    "2.x": {
        "compression": "^1.0.3",
        "cors": "^2.5.2",
        "helmet": "^1.3.0",
        "loopback": "^2.22.0",
        "loopback-boot": "^2.6.5",
        "loopback-datasource-juggler": "^2.39.0",
        "serve-favicon": "^2.0.1",
        "strong-error-handler": "^1.0.1",
    },
    "3.x": {
        "compression": "^1.0.3",
        "cors": "^2.5.2",
        "helmet": "^3.10.0",
        "loopback": "^3.22.0",
        "loopback-boot": "^2.6.5",
        "serve-favicon": "^2.0.1",
        "strong-error-handler": "^3.0.0",
    },
}

EXPLORER_DEPENDENCY: dict[str, str] = {"2.x": "^2.4.0", "3.x": "^6.2.0"}

BUILTIN_AUTH_MODELS: tuple[str, ...] = ("User", "AccessToken", "ACL", "RoleMapping", "Role")


def validate_selection(version: str, template: str) -> None:
    """Raise ``InvalidSelectionError`` unless *template* exists for *version*.

    Messages name the valid alternatives::

        Invalid LoopBack version: 4.x. Available versions are 2.x, 3.x.
        Invalid template: foo. Available templates for 3.x are api-server, empty-server, hello-world, notes
    """
    if version not in LOOPBACK_VERSIONS:
        raise InvalidSelectionError(
            "LoopBack version", version, LOOPBACK_VERSIONS, plural="versions"
        )
    templates = APP_TEMPLATES[version]
    if template not in templates:
        raise InvalidSelectionError(
            "template",
            template,
            templates,
            message=f"Invalid template: {template}. Available templates for {version} are {', '.join(templates)}",
        )


class AppRequest(BaseModel):
    """Options for scaffolding a new application."""

    name: str | None = Field(default=None, description="Application name; defaults to the directory name")
    template: str = Field(default="api-server")
    loopback_version: str | None = Field(default=None, description="Defaults to the configured version")
    directory: str | None = Field(default=None, description="Sub-directory to create the project in")
    explorer: bool | None = Field(default=None, description="Defaults to the configured explorer flag")
    force: bool = Field(default=False, description="Scaffold into a directory that already holds a project")


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class AppGenerator:
    """Scaffolds a LoopBack application from a named template."""

    def __init__(self, config: GeneratorConfig, renderer: TemplateRenderer | None = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    def resolve(self, request: AppRequest) -> tuple[GeneratorConfig, dict[str, Any]]:
        """Validate *request* and build the project config and template context."""
        version = request.loopback_version or self.config.loopback_version
        validate_selection(version, request.template)

        root = self.config.project_root
        if request.directory and request.directory != ".":
            root = root / request.directory
        raw_name = request.name or root.resolve().name
        app_name = sanitize_name(raw_name)
        if not app_name:
            raise InvalidSelectionError(
                "application name",
                raw_name,
                [],
                message=f"Invalid application name: {raw_name!r}. Use letters, digits, '-' or '_'",
            )

        explorer = self.config.explorer if request.explorer is None else request.explorer
        project = self.config.model_copy(
            update={"project_root": root, "loopback_version": version, "explorer": explorer}
        )
        dependencies = dict(DEPENDENCIES[version])
        if explorer:
            dependencies["loopback-component-explorer"] = EXPLORER_DEPENDENCY[version]

        context = {
            "app_name": app_name,
            "template": request.template,
            "description": APP_TEMPLATES[version][request.template],
            "loopback_version": version,
            "is_v3": version == "3.x",
            "explorer": explorer,
            "dependencies": dict(sorted(dependencies.items())),
            "generator_version": __version__,
        }
        return project, context

    async def generate(self, request: AppRequest) -> Path:
        """Scaffold the project and return its root directory."""
        project, context = self.resolve(request)
        workspace = Workspace(project)
        if workspace.exists() and not request.force:
            raise WorkspaceError(
                f"{project.project_root} already contains a LoopBack project; use --force to overwrite"
            )
        await asyncio.to_thread(project.project_root.mkdir, parents=True, exist_ok=True)

        root = project.project_root
        written = await self.renderer.render_tree("app/base", root, context)
        written += await self.renderer.render_tree(f"app/{request.template}", root, context)
        for path in written:
            print_file_action("create", relative_to(path, root))

        await workspace.write(project.yo_rc_path, yo_rc(context))
        await workspace.write(project.server_path / "config.json", server_config(context))
        await workspace.write(project.datasources_path, datasources_for(request.template))
        await workspace.write(project.middleware_path, middleware_for(context["loopback_version"]))
        await workspace.write(project.component_config_path, component_config(context["explorer"]))

        model_config = {
            "_meta": {"sources": list(DEFAULT_MODEL_SOURCES), "mixins": list(DEFAULT_MIXIN_SOURCES)}
        }
        for model, entry in models_for(request.template):
            if model is not None:
                await workspace.write_model(model)
            model_config[entry["name"]] = {k: v for k, v in entry.items() if k != "name"}
        await workspace.write(project.model_config_path, model_config)

        logger.debug("Scaffolded %s (%s, LoopBack %s)", context["app_name"], request.template, context["loopback_version"])
        return root


# ---------------------------------------------------------------------------
# JSON documents
# ---------------------------------------------------------------------------

def yo_rc(context: dict[str, Any]) -> dict[str, Any]:
    """Project marker recording how the project was generated."""
    return {
        "loopgen": {
            "version": context["generator_version"],
            "loopbackVersion": context["loopback_version"],
            "template": context["template"],
        }
    }


def server_config(context: dict[str, Any]) -> dict[str, Any]:
    remoting: dict[str, Any] = {
        "rest": {"handleErrors": False, "normalizeHttpPath": False, "xml": False},
        "json": {"strict": False, "limit": "100kb"},
        "urlencoded": {"extended": True, "limit": "100kb"},
        "cors": False,
    }
    config: dict[str, Any] = {
        "restApiRoot": "/api",
        "host": "0.0.0.0",
        "port": 3000,
        "remoting": remoting,
    }
    if context["is_v3"]:
        remoting["context"] = False
        config["logoutSessionsOnSensitiveChanges"] = True
    else:
        remoting["context"] = {"enableHttpContext": False}
        config["legacyExplorer"] = False
    return config


def datasources_for(template: str) -> dict[str, Any]:
    if template in ("api-server", "notes"):
        return {"db": {"name": "db", "connector": "memory"}}
    return {}


_BASE_MIDDLEWARE: dict[str, Any] = {
    "initial:before": {"loopback#favicon": {}},
    "initial": {
        "compression": {},
        "cors": {"params": {"origin": True, "credentials": True, "maxAge": 86400}},
        "helmet#xssFilter": {},
        "helmet#frameguard": {"params": ["deny"]},
        "helmet#hsts": {"params": {"maxAge": 0, "includeSubDomains": True}},
        "helmet#hidePoweredBy": {},
        "helmet#ieNoOpen": {},
        "helmet#noSniff": {},
        "helmet#noCache": {"enabled": False},
    },
    "session": {},
    "auth": {},
    "parse": {},
    "routes": {
        "loopback#rest": {"paths": ["${restApiRoot}"]},
    },
    "files": {},
    "final": {"loopback#urlNotFound": {}},
    "final:after": {"strong-error-handler": {}},
}


def middleware_for(version: str) -> dict[str, Any]:
    """The default ``server/middleware.json`` for a LoopBack version."""
    middleware = copy.deepcopy(_BASE_MIDDLEWARE)
    if version == "2.x":
        middleware["final:after"] = {"loopback#errorHandler": {}}
    return middleware


def component_config(explorer: bool) -> dict[str, Any]:
    if not explorer:
        return {}
    return {
        "loopback-component-explorer": {
            "mountPath": "/explorer",
            "generateOperationScopedModels": True,
        }
    }


def _model(name: str, properties: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {
        "name": name,
        "base": extra.pop("base", "PersistedModel"),
        "idInjection": True,
        "options": {"validateUpsert": True},
        "properties": properties,
        "validations": [],
        "relations": {},
        "acls": [],
        "methods": extra.pop("methods", {}),
    }


def models_for(template: str) -> list[tuple[dict[str, Any] | None, dict[str, Any]]]:
    """``(model definition or None for built-ins, model-config entry)`` pairs."""
    if template == "api-server":
        return [
            (None, {"name": name, "dataSource": "db", "public": name == "User"})
            for name in BUILTIN_AUTH_MODELS
        ]
    if template == "notes":
        note = _model(
            "Note",
            {"title": {"type": "string", "required": True}, "content": {"type": "string"}},
        )
        return [(note, {"name": "Note", "dataSource": "db", "public": True})]
    if template == "hello-world":
        message = _model(
            "Message",
            {},
            base="Model",
            methods={
                "greet": {
                    "accepts": [{"arg": "msg", "type": "string", "http": {"source": "query"}}],
                    "returns": {"arg": "greeting", "type": "string"},
                    "http": {"verb": "get"},
                }
            },
        )
        return [(message, {"name": "Message", "dataSource": None, "public": True})]
    return []
