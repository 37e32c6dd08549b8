"""SOAP client model generation.

Reads the WSDL configured on a ``soap`` data source, maps the selected
operations of one binding to models and writes:

- ``common/models/<slug>.json`` for every request, response and complex-type
  model (each written once even when several operations share it),
- ``server/models/soap-<binding-slug>.json`` and ``.js``, the API model
  exposing one remote method per operation,
- ``server/model-config.json`` entries registering all of them.

Everything is mapped and validated before the first file is written.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ..errors import InvalidSelectionError, LoopgenError
from ..scaffolder.renderer import TemplateRenderer
from ..utils import kebab_case, pascal_case, print_file_action, relative_to
from ..workspace import Workspace
from .mapper import OperationMapping, map_operation, model_slugs
from .models import WsdlDocument
from .wsdl import WsdlLoader

logger = logging.getLogger(__name__)


class SoapRequest(BaseModel):
    """Which operations of which binding to generate models for."""

    datasource: str = Field(..., description="Name of a 'soap' data source")
    service: str | None = Field(default=None, description="WSDL service; defaults to the first one")
    binding: str | None = Field(default=None, description="WSDL binding; defaults to the service's first")
    operations: list[str] = Field(default_factory=list, description="Empty selects every operation")
    wsdl: str | None = Field(default=None, description="Override the data source's WSDL location")


class SoapGenerationResult(BaseModel):
    """What a SOAP generation run produced."""

    service: str
    binding: str
    api_model: str
    operations: list[OperationMapping]
    written: list[Path] = Field(default_factory=list)


def api_model_names(binding: str) -> tuple[str, str]:
    """Return ``(model_name, file_slug)`` for a binding's API model.

    ``RPCLiteralTest2.0Binding`` -> ``("SoapRpcLiteralTest20Binding",
    "soap-rpc-literal-test-2-0-binding")``.
    """
    return f"Soap{pascal_case(binding)}", kebab_case(f"soap {binding}")


def api_model_definition(model_name: str, mappings: list[OperationMapping]) -> dict[str, Any]:
    """The API model exposing one POST remote method per operation."""
    methods: dict[str, Any] = {}
    for mapping in mappings:
        method: dict[str, Any] = {
            "accepts": [
                {
                    "arg": "req",
                    "type": mapping.request["name"],
                    "required": True,
                    "http": {"source": "body"},
                }
            ],
            "returns": [],
            "http": {"verb": "post", "path": f"/{mapping.slug}"},
        }
        if mapping.response is not None:
            method["returns"] = [
                {"arg": "result", "type": mapping.response["name"], "root": True}
            ]
        methods[mapping.method_name] = method
    return {
        "name": model_name,
        "base": "Model",
        "idInjection": False,
        "options": {"validateUpsert": True},
        "properties": {},
        "validations": [],
        "relations": {},
        "acls": [],
        "methods": methods,
    }


class SoapGenerator:
    """Generates SOAP client models for a LoopBack project."""

    def __init__(
        self,
        workspace: Workspace,
        loader: WsdlLoader | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.workspace = workspace
        self.loader = loader or WsdlLoader(timeout=workspace.config.http_timeout)
        self.renderer = renderer or TemplateRenderer()

    # -- Data source -----------------------------------------------------------

    def soap_datasources(self) -> dict[str, dict[str, Any]]:
        return {
            name: settings
            for name, settings in self.workspace.read_datasources().items()
            if isinstance(settings, dict) and settings.get("connector") in ("soap", "loopback-connector-soap")
        }

    def wsdl_location(self, request: SoapRequest) -> str:
        """The WSDL to read: explicit override, else the data source's ``wsdl``/``url``."""
        datasources = self.soap_datasources()
        if request.datasource not in datasources:
            raise InvalidSelectionError(
                "data source",
                request.datasource,
                sorted(datasources),
                plural="SOAP data sources",
            )
        if request.wsdl:
            return request.wsdl
        settings = datasources[request.datasource]
        location = settings.get("wsdl")
        if not location:
            url = settings.get("url")
            if not url:
                raise LoopgenError(f"Data source {request.datasource} has neither 'wsdl' nor 'url' configured")
            location = url if url.lower().endswith("?wsdl") else f"{url}?WSDL"
        if not location.startswith(("http://", "https://")) and not Path(location).is_absolute():
            location = str(self.workspace.root / location)
        return location

    async def load(self, request: SoapRequest) -> WsdlDocument:
        return await self.loader.load(self.wsdl_location(request))

    # -- Mapping ---------------------------------------------------------------

    def select(self, document: WsdlDocument, request: SoapRequest) -> tuple[str, str, list[str]]:
        """Resolve the service, binding and operations a request refers to."""
        if not document.services:
            raise LoopgenError(f"{document.location or 'WSDL'} defines no services")
        service = request.service or self._service_for(document, request.binding)
        bindings = document.bindings_for_service(service)
        if request.binding:
            binding = document.binding_in_service(service, request.binding)
        elif bindings:
            binding = bindings[0]
        else:
            raise LoopgenError(f"Service {service} has no SOAP bindings")
        operations = request.operations or [op.name for op in binding.operations]
        for name in operations:
            binding.operation(name)
        return service, binding.name, operations

    @staticmethod
    def _service_for(document: WsdlDocument, binding: str | None) -> str:
        """The first service exposing *binding*, else the first service."""
        if binding:
            for service in document.services:
                if any(b.name == binding for b in document.bindings_for_service(service.name)):
                    return service.name
        return document.services[0].name

    def plan(self, document: WsdlDocument, request: SoapRequest) -> SoapGenerationResult:
        """Map the selected operations without touching the project."""
        service, binding, operations = self.select(document, request)
        mappings = [map_operation(document, binding, name) for name in operations]
        model_slugs([model for mapping in mappings for model in mapping.models()])
        model_name, _slug = api_model_names(binding)
        return SoapGenerationResult(
            service=service,
            binding=binding,
            api_model=model_name,
            operations=mappings,
        )

    # -- Generation ------------------------------------------------------------

    async def generate(self, request: SoapRequest) -> SoapGenerationResult:
        """Load the WSDL, map the operations and write every model file."""
        self.workspace.require_project()
        document = await self.load(request)
        result = self.plan(document, request)
        model_config = self.workspace.read_model_config()

        models: dict[str, dict[str, Any]] = {}
        registrations: dict[str, dict[str, Any]] = {}
        for mapping in result.operations:
            for model in mapping.models():
                models.setdefault(model["name"], model)
            for name, entry in mapping.registration.items():
                registrations.setdefault(name, entry)

        for model in models.values():
            result.written.append(await self.workspace.write_model(model))

        model_name, slug = api_model_names(result.binding)
        api_json = self.workspace.config.server_models_path / f"{slug}.json"
        result.written.append(
            await self.workspace.write(api_json, api_model_definition(model_name, result.operations))
        )
        api_js = await self.renderer.render_to_file(
            "soap/api-model.js.j2",
            self.workspace.config.server_models_path / f"{slug}.js",
            {
                "model_name": model_name,
                "service": result.service,
                "binding": result.binding,
                "datasource": request.datasource,
                "endpoint": document.endpoint(result.binding),
                "operations": result.operations,
            },
        )
        print_file_action("create", relative_to(api_js, self.workspace.root))
        result.written.append(api_js)

        for name, entry in registrations.items():
            model_config[name] = entry
        model_config[model_name] = {"dataSource": request.datasource, "public": True}
        result.written.append(
            await self.workspace.write(self.workspace.config.model_config_path, model_config)
        )
        logger.debug("Generated %d models for binding %s", len(models), result.binding)
        return result
