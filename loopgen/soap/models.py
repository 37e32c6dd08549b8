"""Pydantic v2 models for parsed WSDL documents.

Qualified names are stored in Clark notation (``{namespace}local``) so that
lookups never depend on the prefixes a particular document happened to use.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..errors import InvalidSelectionError, WsdlError


def local_name(qname: str) -> str:
    """``{urn:x}GetQuote`` -> ``GetQuote``."""
    return qname.rsplit("}", 1)[-1]


def namespace_of(qname: str) -> str:
    """``{urn:x}GetQuote`` -> ``urn:x``; empty for unqualified names."""
    if qname.startswith("{"):
        return qname[1:].split("}", 1)[0]
    return ""


# ---------------------------------------------------------------------------
# XML Schema
# ---------------------------------------------------------------------------

class XsdAttribute(BaseModel):
    """An ``xsd:attribute`` of a complex type."""
    name: str
    type: Optional[str] = None
    required: bool = False


class XsdElement(BaseModel):
    """An ``xsd:element``, either global or a particle of a complex type."""
    name: str = ""
    type: Optional[str] = Field(default=None, description="Clark name of the declared type")
    ref: Optional[str] = Field(default=None, description="Clark name of a referenced global element")
    min_occurs: int = 1
    max_occurs: Optional[int] = Field(default=1, description="None means unbounded")
    nillable: bool = False
    complex_type: Optional[XsdComplexType] = None
    simple_base: Optional[str] = Field(
        default=None, description="Restriction base of an inline simple type"
    )
    unsupported: Optional[str] = None

    @property
    def is_array(self) -> bool:
        return self.max_occurs is None or self.max_occurs > 1


class XsdComplexType(BaseModel):
    """A named or anonymous ``xsd:complexType``."""
    name: Optional[str] = None
    base: Optional[str] = Field(default=None, description="complexContent extension base")
    elements: list[XsdElement] = Field(default_factory=list)
    attributes: list[XsdAttribute] = Field(default_factory=list)
    unsupported: Optional[str] = Field(
        default=None, description="First construct the mapper cannot express"
    )


class XsdSimpleType(BaseModel):
    """A named ``xsd:simpleType``; only restrictions are mappable."""
    name: str
    base: Optional[str] = None
    unsupported: Optional[str] = None


class Schema(BaseModel):
    """All global schema components of a WSDL, merged across schemas."""
    elements: dict[str, XsdElement] = Field(default_factory=dict)
    complex_types: dict[str, XsdComplexType] = Field(default_factory=dict)
    simple_types: dict[str, XsdSimpleType] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# WSDL components
# ---------------------------------------------------------------------------

class MessagePart(BaseModel):
    name: str
    element: Optional[str] = None
    type: Optional[str] = None


class Message(BaseModel):
    name: str
    parts: list[MessagePart] = Field(default_factory=list)


class PortTypeOperation(BaseModel):
    name: str
    input: Optional[str] = Field(default=None, description="Clark name of the input message")
    output: Optional[str] = Field(default=None, description="Clark name of the output message")


class PortType(BaseModel):
    name: str
    operations: list[PortTypeOperation] = Field(default_factory=list)


class BindingOperation(BaseModel):
    name: str
    soap_action: str = ""
    style: Optional[str] = None


class Binding(BaseModel):
    name: str
    port_type: str
    style: str = "document"
    soap_version: Optional[str] = Field(default=None, description="'1.1', '1.2' or None for non-SOAP")
    operations: list[BindingOperation] = Field(default_factory=list)

    def operation(self, name: str) -> BindingOperation:
        for op in self.operations:
            if op.name == name:
                return op
        raise InvalidSelectionError(
            "operation",
            name,
            [op.name for op in self.operations],
            scope=f"for binding {self.name}",
        )


class Port(BaseModel):
    name: str
    binding: str
    address: str = ""


class Service(BaseModel):
    name: str
    ports: list[Port] = Field(default_factory=list)


class WsdlDocument(BaseModel):
    """A parsed WSDL 1.1 document."""

    location: str = ""
    target_namespace: str = ""
    services: list[Service] = Field(default_factory=list)
    bindings: list[Binding] = Field(default_factory=list)
    port_types: dict[str, PortType] = Field(default_factory=dict)
    messages: dict[str, Message] = Field(default_factory=dict)
    types: Schema = Field(default_factory=Schema)

    # -- Selection -----------------------------------------------------------

    def service(self, name: str) -> Service:
        for service in self.services:
            if service.name == name:
                return service
        raise InvalidSelectionError("service", name, [s.name for s in self.services])

    def binding(self, name: str) -> Binding:
        for binding in self.bindings:
            if binding.name == name:
                return binding
        raise InvalidSelectionError("binding", name, [b.name for b in self.bindings])

    def bindings_for_service(self, service_name: str) -> list[Binding]:
        """SOAP bindings reachable through the ports of *service_name*."""
        service = self.service(service_name)
        names = [local_name(port.binding) for port in service.ports]
        return [b for b in self.bindings if b.name in names and b.soap_version]

    def binding_in_service(self, service_name: str, binding_name: str) -> Binding:
        bindings = self.bindings_for_service(service_name)
        for binding in bindings:
            if binding.name == binding_name:
                return binding
        raise InvalidSelectionError(
            "binding",
            binding_name,
            [b.name for b in bindings],
            scope=f"for service {service_name}",
        )

    def endpoint(self, binding_name: str) -> str:
        """Address of the first port exposing *binding_name*."""
        for service in self.services:
            for port in service.ports:
                if local_name(port.binding) == binding_name:
                    return port.address
        return ""

    # -- Lookups -------------------------------------------------------------

    def port_type(self, qname: str) -> PortType:
        found = _lookup(self.port_types, qname)
        if found is None:
            raise WsdlError(f"Unknown portType {local_name(qname)} in {self.location or 'WSDL'}")
        return found

    def message(self, qname: str) -> Message:
        found = _lookup(self.messages, qname)
        if found is None:
            raise WsdlError(f"Unknown message {local_name(qname)} in {self.location or 'WSDL'}")
        return found

    def element(self, qname: str) -> Optional[XsdElement]:
        return _lookup(self.types.elements, qname)

    def complex_type(self, qname: str) -> Optional[XsdComplexType]:
        return _lookup(self.types.complex_types, qname)

    def simple_type(self, qname: str) -> Optional[XsdSimpleType]:
        return _lookup(self.types.simple_types, qname)


def _lookup(table: dict, qname: str):
    """Find *qname* exactly, else by local name when that is unambiguous."""
    if qname in table:
        return table[qname]
    name = local_name(qname)
    matches = [value for key, value in table.items() if local_name(key) == name]
    if len(matches) == 1:
        return matches[0]
    return None


XsdElement.model_rebuild()
XsdComplexType.model_rebuild()
