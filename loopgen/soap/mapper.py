"""Map WSDL operations to LoopBack model definitions.

For one operation of a binding, ``map_operation`` produces:

* a request model whose properties mirror the input message parts,
* a response model derived from the output message (absent for one-way
  operations),
* one model per named complex type the two reference, and
* the ``server/model-config.json`` entries registering all of them.

XML Schema types collapse to ``string``, ``number``, ``boolean`` or the name
of a complex-type model; repeated particles become ``[type]``.  Any schema
construct outside that vocabulary raises ``UnsupportedConstructError``
instead of producing a partial model.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..errors import UnsupportedConstructError, WsdlError
from ..utils import camel_case, kebab_case
from .models import (
    Binding,
    Message,
    WsdlDocument,
    XsdComplexType,
    XsdElement,
    local_name,
    namespace_of,
)
from .wsdl import SOAPENC_NS, XSD_NS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Built-in type mapping
# ---------------------------------------------------------------------------

_STRING_TYPES = (
    "string normalizedString token language Name NCName NMTOKEN NMTOKENS ID IDREF "
    "IDREFS ENTITY ENTITIES anyURI QName NOTATION date dateTime time duration "
    "gYear gYearMonth gMonth gMonthDay gDay base64Binary hexBinary anySimpleType"
).split()

_NUMBER_TYPES = (
    "int integer long short byte decimal float double nonNegativeInteger "
    "positiveInteger nonPositiveInteger negativeInteger unsignedLong unsignedInt "
    "unsignedShort unsignedByte"
).split()

XSD_TYPE_MAP: dict[str, str] = {
    **{name: "string" for name in _STRING_TYPES},
    **{name: "number" for name in _NUMBER_TYPES},
    "boolean": "boolean",
}

_BUILTIN_NAMESPACES = (XSD_NS, SOAPENC_NS)


def model_definition(name: str, properties: dict[str, Any]) -> dict[str, Any]:
    """A LoopBack model definition with no persistence and no ``id``."""
    return {
        "name": name,
        "base": "Model",
        "idInjection": False,
        "options": {"validateUpsert": True},
        "excludeBaseProperties": ["id"],
        "properties": properties,
        "validations": [],
        "relations": {},
        "acls": [],
        "methods": {},
    }


def model_slugs(models: list[dict[str, Any]]) -> dict[str, str]:
    """Map each model's file slug to its name.

    Raises:
        WsdlError: If a name has no characters usable in a file name, or two
            distinct names would be written to the same file.
    """
    slugs: dict[str, str] = {}
    for model in models:
        name = model["name"]
        slug = kebab_case(name)
        if not slug:
            raise WsdlError(f"Model name {name!r} has no letters or digits to name its file")
        taken = slugs.setdefault(slug, name)
        if taken != name:
            raise WsdlError(f"Models {taken} and {name} would both be written to {slug}.json")
    return slugs


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


class OperationMapping(BaseModel):
    """Models and registrations generated for one WSDL operation."""

    operation: str
    binding: str
    slug: str = Field(..., description="lower-kebab-case operation name")
    method_name: str = Field(..., description="camelCase remote method name")
    soap_action: str = ""
    request: dict[str, Any]
    response: Optional[dict[str, Any]] = None
    types: list[dict[str, Any]] = Field(default_factory=list)
    registration: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def models(self) -> list[dict[str, Any]]:
        """Every model definition this operation needs, request first."""
        result = [self.request]
        if self.response is not None:
            result.append(self.response)
        result.extend(self.types)
        return result


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def map_operation(document: WsdlDocument, binding_name: str, operation_name: str) -> OperationMapping:
    """Map one operation of *binding_name* to model definitions.

    Raises:
        InvalidSelectionError: If the binding or operation does not exist.
        WsdlError: If the operation references missing messages or types.
        UnsupportedConstructError: If a referenced type cannot be expressed.
    """
    binding = document.binding(binding_name)
    binding_op = binding.operation(operation_name)
    port_type = document.port_type(binding.port_type)
    abstract = next((op for op in port_type.operations if op.name == operation_name), None)
    if abstract is None:
        raise WsdlError(
            f"Operation {operation_name} of binding {binding.name} is missing from portType {port_type.name}"
        )
    if abstract.input is None:
        raise UnsupportedConstructError("notification operation (no input)", f"operation {operation_name}")

    style = binding_op.style or binding.style or "document"
    mapper = _TypeMapper(document)

    request = mapper.message_model(
        document.message(abstract.input), style, default_name=operation_name
    )
    response = None
    if abstract.output is not None:
        response = mapper.message_model(
            document.message(abstract.output), style, default_name=f"{operation_name}Response"
        )

    mapping = OperationMapping(
        operation=operation_name,
        binding=binding.name,
        slug=kebab_case(operation_name),
        method_name=camel_case(operation_name),
        soap_action=binding_op.soap_action,
        request=request,
        response=response,
        types=list(mapper.types.values()),
    )
    if not mapping.slug:
        raise WsdlError(f"Operation name {operation_name!r} has no letters or digits to name its REST path")
    model_slugs(mapping.models())
    mapping.registration = {
        model["name"]: {"dataSource": None, "public": True} for model in mapping.models()
    }
    logger.debug(
        "Mapped %s.%s (%s style) to %d models",
        binding.name,
        operation_name,
        style,
        len(mapping.registration),
    )
    return mapping


def map_binding(
    document: WsdlDocument, binding_name: str, operations: list[str] | None = None
) -> list[OperationMapping]:
    """Map the selected (default: all) operations of a binding."""
    binding: Binding = document.binding(binding_name)
    names = operations or [op.name for op in binding.operations]
    return [map_operation(document, binding.name, name) for name in names]


class _TypeMapper:
    """Resolves schema types to LoopBack property types.

    Named complex types are turned into models in ``types`` the first time
    they are referenced; a name is reserved before its properties are
    resolved so self-referencing types terminate.
    """

    def __init__(self, document: WsdlDocument) -> None:
        self.document = document
        self.types: dict[str, dict[str, Any]] = {}
        self._reserved: set[str] = set()

    # -- Messages ------------------------------------------------------------

    def message_model(self, message: Message, style: str, default_name: str) -> dict[str, Any]:
        parts = message.parts
        if style == "document" and len(parts) == 1 and parts[0].element:
            element = self._global_element(parts[0].element, f"message {message.name}")
            return self._element_model(element, local_name(parts[0].element))

        properties: dict[str, Any] = {}
        for part in parts:
            context = f"part {part.name} of message {message.name}"
            if part.type:
                properties[part.name] = {"type": self.resolve(part.type, context), "required": True}
            elif part.element:
                element = self._global_element(part.element, context)
                prop = self.element_property(element, owner=default_name, context=context)
                prop["required"] = True
                properties[part.name] = prop
            else:
                raise WsdlError(f"{context} declares neither an element nor a type")
        return model_definition(default_name, properties)

    def _element_model(self, element: XsdElement, name: str) -> dict[str, Any]:
        """Model for a document-style wrapper element."""
        context = f"element {name}"
        if element.complex_type is not None:
            return model_definition(name, self.complex_properties(element.complex_type, name, context))
        if element.type:
            complex_type = self._complex(element.type)
            if complex_type is not None:
                return model_definition(name, self.complex_properties(complex_type, name, context))
            return model_definition(name, {name: {"type": self.resolve(element.type, context), "required": True}})
        if element.simple_base:
            return model_definition(name, {name: {"type": self.resolve(element.simple_base, context), "required": True}})
        raise UnsupportedConstructError("element without a type (xsd:anyType)", context)

    # -- Complex types ---------------------------------------------------------

    def complex_properties(self, complex_type: XsdComplexType, owner: str, context: str) -> dict[str, Any]:
        if complex_type.unsupported:
            raise UnsupportedConstructError(complex_type.unsupported, context)

        properties: dict[str, Any] = {}
        if complex_type.base:
            if namespace_of(complex_type.base) in _BUILTIN_NAMESPACES:
                raise UnsupportedConstructError(
                    f"complexContent extension of {local_name(complex_type.base)}", context
                )
            base = self._complex(complex_type.base)
            if base is None:
                raise WsdlError(f"Unknown base type {local_name(complex_type.base)} in {context}")
            properties.update(self.complex_properties(base, owner, f"base type of {context}"))

        for element in complex_type.elements:
            if element.ref:
                name = local_name(element.ref)
            else:
                name = element.name
            properties[name] = self.element_property(element, owner, f"{context}, element {name}")

        for attribute in complex_type.attributes:
            attr_context = f"{context}, attribute {attribute.name}"
            prop: dict[str, Any] = {
                "type": self.resolve(attribute.type, attr_context) if attribute.type else "string"
            }
            if attribute.required:
                prop["required"] = True
            properties[attribute.name] = prop
        return properties

    def complex_model(self, qname: str, complex_type: XsdComplexType) -> str:
        """Register a model for a named complex type and return its name."""
        name = local_name(qname)
        if name not in self._reserved:
            self._reserved.add(name)
            properties = self.complex_properties(complex_type, name, f"complex type {name}")
            self.types[name] = model_definition(name, properties)
        return name

    # -- Elements --------------------------------------------------------------

    def element_property(self, element: XsdElement, owner: str, context: str) -> dict[str, Any]:
        min_occurs, max_occurs = element.min_occurs, element.max_occurs
        if element.ref:
            target = self._global_element(element.ref, context)
            element = target.model_copy(update={"min_occurs": min_occurs, "max_occurs": max_occurs})

        if element.unsupported:
            raise UnsupportedConstructError(element.unsupported, context)
        if element.complex_type is not None:
            type_name = self._inline_model(element, owner, context)
        elif element.type:
            type_name = self.resolve(element.type, context)
        elif element.simple_base:
            type_name = self.resolve(element.simple_base, context)
        else:
            raise UnsupportedConstructError("element without a type (xsd:anyType)", context)

        prop: dict[str, Any] = {"type": [type_name] if element.is_array else type_name}
        if min_occurs > 0 and not element.nillable:
            prop["required"] = True
        return prop

    def _inline_model(self, element: XsdElement, owner: str, context: str) -> str:
        """Model for an anonymous complex type, named ``<Owner><Element>``."""
        name = f"{owner}{element.name[:1].upper()}{element.name[1:]}"
        if name not in self._reserved:
            self._reserved.add(name)
            properties = self.complex_properties(element.complex_type, name, context)
            self.types[name] = model_definition(name, properties)
        return name

    # -- Type resolution -------------------------------------------------------

    def resolve(self, qname: str, context: str) -> str:
        """Resolve a type name to ``string``/``number``/``boolean`` or a model name."""
        if namespace_of(qname) in _BUILTIN_NAMESPACES:
            builtin = local_name(qname)
            if builtin not in XSD_TYPE_MAP:
                raise UnsupportedConstructError(f"type xsd:{builtin}", context)
            return XSD_TYPE_MAP[builtin]

        complex_type = self._complex(qname)
        if complex_type is not None:
            return self.complex_model(qname, complex_type)

        simple_type = self.document.simple_type(qname)
        if simple_type is not None:
            if simple_type.unsupported:
                raise UnsupportedConstructError(simple_type.unsupported, f"simple type {simple_type.name}")
            if not simple_type.base:
                raise WsdlError(f"Simple type {simple_type.name} has no restriction base ({context})")
            return self.resolve(simple_type.base, f"simple type {simple_type.name}")

        # Unqualified built-in names from documents without an xsd default namespace.
        if not namespace_of(qname) and qname in XSD_TYPE_MAP:
            return XSD_TYPE_MAP[qname]
        raise WsdlError(f"Unknown type {local_name(qname)} referenced by {context}")

    def _complex(self, qname: str) -> XsdComplexType | None:
        return self.document.complex_type(qname)

    def _global_element(self, qname: str, context: str) -> XsdElement:
        element = self.document.element(qname)
        if element is None:
            raise WsdlError(f"Unknown element {local_name(qname)} referenced by {context}")
        return element
