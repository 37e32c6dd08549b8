"""WSDL 1.1 loading and parsing.

``WsdlLoader`` fetches a WSDL from a local path or URL (plus any schemas it
pulls in with ``xsd:import``/``xsd:include``) and ``parse_wsdl`` turns the
raw documents into a :class:`~loopgen.soap.models.WsdlDocument`.

ElementTree drops namespace prefix declarations, so each document's prefix
map is collected separately with ``iterparse`` and used to resolve the
prefixed names found in attributes (``type="tns:Globals"``).
"""

from __future__ import annotations

import asyncio
import io
import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urljoin, urlparse

import httpx

from ..errors import UnsupportedConstructError, WsdlError
from .models import (
    Binding,
    BindingOperation,
    Message,
    MessagePart,
    Port,
    PortType,
    PortTypeOperation,
    Schema,
    Service,
    WsdlDocument,
    XsdAttribute,
    XsdComplexType,
    XsdElement,
    XsdSimpleType,
)

logger = logging.getLogger(__name__)

WSDL_NS = "http://schemas.xmlsoap.org/wsdl/"
SOAP11_NS = "http://schemas.xmlsoap.org/wsdl/soap/"
SOAP12_NS = "http://schemas.xmlsoap.org/wsdl/soap12/"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
SOAPENC_NS = "http://schemas.xmlsoap.org/soap/encoding/"

_SOAP_VERSIONS: dict[str, str] = {SOAP11_NS: "1.1", SOAP12_NS: "1.2"}


def _wsdl(tag: str) -> str:
    return f"{{{WSDL_NS}}}{tag}"


def _xsd(tag: str) -> str:
    return f"{{{XSD_NS}}}{tag}"


# ---------------------------------------------------------------------------
# Raw document handling
# ---------------------------------------------------------------------------


class RawDocument:
    """A fetched XML document with its root element and in-scope prefixes.

    Every element keeps the ``xmlns`` declarations visible at that element,
    so a schema that redeclares the default namespace or ``tns`` resolves
    its own references against its own declarations.
    """

    def __init__(self, location: str, content: bytes) -> None:
        self.location = location
        try:
            self.root, self.scopes = _parse_scoped(content)
        except ET.ParseError as exc:
            raise WsdlError(f"Invalid XML in {location or 'WSDL'}: {exc}") from exc

    def qname(self, value: str | None, node: ET.Element) -> str | None:
        """Resolve ``prefix:local`` on *node* to Clark notation."""
        if not value:
            return None
        namespaces = self.scopes.get(node, {})
        prefix, sep, local = value.partition(":")
        if not sep:
            namespace = namespaces.get("", "")
            local = prefix
        else:
            if prefix not in namespaces:
                raise WsdlError(
                    f"Undeclared namespace prefix '{prefix}' in {value!r} ({self.location or 'WSDL'})"
                )
            namespace = namespaces[prefix]
        return f"{{{namespace}}}{local}" if namespace else local


def _parse_scoped(content: bytes) -> tuple[ET.Element, dict[ET.Element, dict[str, str]]]:
    """Parse *content*, recording the prefix map in scope at each element."""
    scopes: dict[ET.Element, dict[str, str]] = {}
    stack: list[dict[str, str]] = [{}]
    declared: dict[str, str] = {}
    root = None
    for event, item in ET.iterparse(io.BytesIO(content), events=("start-ns", "start", "end")):
        if event == "start-ns":
            prefix, uri = item
            declared[prefix] = uri
        elif event == "start":
            scope = {**stack[-1], **declared} if declared else stack[-1]
            declared = {}
            stack.append(scope)
            scopes[item] = scope
            if root is None:
                root = item
        else:
            stack.pop()
    if root is None:
        raise ET.ParseError("no element found")
    return root, scopes


def resolve_location(location: str, base: str) -> str:
    """Resolve a ``schemaLocation`` relative to the document that references it."""
    if urlparse(location).scheme in ("http", "https") or not base:
        return location
    if urlparse(base).scheme in ("http", "https"):
        return urljoin(base, location)
    return str((Path(base).parent / location).resolve())


def schema_locations(document: RawDocument) -> list[str]:
    """Absolute locations of the schemas *document* imports or includes."""
    found: list[str] = []
    for tag in ("import", "include"):
        for node in document.root.iter(_xsd(tag)):
            location = node.get("schemaLocation")
            if location:
                found.append(resolve_location(location, document.location))
    return found


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class WsdlLoader:
    """Fetches WSDL documents and the schemas they reference.

    Args:
        timeout: Per-request HTTP timeout in seconds.
        transport: Optional ``httpx`` transport, used by tests to serve
            documents without network access.
    """

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self.transport = transport

    async def load(self, location: str) -> WsdlDocument:
        """Fetch and parse the WSDL at *location* (path or URL)."""
        main = RawDocument(location, await self.fetch(location))
        imported: dict[str, RawDocument] = {}
        pending = schema_locations(main)
        while pending:
            schema_location = pending.pop(0)
            if schema_location in imported or schema_location == location:
                continue
            logger.debug("Loading imported schema %s", schema_location)
            raw = RawDocument(schema_location, await self.fetch(schema_location))
            imported[schema_location] = raw
            pending.extend(schema_locations(raw))
        return build_document(main, list(imported.values()))

    async def fetch(self, location: str) -> bytes:
        """Read *location* from disk or over HTTP."""
        if urlparse(location).scheme in ("http", "https"):
            return await self._fetch_url(location)
        path = Path(location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise WsdlError(f"Cannot read WSDL {location}: {exc.strerror or exc}") from exc

    async def _fetch_url(self, url: str) -> bytes:
        logger.debug("Downloading %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as exc:
            raise WsdlError(f"Cannot download WSDL {url}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise WsdlError(f"Cannot download WSDL {url}: {exc}") from exc


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_wsdl(
    content: bytes,
    location: str = "",
    schemas: Mapping[str, bytes] | None = None,
) -> WsdlDocument:
    """Parse a WSDL document held in memory.

    Args:
        content: The WSDL bytes.
        location: Where the WSDL came from, used in error messages.
        schemas: Already-fetched imported schemas keyed by location.
    """
    main = RawDocument(location, content)
    extra = [RawDocument(loc, data) for loc, data in (schemas or {}).items()]
    return build_document(main, extra)


def build_document(main: RawDocument, schemas: list[RawDocument]) -> WsdlDocument:
    """Build a ``WsdlDocument`` from a parsed WSDL and its imported schemas."""
    root = main.root
    if root.tag != _wsdl("definitions"):
        raise WsdlError(
            f"{main.location or 'Document'} is not a WSDL 1.1 document "
            f"(root element is {root.tag})"
        )
    if root.find(_wsdl("import")) is not None:
        raise UnsupportedConstructError("wsdl:import", main.location or "WSDL definitions")

    target_ns = root.get("targetNamespace", "")
    schema = Schema()
    types = root.find(_wsdl("types"))
    if types is not None:
        for node in types.findall(_xsd("schema")):
            _SchemaReader(main, node, schema).read()
    for raw in schemas:
        if raw.root.tag != _xsd("schema"):
            raise WsdlError(f"{raw.location} is not an XML Schema document")
        _SchemaReader(raw, raw.root, schema).read()

    def qualify(name: str) -> str:
        return f"{{{target_ns}}}{name}" if target_ns else name

    messages: dict[str, Message] = {}
    for node in root.findall(_wsdl("message")):
        name = node.get("name", "")
        parts = [
            MessagePart(
                name=part.get("name", ""),
                element=main.qname(part.get("element"), part),
                type=main.qname(part.get("type"), part),
            )
            for part in node.findall(_wsdl("part"))
        ]
        messages[qualify(name)] = Message(name=name, parts=parts)

    port_types: dict[str, PortType] = {}
    for node in root.findall(_wsdl("portType")):
        name = node.get("name", "")
        operations = []
        for op in node.findall(_wsdl("operation")):
            messages_of = {}
            for direction in ("input", "output"):
                child = op.find(_wsdl(direction))
                messages_of[direction] = main.qname(child.get("message"), child) if child is not None else None
            operations.append(PortTypeOperation(name=op.get("name", ""), **messages_of))
        port_types[qualify(name)] = PortType(name=name, operations=operations)

    bindings = [_read_binding(main, node) for node in root.findall(_wsdl("binding"))]

    services: list[Service] = []
    for node in root.findall(_wsdl("service")):
        ports = []
        for port in node.findall(_wsdl("port")):
            address = ""
            for child in port:
                if child.tag.endswith("}address"):
                    address = child.get("location", "")
                    break
            ports.append(
                Port(
                    name=port.get("name", ""),
                    binding=main.qname(port.get("binding"), port) or "",
                    address=address,
                )
            )
        services.append(Service(name=node.get("name", ""), ports=ports))

    document = WsdlDocument(
        location=main.location,
        target_namespace=target_ns,
        services=services,
        bindings=bindings,
        port_types=port_types,
        messages=messages,
        types=schema,
    )
    logger.debug(
        "Parsed %s: %d services, %d bindings, %d messages, %d schema elements",
        main.location or "WSDL",
        len(services),
        len(bindings),
        len(messages),
        len(schema.elements),
    )
    return document


def _read_binding(doc: RawDocument, node: ET.Element) -> Binding:
    soap_version = None
    style = "document"
    for child in node:
        namespace = child.tag[1:].split("}", 1)[0] if child.tag.startswith("{") else ""
        if namespace in _SOAP_VERSIONS and child.tag.endswith("}binding"):
            soap_version = _SOAP_VERSIONS[namespace]
            style = child.get("style", "document")

    operations = []
    for op in node.findall(_wsdl("operation")):
        soap_action = ""
        op_style = None
        for child in op:
            namespace = child.tag[1:].split("}", 1)[0] if child.tag.startswith("{") else ""
            if namespace in _SOAP_VERSIONS and child.tag.endswith("}operation"):
                soap_action = child.get("soapAction", "")
                op_style = child.get("style")
        operations.append(BindingOperation(name=op.get("name", ""), soap_action=soap_action, style=op_style))

    return Binding(
        name=node.get("name", ""),
        port_type=doc.qname(node.get("type"), node) or "",
        style=style,
        soap_version=soap_version,
        operations=operations,
    )


def _occurs(value: str | None, default: int | None) -> int | None:
    if value is None:
        return default
    if value == "unbounded":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise WsdlError(f"Invalid occurrence bound {value!r}") from exc


class _SchemaReader:
    """Reads one ``xsd:schema`` element into a shared ``Schema``."""

    def __init__(self, doc: RawDocument, node: ET.Element, schema: Schema) -> None:
        self.doc = doc
        self.node = node
        self.schema = schema
        self.target_ns = node.get("targetNamespace", "")

    def qualify(self, name: str) -> str:
        return f"{{{self.target_ns}}}{name}" if self.target_ns else name

    def read(self) -> None:
        for child in self.node:
            if child.tag == _xsd("element"):
                element = self.element(child)
                self.schema.elements[self.qualify(element.name)] = element
            elif child.tag == _xsd("complexType"):
                name = child.get("name", "")
                self.schema.complex_types[self.qualify(name)] = self.complex_type(child, name)
            elif child.tag == _xsd("simpleType"):
                name = child.get("name", "")
                self.schema.simple_types[self.qualify(name)] = self.simple_type(child, name)

    def element(self, node: ET.Element) -> XsdElement:
        element = XsdElement(
            name=node.get("name", ""),
            type=self.doc.qname(node.get("type"), node),
            ref=self.doc.qname(node.get("ref"), node),
            min_occurs=_occurs(node.get("minOccurs"), 1) or 0,
            max_occurs=_occurs(node.get("maxOccurs"), 1),
            nillable=node.get("nillable", "false") == "true",
        )
        inline_complex = node.find(_xsd("complexType"))
        if inline_complex is not None:
            element.complex_type = self.complex_type(inline_complex, None)
        inline_simple = node.find(_xsd("simpleType"))
        if inline_simple is not None:
            simple = self.simple_type(inline_simple, element.name)
            element.simple_base = simple.base
            element.unsupported = simple.unsupported
        return element

    def complex_type(self, node: ET.Element, name: str | None) -> XsdComplexType:
        complex_type = XsdComplexType(name=name)
        self._content(node, complex_type)
        return complex_type

    def _content(self, node: ET.Element, target: XsdComplexType) -> None:
        for child in node:
            tag = child.tag
            if tag in (_xsd("sequence"), _xsd("all"), _xsd("choice")):
                self._particles(child, target, optional=tag == _xsd("choice"))
            elif tag == _xsd("attribute"):
                self._attribute(child, target)
            elif tag == _xsd("complexContent"):
                self._complex_content(child, target)
            elif tag in (_xsd("annotation"), _xsd("anyAttribute")):
                continue
            elif tag.startswith(f"{{{XSD_NS}}}"):
                self._unsupported(target, f"xsd:{tag.split('}', 1)[1]}")

    def _particles(self, node: ET.Element, target: XsdComplexType, optional: bool) -> None:
        group_optional = optional or node.get("minOccurs") == "0"
        for child in node:
            tag = child.tag
            if tag == _xsd("element"):
                element = self.element(child)
                if group_optional:
                    element.min_occurs = 0
                target.elements.append(element)
            elif tag in (_xsd("sequence"), _xsd("all"), _xsd("choice")):
                self._particles(child, target, optional=group_optional or tag == _xsd("choice"))
            elif tag == _xsd("annotation"):
                continue
            elif tag.startswith(f"{{{XSD_NS}}}"):
                self._unsupported(target, f"xsd:{tag.split('}', 1)[1]}")

    def _attribute(self, node: ET.Element, target: XsdComplexType) -> None:
        name = node.get("name")
        if not name:
            self._unsupported(target, "xsd:attribute ref")
            return
        attr_type = self.doc.qname(node.get("type"), node)
        inline_simple = node.find(_xsd("simpleType"))
        if attr_type is None and inline_simple is not None:
            attr_type = self.simple_type(inline_simple, name).base
        target.attributes.append(
            XsdAttribute(name=name, type=attr_type, required=node.get("use") == "required")
        )

    def _complex_content(self, node: ET.Element, target: XsdComplexType) -> None:
        extension = node.find(_xsd("extension"))
        if extension is None:
            self._unsupported(target, "xsd:complexContent restriction")
            return
        target.base = self.doc.qname(extension.get("base"), extension)
        self._content(extension, target)

    def simple_type(self, node: ET.Element, name: str) -> XsdSimpleType:
        restriction = node.find(_xsd("restriction"))
        if restriction is not None:
            base = self.doc.qname(restriction.get("base"), restriction)
            if base is None:
                nested = restriction.find(_xsd("simpleType"))
                if nested is not None:
                    base = self.simple_type(nested, name).base
            return XsdSimpleType(name=name, base=base)
        if node.find(_xsd("list")) is not None:
            return XsdSimpleType(name=name, unsupported="xsd:list")
        if node.find(_xsd("union")) is not None:
            return XsdSimpleType(name=name, unsupported="xsd:union")
        return XsdSimpleType(name=name, unsupported="xsd:simpleType without restriction")

    @staticmethod
    def _unsupported(target: XsdComplexType, construct: str) -> None:
        if target.unsupported is None:
            target.unsupported = construct
