"""Protocol specification parser for the AMQP XML format."""

import logging
import xml.etree.ElementTree as ET

from .resolver import GenerationError
from .types import (
    ProtoClass,
    ProtoConstant,
    ProtoDomain,
    ProtoField,
    ProtoMethod,
    Specification,
)

logger = logging.getLogger(__name__)

_TRUE = frozenset(["1", "true", "yes"])
_FALSE = frozenset(["", "0", "false", "no"])


class MalformedSpecification(GenerationError):
    """Raised when the input cannot be read into a Specification."""


def _required(node: ET.Element, attr: str) -> str:
    value = node.get(attr)
    if value is None:
        raise MalformedSpecification(f"<{node.tag}> is missing attribute '{attr}'")
    return value


def _int(node: ET.Element, attr: str, default: int | None = None) -> int:
    value = node.get(attr)
    if value is None:
        if default is None:
            raise MalformedSpecification(f"<{node.tag}> is missing attribute '{attr}'")
        return default
    try:
        return int(value)
    except ValueError:
        raise MalformedSpecification(
            f"<{node.tag} name='{node.get('name', '')}'> has non-integer {attr}='{value}'"
        ) from None


def _bool(node: ET.Element, attr: str) -> bool:
    value = node.get(attr, "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise MalformedSpecification(f"<{node.tag}> has non-boolean {attr}='{value}'")


def _field(node: ET.Element, owner: str) -> ProtoField:
    f = ProtoField(
        name=_required(node, "name"),
        type=node.get("type") or None,
        domain=node.get("domain") or None,
        reserved=_bool(node, "reserved"),
        label=node.get("label"),
    )
    if f.type and f.domain:
        raise MalformedSpecification(f"{owner}.{f.name}: field has both a type and a domain")
    if not f.type and not f.domain:
        raise MalformedSpecification(f"{owner}.{f.name}: field has neither a type nor a domain")
    return f


def _method(node: ET.Element, class_name: str) -> ProtoMethod:
    name = _required(node, "name")
    owner = f"{class_name}.{name}"
    return ProtoMethod(
        name=name,
        index=_int(node, "index"),
        synchronous=_bool(node, "synchronous"),
        content=_bool(node, "content"),
        fields=[_field(f, owner) for f in node.findall("field")],
        responses=[_required(r, "name") for r in node.findall("response")],
        label=node.get("label"),
    )


def _class(node: ET.Element) -> ProtoClass:
    name = _required(node, "name")
    klass = ProtoClass(
        name=name,
        index=_int(node, "index"),
        methods=[_method(m, name) for m in node.findall("method")],
        label=node.get("label"),
    )

    seen: dict[int, str] = {}
    for method in klass.methods:
        if method.index in seen:
            raise MalformedSpecification(
                f"{name}: methods {seen[method.index]} and {method.name} "
                f"share index {method.index}"
            )
        seen[method.index] = method.name
    return klass


def validate(spec: Specification) -> None:
    """Check that class indexes are unique across the specification."""
    seen: dict[int, str] = {}
    for klass in spec.classes:
        if klass.index in seen:
            raise MalformedSpecification(
                f"classes {seen[klass.index]} and {klass.name} share index {klass.index}"
            )
        seen[klass.index] = klass.name


def parse(data: bytes | str) -> Specification:
    """Parse a protocol specification document."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as err:
        raise MalformedSpecification(f"invalid XML: {err}") from err

    if root.tag != "amqp":
        raise MalformedSpecification(f"expected <amqp> root element, found <{root.tag}>")

    spec = Specification(
        major=_int(root, "major"),
        minor=_int(root, "minor"),
        revision=_int(root, "revision", 0),
        port=_int(root, "port", 5672),
        comment=root.get("comment"),
        constants=[
            ProtoConstant(
                name=_required(c, "name"), value=_int(c, "value"), klass=c.get("class")
            )
            for c in root.findall("constant")
        ],
        domains=[
            ProtoDomain(name=_required(d, "name"), type=_required(d, "type"), label=d.get("label"))
            for d in root.findall("domain")
        ],
        classes=[_class(c) for c in root.findall("class")],
    )

    validate(spec)

    logger.debug(
        "Parsed AMQP %d-%d-%d: %d constants, %d domains, %d classes",
        spec.major,
        spec.minor,
        spec.revision,
        len(spec.constants),
        len(spec.domains),
        len(spec.classes),
    )
    return spec
