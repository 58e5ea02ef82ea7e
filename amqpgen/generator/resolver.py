"""Wire type resolution for protocol fields."""

from dataclasses import dataclass
from enum import StrEnum

from .types import ProtoField, Specification


class GenerationError(RuntimeError):
    """Base class for errors that abort code generation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.location: str | None = None

    def locate(self, *parts: str) -> None:
        """Prefix the error location with the enclosing class/method/field."""
        if self.location:
            parts = (*parts, self.location)
        self.location = ".".join(parts)

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class UnresolvedDomain(GenerationError):
    """Raised when a field references a domain that is not declared."""


class UnknownWireType(GenerationError):
    """Raised when a resolved wire type has no host mapping."""


class WireType(StrEnum):
    """The fixed set of byte-level encodings defined by the protocol."""

    BIT = "bit"
    OCTET = "octet"
    SHORTSHORT = "shortshort"
    SHORT = "short"
    LONG = "long"
    LONGLONG = "longlong"
    TIMESTAMP = "timestamp"
    TABLE = "table"
    SHORTSTR = "shortstr"
    LONGSTR = "longstr"


@dataclass(frozen=True)
class HostType:
    """Python representation of a wire type in generated code.

    annotation: type annotation on the generated dataclass attribute
    default: right-hand side of the attribute declaration
    zero: literal written on the wire for reserved fields
    """

    annotation: str
    default: str
    zero: str


HOST_TYPES: dict[WireType, HostType] = {
    WireType.BIT: HostType("bool", "False", "False"),
    WireType.OCTET: HostType("int", "0", "0"),
    WireType.SHORTSHORT: HostType("int", "0", "0"),
    WireType.SHORT: HostType("int", "0", "0"),
    WireType.LONG: HostType("int", "0", "0"),
    WireType.LONGLONG: HostType("int", "0", "0"),
    WireType.TIMESTAMP: HostType("datetime", "EPOCH", "EPOCH"),
    WireType.TABLE: HostType("Table", "field(default_factory=dict)", "{}"),
    WireType.SHORTSTR: HostType("str", '""', '""'),
    WireType.LONGSTR: HostType("bytes", 'b""', 'b""'),
}


def field_type(field: ProtoField, spec: Specification) -> str:
    """Return the wire type name of a field, following its domain if needed."""
    if field.type:
        return field.type

    for domain in spec.domains:
        if domain.name == field.domain:
            return domain.type

    err = UnresolvedDomain(f"unknown domain '{field.domain}'")
    err.locate(field.name)
    raise err


def wire_type(name: str) -> WireType:
    """Map a wire type name onto the closed WireType enumeration."""
    try:
        return WireType(name)
    except ValueError:
        raise UnknownWireType(f"unknown wire type '{name}'") from None


def host_type(t: WireType) -> HostType:
    """Return the Python representation of a wire type."""
    return HOST_TYPES[t]


def resolve(field: ProtoField, spec: Specification) -> WireType:
    """Resolve a field to its wire type."""
    try:
        return wire_type(field_type(field, spec))
    except UnknownWireType as err:
        err.locate(field.name)
        raise
