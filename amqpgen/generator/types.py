"""Type definitions for protocol specification parsing and code generation."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin


@dataclass
class ProtoConstant(DataClassJsonMixin):
    """Represents a named protocol constant."""

    name: str
    value: int
    klass: str | None = None


@dataclass
class ProtoDomain(DataClassJsonMixin):
    """Represents a named alias for a wire type."""

    name: str
    type: str
    label: str | None = None


@dataclass
class ProtoField(DataClassJsonMixin):
    """Represents a single method argument.

    Exactly one of type/domain is set. Reserved fields occupy wire space but
    are not exposed on the generated message type.
    """

    name: str
    type: str | None = None
    domain: str | None = None
    reserved: bool = False
    label: str | None = None


@dataclass
class ProtoMethod(DataClassJsonMixin):
    """Represents a method of a protocol class."""

    name: str
    index: int
    synchronous: bool = False
    content: bool = False
    fields: list[ProtoField] = field(default_factory=list)
    responses: list[str] = field(default_factory=list)
    label: str | None = None


@dataclass
class ProtoClass(DataClassJsonMixin):
    """Represents a protocol class, a group of related methods."""

    name: str
    index: int
    methods: list[ProtoMethod] = field(default_factory=list)
    label: str | None = None


@dataclass
class Specification(DataClassJsonMixin):
    """Represents a complete protocol specification."""

    major: int
    minor: int
    revision: int = 0
    port: int = 5672
    comment: str | None = None
    constants: list[ProtoConstant] = field(default_factory=list)
    domains: list[ProtoDomain] = field(default_factory=list)
    classes: list[ProtoClass] = field(default_factory=list)
