"""Size calculation for method argument payloads."""

from dataclasses import dataclass
from enum import StrEnum, auto

from .fieldsets import Fieldset, group_fields
from .resolver import GenerationError, WireType
from .types import ProtoClass, ProtoMethod, Specification

# Fixed wire sizes in bytes
FIXED_SIZES: dict[WireType, int] = {
    WireType.OCTET: 1,
    WireType.SHORTSHORT: 1,
    WireType.SHORT: 2,
    WireType.LONG: 4,
    WireType.LONGLONG: 8,
    WireType.TIMESTAMP: 8,
}


class SizeKind(StrEnum):
    """Classification of size characteristics."""

    FIXED = auto()  # Min == Max
    BOUNDED = auto()  # Variable with a calculable max (shortstr)
    UNBOUNDED = auto()  # No max (longstr, table)


@dataclass(frozen=True)
class SizeInfo:
    """Size information for a fieldset or method."""

    min_size: int
    max_size: int | None  # None means unbounded
    kind: SizeKind

    @property
    def is_fixed(self) -> bool:
        return self.kind == SizeKind.FIXED

    @property
    def is_bounded(self) -> bool:
        return self.kind in (SizeKind.FIXED, SizeKind.BOUNDED)


@dataclass(frozen=True)
class MethodSizeInfo:
    """Argument payload size of one method."""

    class_name: str
    method_name: str
    class_id: int
    method_id: int
    size: SizeInfo


def fieldset_size(fs: Fieldset) -> SizeInfo:
    """Calculate the wire size of one fieldset."""
    count = len(fs.fields)

    if fs.wire_type == WireType.BIT:
        size = (count + 7) // 8
        return SizeInfo(size, size, SizeKind.FIXED)

    if fs.wire_type in FIXED_SIZES:
        size = FIXED_SIZES[fs.wire_type] * count
        return SizeInfo(size, size, SizeKind.FIXED)

    if fs.wire_type == WireType.SHORTSTR:
        # 1-byte length prefix + up to 255 bytes
        return SizeInfo(count, count * 256, SizeKind.BOUNDED)

    # longstr and table: 4-byte length prefix, no upper bound
    return SizeInfo(4 * count, None, SizeKind.UNBOUNDED)


def method_size(klass: ProtoClass, method: ProtoMethod, spec: Specification) -> MethodSizeInfo:
    """Calculate the argument payload size of a method."""
    try:
        fieldsets = group_fields(method.fields, spec)
    except GenerationError as err:
        err.locate(klass.name, method.name)
        raise

    total_min = 0
    total_max: int | None = 0
    kind = SizeKind.FIXED

    for fs in fieldsets:
        size = fieldset_size(fs)
        total_min += size.min_size
        if total_max is not None and size.max_size is not None:
            total_max += size.max_size
        else:
            total_max = None

        if size.kind == SizeKind.UNBOUNDED:
            kind = SizeKind.UNBOUNDED
        elif size.kind == SizeKind.BOUNDED and kind == SizeKind.FIXED:
            kind = SizeKind.BOUNDED

    return MethodSizeInfo(
        class_name=klass.name,
        method_name=method.name,
        class_id=klass.index,
        method_id=method.index,
        size=SizeInfo(total_min, total_max, kind),
    )


def calculate_sizes(spec: Specification) -> list[MethodSizeInfo]:
    """Calculate argument sizes for every method, in specification order."""
    return [method_size(klass, m, spec) for klass in spec.classes for m in klass.methods]
