"""Emission of per-method encode/decode logic.

Each method is emitted once per direction. Fields are grouped into fieldsets
and every fieldset is handed to the rule registered for its wire type. Rules
return the operations they produced together with the bit offset to carry into
the next fieldset, so packing state lives only for the length of one pass.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .fieldsets import Fieldset, group_fields
from .resolver import GenerationError, WireType
from .types import ProtoClass, ProtoField, ProtoMethod, Specification
from .util import to_snake_case

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    ENCODE = "encode"
    DECODE = "decode"


@dataclass(frozen=True)
class Operation:
    """One logical read or write: a single field, or one packed bit byte."""

    wire_type: WireType
    fields: tuple[ProtoField, ...]
    lines: tuple[str, ...]


Rule = Callable[[Fieldset, int], tuple[list[Operation], int]]

# Codec function suffix used by the generated code for each wire type
CODECS: dict[WireType, str] = {
    WireType.OCTET: "octet",
    WireType.SHORTSHORT: "octet",
    WireType.SHORT: "short",
    WireType.LONG: "long",
    WireType.LONGLONG: "longlong",
    WireType.TIMESTAMP: "timestamp",
    WireType.TABLE: "table",
    WireType.SHORTSTR: "shortstr",
    WireType.LONGSTR: "longstr",
}


def _attr(f: ProtoField) -> str:
    return f"self.{to_snake_case(f.name)}"


def _encode_each(fs: Fieldset, offset: int) -> tuple[list[Operation], int]:
    codec = CODECS[fs.wire_type]
    ops = []
    for f in fs.fields:
        value = fs.host.zero if f.reserved else _attr(f)
        ops.append(Operation(fs.wire_type, (f,), (f"write_{codec}(w, {value})",)))
    return ops, 0


def _decode_each(fs: Fieldset, offset: int) -> tuple[list[Operation], int]:
    codec = CODECS[fs.wire_type]
    ops = []
    for f in fs.fields:
        line = f"read_{codec}(r)" if f.reserved else f"{_attr(f)} = read_{codec}(r)"
        ops.append(Operation(fs.wire_type, (f,), (line,)))
    return ops, 0


def _bit_chunks(
    fields: list[ProtoField], offset: int
) -> tuple[list[list[tuple[ProtoField, int]]], int]:
    """Split a bit run into bytes, pairing every field with its bit position."""
    chunks: list[list[tuple[ProtoField, int]]] = []
    for f in fields:
        bit = offset % 8
        if bit == 0 or not chunks:
            chunks.append([])
        chunks[-1].append((f, bit))
        offset += 1
    return chunks, offset


def _encode_bits(fs: Fieldset, offset: int) -> tuple[list[Operation], int]:
    chunks, offset = _bit_chunks(fs.fields, offset)
    ops = []
    for chunk in chunks:
        named = [(f, bit) for f, bit in chunk if not f.reserved]
        if not named:
            lines = ["write_octet(w, 0)"]
        else:
            lines = ["_bits = 0"]
            for f, bit in named:
                lines.append(f"if {_attr(f)}:")
                lines.append(f"    _bits |= 1 << {bit}")
            lines.append("write_octet(w, _bits)")
        ops.append(Operation(WireType.BIT, tuple(f for f, _ in chunk), tuple(lines)))
    return ops, offset


def _decode_bits(fs: Fieldset, offset: int) -> tuple[list[Operation], int]:
    chunks, offset = _bit_chunks(fs.fields, offset)
    ops = []
    for chunk in chunks:
        named = [(f, bit) for f, bit in chunk if not f.reserved]
        if not named:
            lines = ["read_octet(r)"]
        else:
            lines = ["_bits = read_octet(r)"]
            for f, bit in named:
                lines.append(f"{_attr(f)} = (_bits & (1 << {bit})) != 0")
        ops.append(Operation(WireType.BIT, tuple(f for f, _ in chunk), tuple(lines)))
    return ops, offset


RULES: dict[Direction, dict[WireType, Rule]] = {
    Direction.ENCODE: {
        WireType.BIT: _encode_bits,
        WireType.OCTET: _encode_each,
        WireType.SHORTSHORT: _encode_each,
        WireType.SHORT: _encode_each,
        WireType.LONG: _encode_each,
        WireType.LONGLONG: _encode_each,
        WireType.TIMESTAMP: _encode_each,
        WireType.TABLE: _encode_each,
        WireType.SHORTSTR: _encode_each,
        WireType.LONGSTR: _encode_each,
    },
    Direction.DECODE: {
        WireType.BIT: _decode_bits,
        WireType.OCTET: _decode_each,
        WireType.SHORTSHORT: _decode_each,
        WireType.SHORT: _decode_each,
        WireType.LONG: _decode_each,
        WireType.LONGLONG: _decode_each,
        WireType.TIMESTAMP: _decode_each,
        WireType.TABLE: _decode_each,
        WireType.SHORTSTR: _decode_each,
        WireType.LONGSTR: _decode_each,
    },
}


def _check_rules() -> None:
    for direction in Direction:
        missing = set(WireType) - set(RULES[direction])
        if missing:
            raise RuntimeError(f"No {direction} rule for wire types: {sorted(missing)}")
    missing = set(WireType) - set(CODECS) - {WireType.BIT}
    if missing:
        raise RuntimeError(f"No codec for wire types: {sorted(missing)}")


_check_rules()


def emit_method(
    klass: ProtoClass, method: ProtoMethod, direction: Direction, spec: Specification
) -> list[Operation]:
    """Emit the ordered operations implementing one direction of a method."""
    rules = RULES[direction]
    ops: list[Operation] = []
    offset = 0

    try:
        fieldsets = group_fields(method.fields, spec)
    except GenerationError as err:
        err.locate(klass.name, method.name)
        raise

    for fs in fieldsets:
        emitted, offset = rules[fs.wire_type](fs, offset)
        ops.extend(emitted)

    logger.debug(
        "%s.%s %s: %d fieldsets, %d operations",
        klass.name,
        method.name,
        direction,
        len(fieldsets),
        len(ops),
    )
    return ops


def render_operations(ops: list[Operation], indent: str = "") -> str:
    """Render operations as a block of Python statements."""
    if not ops:
        return f"{indent}pass"
    return "\n".join(f"{indent}{line}" for op in ops for line in op.lines)
