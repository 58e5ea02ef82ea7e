"""Wire codec for AMQP method arguments.

All integers are big-endian and unsigned unless noted. Every read either
returns a complete value or raises DecodeError, so a generated read() aborts
at the first field that cannot be decoded.
"""

import struct
from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from typing import Any, BinaryIO

Table = dict[str, Any]

EPOCH = datetime.fromtimestamp(0, timezone.utc)


class SerializationError(RuntimeError):
    """Raised when serialization or deserialization fails."""


class EncodeError(SerializationError):
    """Raised when a value cannot be represented on the wire."""


class DecodeError(SerializationError):
    """Raised when the input is truncated or malformed."""


_OCTET = struct.Struct(">B")
_SHORT = struct.Struct(">H")
_LONG = struct.Struct(">I")
_LONGLONG = struct.Struct(">Q")


def _read_exact(r: BinaryIO, size: int) -> bytes:
    data = r.read(size)
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise DecodeError(f"Short read: expected {size} bytes, got {got}")
    return data


def _pack(s: struct.Struct, value: int) -> bytes:
    try:
        return s.pack(value)
    except struct.error as err:
        raise EncodeError(f"{value!r} does not fit in {s.size * 8} bits") from err


def read_octet(r: BinaryIO) -> int:
    return _OCTET.unpack(_read_exact(r, 1))[0]


def write_octet(w: BinaryIO, value: int) -> None:
    w.write(_pack(_OCTET, value))


def read_short(r: BinaryIO) -> int:
    return _SHORT.unpack(_read_exact(r, 2))[0]


def write_short(w: BinaryIO, value: int) -> None:
    w.write(_pack(_SHORT, value))


def read_long(r: BinaryIO) -> int:
    return _LONG.unpack(_read_exact(r, 4))[0]


def write_long(w: BinaryIO, value: int) -> None:
    w.write(_pack(_LONG, value))


def read_longlong(r: BinaryIO) -> int:
    return _LONGLONG.unpack(_read_exact(r, 8))[0]


def write_longlong(w: BinaryIO, value: int) -> None:
    w.write(_pack(_LONGLONG, value))


def read_timestamp(r: BinaryIO) -> datetime:
    """Read a 64-bit POSIX time in seconds."""
    seconds = read_longlong(r)
    try:
        return datetime.fromtimestamp(seconds, timezone.utc)
    except (OverflowError, OSError, ValueError) as err:
        raise DecodeError(f"Timestamp {seconds} out of range") from err


def write_timestamp(w: BinaryIO, value: datetime) -> None:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    write_longlong(w, int(value.timestamp()))


def read_shortstr(r: BinaryIO) -> str:
    """Read a string with a 1-byte length prefix."""
    size = read_octet(r)
    data = _read_exact(r, size)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise DecodeError(f"Invalid UTF-8 in short string: {data!r}") from err


def write_shortstr(w: BinaryIO, value: str) -> None:
    data = value.encode("utf-8")
    if len(data) > 255:
        raise EncodeError(f"Short string exceeds 255 bytes ({len(data)})")
    write_octet(w, len(data))
    w.write(data)


def read_longstr(r: BinaryIO) -> bytes:
    """Read a byte string with a 4-byte length prefix."""
    size = read_long(r)
    return _read_exact(r, size)


def write_longstr(w: BinaryIO, value: bytes | str) -> None:
    data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    write_long(w, len(data))
    w.write(data)


def _read_value(r: BinaryIO) -> Any:
    tag = _read_exact(r, 1)
    if tag == b"t":
        return read_octet(r) != 0
    if tag == b"b":
        return struct.unpack(">b", _read_exact(r, 1))[0]
    if tag == b"B":
        return read_octet(r)
    if tag == b"s":
        return struct.unpack(">h", _read_exact(r, 2))[0]
    if tag == b"u":
        return read_short(r)
    if tag == b"I":
        return struct.unpack(">i", _read_exact(r, 4))[0]
    if tag == b"i":
        return read_long(r)
    if tag == b"l":
        return struct.unpack(">q", _read_exact(r, 8))[0]
    if tag == b"f":
        return struct.unpack(">f", _read_exact(r, 4))[0]
    if tag == b"d":
        return struct.unpack(">d", _read_exact(r, 8))[0]
    if tag == b"D":
        scale = read_octet(r)
        raw = struct.unpack(">i", _read_exact(r, 4))[0]
        return Decimal(raw).scaleb(-scale)
    if tag == b"S":
        data = read_longstr(r)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return data
    if tag == b"x":
        return read_longstr(r)
    if tag == b"A":
        return _read_array(r)
    if tag == b"T":
        return read_timestamp(r)
    if tag == b"F":
        return read_table(r)
    if tag == b"V":
        return None
    raise DecodeError(f"Unknown field value type {tag!r}")


def _write_value(w: BinaryIO, value: Any) -> None:
    # bool is checked before int since it is an int subclass
    if isinstance(value, bool):
        w.write(b"t")
        write_octet(w, int(value))
    elif isinstance(value, int):
        if -(2**31) <= value < 2**31:
            w.write(b"I" + struct.pack(">i", value))
        elif -(2**63) <= value < 2**63:
            w.write(b"l" + struct.pack(">q", value))
        else:
            raise EncodeError(f"Integer {value} does not fit in a field table")
    elif isinstance(value, float):
        w.write(b"d" + struct.pack(">d", value))
    elif isinstance(value, Decimal):
        exponent = value.as_tuple().exponent
        if not isinstance(exponent, int):
            raise EncodeError(f"Cannot encode decimal {value}")
        scale = max(-exponent, 0)
        raw = int(value.scaleb(scale))
        w.write(b"D")
        write_octet(w, scale)
        w.write(_pack(struct.Struct(">i"), raw))
    elif isinstance(value, str):
        w.write(b"S")
        write_longstr(w, value)
    elif isinstance(value, (bytes, bytearray)):
        w.write(b"x")
        write_longstr(w, bytes(value))
    elif isinstance(value, datetime):
        w.write(b"T")
        write_timestamp(w, value)
    elif isinstance(value, dict):
        w.write(b"F")
        write_table(w, value)
    elif isinstance(value, (list, tuple)):
        w.write(b"A")
        _write_array(w, value)
    elif value is None:
        w.write(b"V")
    else:
        raise EncodeError(f"Unsupported field value {value!r} of type {type(value).__name__}")


class _Bounded:
    """Reader over a length-prefixed region of another reader."""

    def __init__(self, r: BinaryIO, size: int) -> None:
        self._r = r
        self.remaining = size

    def read(self, size: int) -> bytes:
        if size > self.remaining:
            raise DecodeError(f"Field value overruns its container by {size - self.remaining} bytes")
        data = _read_exact(self._r, size)
        self.remaining -= size
        return data


def read_table(r: BinaryIO) -> Table:
    """Read a field table: a 4-byte byte count, then name/value pairs."""
    region = _Bounded(r, read_long(r))
    table: Table = {}
    while region.remaining > 0:
        key = read_shortstr(region)  # type: ignore[arg-type]
        table[key] = _read_value(region)  # type: ignore[arg-type]
    return table


def write_table(w: BinaryIO, value: Table) -> None:
    buf = BytesIO()
    for key, item in value.items():
        write_shortstr(buf, key)
        _write_value(buf, item)
    write_longstr(w, buf.getvalue())


def _read_array(r: BinaryIO) -> list[Any]:
    region = _Bounded(r, read_long(r))
    items = []
    while region.remaining > 0:
        items.append(_read_value(region))  # type: ignore[arg-type]
    return items


def _write_array(w: BinaryIO, value: list[Any] | tuple[Any, ...]) -> None:
    buf = BytesIO()
    for item in value:
        _write_value(buf, item)
    write_longstr(w, buf.getvalue())
