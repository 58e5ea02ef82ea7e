"""Identifier helpers for generated code."""

import keyword
import re

_DELIMS = re.compile(r"[-_\s]+")


def to_camel_case(*parts: str) -> str:
    """Join dashed/underscored names into one CamelCase identifier.

    >>> to_camel_case("connection", "start-ok")
    'ConnectionStartOk'
    """
    words = [w for part in parts for w in _DELIMS.split(part) if w]
    return "".join(w[0].upper() + w[1:] for w in words)


def to_snake_case(name: str) -> str:
    """Convert a dashed protocol name to a valid Python attribute name."""
    ident = _DELIMS.sub("_", name.strip()).lower()
    if keyword.iskeyword(ident):
        ident += "_"
    return ident


def to_constant_case(name: str) -> str:
    return _DELIMS.sub("_", name.strip()).upper()
