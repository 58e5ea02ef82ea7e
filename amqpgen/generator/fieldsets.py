"""Grouping of method fields into runs sharing a wire type."""

from dataclasses import dataclass, field

from .resolver import HostType, WireType, host_type, resolve
from .types import ProtoField, Specification


@dataclass
class Fieldset:
    """A maximal run of consecutive fields with the same wire type."""

    wire_type: WireType
    host: HostType
    fields: list[ProtoField] = field(default_factory=list)


def group_fields(fields: list[ProtoField], spec: Specification) -> list[Fieldset]:
    """Partition fields into maximal same-typed runs, preserving order.

    Concatenating the fields of the returned fieldsets reproduces the input
    order exactly, and no two adjacent fieldsets share a wire type.
    """
    fieldsets: list[Fieldset] = []
    current: Fieldset | None = None

    for f in fields:
        t = resolve(f, spec)
        if current is not None and current.wire_type == t:
            current.fields.append(f)
            continue
        if current is not None:
            fieldsets.append(current)
        current = Fieldset(wire_type=t, host=host_type(t), fields=[f])

    # The trailing run has no following field to close it
    if current is not None:
        fieldsets.append(current)

    return fieldsets
