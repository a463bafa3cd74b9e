"""Read-only schema tree describing a method's input message.

The form engine never looks at protobuf descriptors directly: the client
converts them into :class:`SchemaNode` trees with
:func:`schema_from_descriptor`, and tests build trees by hand with the small
factory helpers below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from google.protobuf.descriptor import FieldDescriptor

log = logging.getLogger(__name__)

MAX_NESTING = 8

TIMESTAMP_TYPE = "google.protobuf.Timestamp"
DURATION_TYPE = "google.protobuf.Duration"


class Kind(Enum):
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    BYTES = "bytes"
    ENUM = "enum"
    DURATION = "duration"
    TIMESTAMP = "timestamp"
    MESSAGE = "message"
    REPEATED = "repeated"
    MAP = "map"
    ONEOF = "oneof"
    UNSUPPORTED = "unsupported"


SCALAR_KINDS = frozenset(
    {
        Kind.STRING,
        Kind.BOOL,
        Kind.INT,
        Kind.UINT,
        Kind.FLOAT,
        Kind.BYTES,
        Kind.ENUM,
        Kind.DURATION,
        Kind.TIMESTAMP,
    }
)


@dataclass(frozen=True)
class EnumValue:
    name: str
    number: int


@dataclass(frozen=True)
class SchemaNode:
    """Shape of one field as supplied by the schema provider."""

    name: str
    kind: Kind
    type_name: str = ""
    children: Tuple["SchemaNode", ...] = ()
    element: Optional["SchemaNode"] = None
    key: Optional["SchemaNode"] = None
    value: Optional["SchemaNode"] = None
    enum_values: Tuple[EnumValue, ...] = ()
    reason: str = ""

    @property
    def is_scalar(self) -> bool:
        return self.kind in SCALAR_KINDS

    def renamed(self, name: str) -> "SchemaNode":
        """Return a copy of this node carrying ``name``."""

        return SchemaNode(
            name=name,
            kind=self.kind,
            type_name=self.type_name,
            children=self.children,
            element=self.element,
            key=self.key,
            value=self.value,
            enum_values=self.enum_values,
            reason=self.reason,
        )


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


_DEFAULT_TYPE_NAMES = {
    Kind.STRING: "string",
    Kind.BOOL: "bool",
    Kind.INT: "int64",
    Kind.UINT: "uint64",
    Kind.FLOAT: "double",
    Kind.BYTES: "bytes",
    Kind.DURATION: DURATION_TYPE,
    Kind.TIMESTAMP: TIMESTAMP_TYPE,
}


def scalar(name: str, kind: Kind, type_name: str = "") -> SchemaNode:
    if kind not in SCALAR_KINDS or kind is Kind.ENUM:
        raise ValueError(f"{kind.value} is not a plain scalar kind")
    return SchemaNode(name=name, kind=kind, type_name=type_name or _DEFAULT_TYPE_NAMES[kind])


def enum(name: str, values: Sequence[Tuple[str, int]], type_name: str = "") -> SchemaNode:
    return SchemaNode(
        name=name,
        kind=Kind.ENUM,
        type_name=type_name,
        enum_values=tuple(EnumValue(label, number) for label, number in values),
    )


def message(name: str, *children: SchemaNode, type_name: str = "") -> SchemaNode:
    return SchemaNode(name=name, kind=Kind.MESSAGE, type_name=type_name, children=tuple(children))


def repeated(name: str, element: SchemaNode) -> SchemaNode:
    return SchemaNode(name=name, kind=Kind.REPEATED, type_name=element.type_name, element=element.renamed(name))


def map_of(name: str, key: SchemaNode, value: SchemaNode) -> SchemaNode:
    return SchemaNode(name=name, kind=Kind.MAP, key=key.renamed("key"), value=value.renamed("value"))


def oneof(name: str, *alternatives: SchemaNode) -> SchemaNode:
    return SchemaNode(name=name, kind=Kind.ONEOF, children=tuple(alternatives))


def unsupported(name: str, reason: str) -> SchemaNode:
    return SchemaNode(name=name, kind=Kind.UNSUPPORTED, reason=reason)


# ---------------------------------------------------------------------------
# Descriptor conversion
# ---------------------------------------------------------------------------


_INT_TYPES = {
    FieldDescriptor.TYPE_INT32: "int32",
    FieldDescriptor.TYPE_INT64: "int64",
    FieldDescriptor.TYPE_SINT32: "sint32",
    FieldDescriptor.TYPE_SINT64: "sint64",
    FieldDescriptor.TYPE_SFIXED32: "sfixed32",
    FieldDescriptor.TYPE_SFIXED64: "sfixed64",
}

_UINT_TYPES = {
    FieldDescriptor.TYPE_UINT32: "uint32",
    FieldDescriptor.TYPE_UINT64: "uint64",
    FieldDescriptor.TYPE_FIXED32: "fixed32",
    FieldDescriptor.TYPE_FIXED64: "fixed64",
}

_FLOAT_TYPES = {
    FieldDescriptor.TYPE_FLOAT: "float",
    FieldDescriptor.TYPE_DOUBLE: "double",
}


def is_repeated(field: Any) -> bool:
    """Return ``True`` when ``field`` is a repeated (or map) field."""

    flag = getattr(field, "is_repeated", None)
    if flag is not None:
        return bool(flag)
    return field.label == FieldDescriptor.LABEL_REPEATED


def is_map(field: Any) -> bool:
    """Return ``True`` when ``field`` is a protobuf map field."""

    if field.type != FieldDescriptor.TYPE_MESSAGE or field.message_type is None:
        return False
    return bool(field.message_type.GetOptions().map_entry) and is_repeated(field)


def real_oneof(field: Any) -> Optional[Any]:
    """Return the user-declared oneof containing ``field``, if any.

    Proto3 ``optional`` fields live in a synthetic single-member oneof named
    ``_<field>``; those are treated as plain fields.
    """

    container = field.containing_oneof
    if container is None:
        return None
    if len(container.fields) == 1 and container.name == f"_{field.name}":
        return None
    return container


def schema_from_descriptor(descriptor: Any, name: str = "", depth: int = 0) -> SchemaNode:
    """Convert a protobuf message ``descriptor`` into a MESSAGE schema node."""

    children: List[SchemaNode] = []
    seen_oneofs = set()
    for field in descriptor.fields:
        container = real_oneof(field)
        if container is None:
            children.append(_field_schema(field, depth + 1))
            continue
        if container.full_name in seen_oneofs:
            continue
        seen_oneofs.add(container.full_name)
        alternatives = [_field_schema(member, depth + 1) for member in container.fields]
        children.append(oneof(container.name, *alternatives))
    return SchemaNode(
        name=name or descriptor.name,
        kind=Kind.MESSAGE,
        type_name=descriptor.full_name,
        children=tuple(children),
    )


def _field_schema(field: Any, depth: int) -> SchemaNode:
    if is_map(field):
        entry = field.message_type
        key = _single_schema(entry.fields_by_name["key"], "key", depth)
        value = _single_schema(entry.fields_by_name["value"], "value", depth)
        return SchemaNode(name=field.name, kind=Kind.MAP, type_name=entry.full_name, key=key, value=value)
    if is_repeated(field):
        element = _single_schema(field, field.name, depth)
        if element.kind is Kind.UNSUPPORTED:
            return element
        return SchemaNode(name=field.name, kind=Kind.REPEATED, type_name=element.type_name, element=element)
    return _single_schema(field, field.name, depth)


def _single_schema(field: Any, name: str, depth: int) -> SchemaNode:
    """Schema for one value of ``field`` ignoring its repeated label."""

    field_type = field.type
    if field_type == FieldDescriptor.TYPE_STRING:
        return SchemaNode(name=name, kind=Kind.STRING, type_name="string")
    if field_type == FieldDescriptor.TYPE_BOOL:
        return SchemaNode(name=name, kind=Kind.BOOL, type_name="bool")
    if field_type in _INT_TYPES:
        return SchemaNode(name=name, kind=Kind.INT, type_name=_INT_TYPES[field_type])
    if field_type in _UINT_TYPES:
        return SchemaNode(name=name, kind=Kind.UINT, type_name=_UINT_TYPES[field_type])
    if field_type in _FLOAT_TYPES:
        return SchemaNode(name=name, kind=Kind.FLOAT, type_name=_FLOAT_TYPES[field_type])
    if field_type == FieldDescriptor.TYPE_BYTES:
        return SchemaNode(name=name, kind=Kind.BYTES, type_name="bytes")
    if field_type == FieldDescriptor.TYPE_ENUM:
        enum_type = field.enum_type
        values = tuple(EnumValue(value.name, value.number) for value in enum_type.values)
        return SchemaNode(name=name, kind=Kind.ENUM, type_name=enum_type.full_name, enum_values=values)
    if field_type == FieldDescriptor.TYPE_MESSAGE:
        message_type = field.message_type
        if message_type.full_name == TIMESTAMP_TYPE:
            return SchemaNode(name=name, kind=Kind.TIMESTAMP, type_name=TIMESTAMP_TYPE)
        if message_type.full_name == DURATION_TYPE:
            return SchemaNode(name=name, kind=Kind.DURATION, type_name=DURATION_TYPE)
        if depth > MAX_NESTING:
            log.debug("Nesting limit reached at %s (%s)", name, message_type.full_name)
            return unsupported(name, "nesting limit reached")
        return schema_from_descriptor(message_type, name=name, depth=depth)
    return unsupported(name, f"unsupported field type {field_type}")


__all__ = [
    "DURATION_TYPE",
    "EnumValue",
    "Kind",
    "MAX_NESTING",
    "SchemaNode",
    "TIMESTAMP_TYPE",
    "enum",
    "is_map",
    "is_repeated",
    "map_of",
    "message",
    "oneof",
    "real_oneof",
    "repeated",
    "scalar",
    "schema_from_descriptor",
    "unsupported",
]
