"""Field Node: one editable position in the form tree.

Every node carries a closed :class:`FieldKind` tag and exactly one payload.
Scalars wrap a :class:`TextInput` or a :class:`ChoicePicker`; composites wrap
one of the group, list, map or oneof containers, which build their own
children through :func:`build_field`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from ..core.schema import Kind, SchemaNode
from . import keys
from .editors import (
    ChoicePicker,
    TextInput,
    validate_duration,
    validate_float,
    validate_hex,
    validate_int,
    validate_timestamp,
    validate_uint,
)
from .group import FieldGroup
from .keys import KeyEvent
from .mapping import FieldMap
from .oneof import FieldOneof
from .sequence import FieldList
from .styles import DEFAULT_THEME, ERROR, Line, Theme

log = logging.getLogger(__name__)

Effect = Optional[Any]

NUMERIC_CHAR_LIMIT = 64
BYTES_CHAR_LIMIT = 512


class FieldKind(Enum):
    TEXT = "text"
    BOOL = "bool"
    ENUM = "enum"
    GROUP = "group"
    LIST = "list"
    MAP = "map"
    ONEOF = "oneof"


class FormInvariantError(RuntimeError):
    """Raised when a node's payload does not match its kind."""


_PAYLOAD_TYPES = {
    FieldKind.TEXT: TextInput,
    FieldKind.BOOL: ChoicePicker,
    FieldKind.ENUM: ChoicePicker,
    FieldKind.GROUP: FieldGroup,
    FieldKind.LIST: FieldList,
    FieldKind.MAP: FieldMap,
    FieldKind.ONEOF: FieldOneof,
}

COMPOSITE_KINDS = frozenset({FieldKind.GROUP, FieldKind.LIST, FieldKind.MAP, FieldKind.ONEOF})

Payload = Union[TextInput, ChoicePicker, FieldGroup, FieldList, FieldMap, FieldOneof]


class Field:
    """A named node dispatching the navigation contract to its payload."""

    def __init__(self, name: str, kind: FieldKind, payload: Payload) -> None:
        expected = _PAYLOAD_TYPES.get(kind)
        if expected is None or not isinstance(payload, expected):
            raise FormInvariantError(
                f"field {name!r} of kind {kind} carries {type(payload).__name__}"
            )
        self.name = name
        self.kind = kind
        self.payload = payload

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, kind={self.kind.value})"

    # -- payload access -----------------------------------------------------

    @property
    def is_composite(self) -> bool:
        return self.kind in COMPOSITE_KINDS

    @property
    def text(self) -> TextInput:
        return self._expect(FieldKind.TEXT)

    @property
    def choice(self) -> ChoicePicker:
        return self._expect(FieldKind.BOOL, FieldKind.ENUM)

    @property
    def group(self) -> FieldGroup:
        return self._expect(FieldKind.GROUP)

    @property
    def items(self) -> FieldList:
        return self._expect(FieldKind.LIST)

    @property
    def entries(self) -> FieldMap:
        return self._expect(FieldKind.MAP)

    @property
    def oneof(self) -> FieldOneof:
        return self._expect(FieldKind.ONEOF)

    def _expect(self, *kinds: FieldKind) -> Any:
        if self.kind not in kinds:
            raise FormInvariantError(f"field {self.name!r} is {self.kind.value}, not {kinds[0].value}")
        return self.payload

    # -- contract -----------------------------------------------------------

    def value(self) -> Any:
        if self.kind is FieldKind.TEXT:
            return self.payload.value
        return self.payload.value()

    def focus(self) -> None:
        if self.kind is FieldKind.TEXT or self.is_composite:
            self.payload.focus()

    def focus_from_end(self) -> None:
        if self.is_composite:
            self.payload.focus_from_end()
        elif self.kind is FieldKind.TEXT:
            self.payload.focus()

    def blur(self) -> None:
        if self.kind in (FieldKind.BOOL, FieldKind.ENUM):
            return
        self.payload.blur()

    def next(self) -> bool:
        if self.is_composite:
            return self.payload.next()
        return False

    def prev(self) -> bool:
        if self.is_composite:
            return self.payload.prev()
        return False

    def accepts_text_input(self) -> bool:
        if self.kind is FieldKind.TEXT:
            return True
        if self.is_composite:
            return self.payload.accepts_text_input()
        return False

    def handle_key(self, event: KeyEvent) -> Tuple[Effect, bool]:
        if self.kind in (FieldKind.BOOL, FieldKind.ENUM):
            return None, self.payload.cycle(event)
        if self.is_composite:
            return self.payload.handle_key(event)
        return None, False

    def update(self, event: KeyEvent) -> Effect:
        if self.kind is FieldKind.TEXT:
            self.payload.update(event)
            return None
        if self.is_composite:
            return self.payload.update(event)
        return None

    def set_width(self, width: int, theme: Theme = DEFAULT_THEME) -> None:
        if self.kind is FieldKind.TEXT:
            self.payload.width = max(0, width)
        elif self.is_composite:
            self.payload.set_width(width, theme)

    def render(self, focused: bool, depth: int, theme: Theme = DEFAULT_THEME) -> List[Line]:
        """Render the label and the inline value, or the children below it."""

        if self.is_composite:
            lines = [theme.label_line(depth, f"{self.name}:", focused)]
            lines.extend(self.payload.render(depth + 1, theme))
            return lines

        spans = [theme.label(theme.prefix(depth, focused) + f"{self.name}: ", focused)]
        spans.extend(self.payload.render())
        if self.kind is FieldKind.TEXT:
            problem = self.payload.error()
            if problem:
                spans.append((ERROR, f"  ! {problem}"))
        return [Line(tuple(spans), focus=focused)]


# ---------------------------------------------------------------------------
# Construction from schema
# ---------------------------------------------------------------------------


def _placeholder(schema: SchemaNode) -> str:
    kind = schema.kind
    if kind is Kind.STRING:
        return f"Enter {schema.name}..."
    if kind is Kind.BYTES:
        return "Enter hex bytes (e.g., deadbeef)..."
    if kind is Kind.DURATION:
        return "Enter duration (e.g., 10s)..."
    if kind is Kind.TIMESTAMP:
        return "Enter RFC 3339 timestamp (e.g., 2017-01-15T01:30:15.01Z)..."
    return f"Enter {schema.type_name or kind.value}..."


_TEXT_RULES = {
    Kind.STRING: (0, None),
    Kind.INT: (NUMERIC_CHAR_LIMIT, validate_int),
    Kind.UINT: (NUMERIC_CHAR_LIMIT, validate_uint),
    Kind.FLOAT: (NUMERIC_CHAR_LIMIT, validate_float),
    Kind.DURATION: (NUMERIC_CHAR_LIMIT, validate_duration),
    Kind.TIMESTAMP: (NUMERIC_CHAR_LIMIT, validate_timestamp),
    Kind.BYTES: (BYTES_CHAR_LIMIT, validate_hex),
}


def text_field(schema: SchemaNode) -> Field:
    char_limit, rule = _TEXT_RULES[schema.kind]
    editor = TextInput(placeholder=_placeholder(schema), char_limit=char_limit, validate=rule)
    return Field(schema.name, FieldKind.TEXT, editor)


def build_field(schema: SchemaNode) -> Optional[Field]:
    """Build the Field Node for ``schema``; ``None`` when it cannot be edited."""

    kind = schema.kind
    if kind in _TEXT_RULES:
        return text_field(schema)
    if kind is Kind.BOOL:
        return Field(schema.name, FieldKind.BOOL, ChoicePicker.boolean())
    if kind is Kind.ENUM:
        picker = ChoicePicker.from_pairs([(value.name, str(value.number)) for value in schema.enum_values])
        return Field(schema.name, FieldKind.ENUM, picker)
    if kind is Kind.MESSAGE:
        children, _ = build_fields(schema.children)
        return Field(schema.name, FieldKind.GROUP, FieldGroup(children))
    if kind is Kind.REPEATED:
        if schema.element is None or not _buildable(schema.element):
            return None
        return Field(schema.name, FieldKind.LIST, FieldList(schema.element, build_field))
    if kind is Kind.MAP:
        if schema.key is None or schema.value is None:
            return None
        if not (_buildable(schema.key) and _buildable(schema.value)):
            return None
        return Field(schema.name, FieldKind.MAP, FieldMap(schema.key, schema.value, build_field))
    if kind is Kind.ONEOF:
        alternatives, _ = build_fields(schema.children)
        if not alternatives:
            return None
        return Field(schema.name, FieldKind.ONEOF, FieldOneof(alternatives))
    log.debug("Skipping %s field %s: %s", kind.value, schema.name, schema.reason)
    return None


def _buildable(schema: SchemaNode) -> bool:
    if schema.kind is Kind.UNSUPPORTED:
        return False
    if schema.kind is Kind.ONEOF:
        return any(_buildable(child) for child in schema.children)
    if schema.kind is Kind.REPEATED:
        return schema.element is not None and _buildable(schema.element)
    if schema.kind is Kind.MAP:
        return (
            schema.key is not None
            and schema.value is not None
            and _buildable(schema.key)
            and _buildable(schema.value)
        )
    return True


def build_fields(children: Tuple[SchemaNode, ...]) -> Tuple[List[Field], List[str]]:
    """Build one node per child, returning ``(fields, skipped_names)``."""

    fields: List[Field] = []
    skipped: List[str] = []
    for child in children:
        node = build_field(child)
        if node is None:
            skipped.append(child.name)
        else:
            fields.append(node)
    return fields, skipped


def unsupported_paths(schema: SchemaNode, prefix: str = "") -> List[str]:
    """Dotted names of every entry under ``schema`` left out of the form."""

    paths: List[str] = []
    for child in schema.children:
        path = prefix + child.name
        if child.kind is Kind.ONEOF:
            # oneof members are addressed as siblings of the oneof itself
            paths.extend(unsupported_paths(child, prefix))
        elif not _buildable(child):
            paths.append(path)
        elif child.kind is Kind.MESSAGE:
            paths.extend(unsupported_paths(child, path + "."))
        elif child.kind is Kind.REPEATED and child.element is not None:
            paths.extend(unsupported_paths(child.element, path + "."))
        elif child.kind is Kind.MAP and child.value is not None:
            paths.extend(unsupported_paths(child.value, path + "."))
    return paths


__all__ = [
    "COMPOSITE_KINDS",
    "Field",
    "FieldKind",
    "FormInvariantError",
    "build_field",
    "build_fields",
    "text_field",
    "unsupported_paths",
]
