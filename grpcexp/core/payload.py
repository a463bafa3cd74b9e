"""Coerce a materialized form value into protobuf JSON for ``ParseDict``.

Form values are nested dicts, lists and raw strings. Protobuf's JSON parser
wants real booleans and numbers, base64 for bytes, and no entries for
fields the operator left empty.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List

from google.protobuf.descriptor import FieldDescriptor

from .schema import DURATION_TYPE, TIMESTAMP_TYPE, is_map, is_repeated

_ABSENT = object()

_INT_TYPES = frozenset(
    {
        FieldDescriptor.TYPE_INT32,
        FieldDescriptor.TYPE_INT64,
        FieldDescriptor.TYPE_SINT32,
        FieldDescriptor.TYPE_SINT64,
        FieldDescriptor.TYPE_SFIXED32,
        FieldDescriptor.TYPE_SFIXED64,
        FieldDescriptor.TYPE_UINT32,
        FieldDescriptor.TYPE_UINT64,
        FieldDescriptor.TYPE_FIXED32,
        FieldDescriptor.TYPE_FIXED64,
    }
)
_FLOAT_TYPES = frozenset({FieldDescriptor.TYPE_FLOAT, FieldDescriptor.TYPE_DOUBLE})

_FLOAT_WORDS = {
    "nan": "NaN",
    "inf": "Infinity",
    "+inf": "Infinity",
    "infinity": "Infinity",
    "+infinity": "Infinity",
    "-inf": "-Infinity",
    "-infinity": "-Infinity",
}

_WELL_KNOWN_ZERO = {
    TIMESTAMP_TYPE: "1970-01-01T00:00:00Z",
    DURATION_TYPE: "0s",
}


def coerce_request(descriptor: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``payload`` converted for ``json_format.ParseDict``."""

    return _coerce_message(descriptor, payload)


def _coerce_message(descriptor: Any, values: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for name, raw in values.items():
        field = descriptor.fields_by_name.get(name)
        if field is None:
            # left for ParseDict to reject
            result[name] = raw
            continue
        if is_map(field):
            result[name] = _coerce_map(field, raw)
        elif is_repeated(field):
            result[name] = _coerce_list(field, raw)
        else:
            coerced = _coerce_single(field, raw)
            if coerced is not _ABSENT:
                result[name] = coerced
    return result


def _coerce_list(field: Any, raw: Any) -> Any:
    if not isinstance(raw, list):
        return raw
    items: List[Any] = []
    for item in raw:
        coerced = _coerce_single(field, item)
        if coerced is not _ABSENT:
            items.append(coerced)
    return items


def _coerce_map(field: Any, raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    entry = field.message_type
    key_field = entry.fields_by_name["key"]
    value_field = entry.fields_by_name["value"]
    result: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "" and key_field.type != FieldDescriptor.TYPE_STRING:
            continue
        coerced = _coerce_single(value_field, value)
        result[key] = _zero_value(value_field) if coerced is _ABSENT else coerced
    return result


def _coerce_single(field: Any, raw: Any) -> Any:
    field_type = field.type
    if field_type == FieldDescriptor.TYPE_MESSAGE:
        if field.message_type.full_name in _WELL_KNOWN_ZERO:
            return _ABSENT if raw == "" else raw
        if isinstance(raw, dict):
            return _coerce_message(field.message_type, raw)
        return raw
    if field_type == FieldDescriptor.TYPE_STRING or not isinstance(raw, str):
        return raw
    if raw == "":
        return _ABSENT
    if field_type == FieldDescriptor.TYPE_BOOL:
        return raw == "true"
    if field_type in _INT_TYPES or field_type == FieldDescriptor.TYPE_ENUM:
        try:
            return int(raw)
        except ValueError:
            return raw
    if field_type in _FLOAT_TYPES:
        word = _FLOAT_WORDS.get(raw.lower())
        if word is not None:
            return word
        try:
            return float(raw)
        except ValueError:
            return raw
    if field_type == FieldDescriptor.TYPE_BYTES:
        try:
            return base64.b64encode(bytes.fromhex(raw)).decode("ascii")
        except ValueError:
            return raw
    return raw


def _zero_value(field: Any) -> Any:
    field_type = field.type
    if field_type == FieldDescriptor.TYPE_MESSAGE:
        return _WELL_KNOWN_ZERO.get(field.message_type.full_name, {})
    if field_type == FieldDescriptor.TYPE_BOOL:
        return False
    if field_type in _INT_TYPES or field_type == FieldDescriptor.TYPE_ENUM:
        return 0
    if field_type in _FLOAT_TYPES:
        return 0.0
    return ""


__all__ = ["coerce_request"]
