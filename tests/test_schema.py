from __future__ import annotations

import pytest

from grpcexp.core.schema import (
    MAX_NESTING,
    EnumValue,
    Kind,
    map_of,
    message,
    repeated,
    scalar,
    schema_from_descriptor,
)
from grpcexp.form.controller import FormController


def _children(node):
    return {child.name: child for child in node.children}


def test_descriptor_fields_keep_declaration_order(request_descriptor) -> None:
    schema = schema_from_descriptor(request_descriptor)
    assert schema.kind is Kind.MESSAGE
    assert schema.type_name == "grpcexp.test.Request"
    assert [child.name for child in schema.children] == [
        "name",
        "enabled",
        "count",
        "limit",
        "ratio",
        "blob",
        "color",
        "inner",
        "tags",
        "labels",
        "choice",
        "created",
        "ttl",
        "nickname",
        "node",
        "codes",
    ]


def test_scalar_kinds_and_type_names(request_descriptor) -> None:
    children = _children(schema_from_descriptor(request_descriptor))
    expected = {
        "name": (Kind.STRING, "string"),
        "enabled": (Kind.BOOL, "bool"),
        "count": (Kind.INT, "int64"),
        "limit": (Kind.UINT, "uint32"),
        "ratio": (Kind.FLOAT, "double"),
        "blob": (Kind.BYTES, "bytes"),
        "created": (Kind.TIMESTAMP, "google.protobuf.Timestamp"),
        "ttl": (Kind.DURATION, "google.protobuf.Duration"),
        "nickname": (Kind.STRING, "string"),
    }
    for name, (kind, type_name) in expected.items():
        assert (children[name].kind, children[name].type_name) == (kind, type_name), name


def test_enum_values(request_descriptor) -> None:
    color = _children(schema_from_descriptor(request_descriptor))["color"]
    assert color.kind is Kind.ENUM
    assert color.enum_values == (
        EnumValue("COLOR_UNSPECIFIED", 0),
        EnumValue("RED", 1),
        EnumValue("GREEN", 2),
    )


def test_composite_shapes(request_descriptor) -> None:
    children = _children(schema_from_descriptor(request_descriptor))

    inner = children["inner"]
    assert inner.kind is Kind.MESSAGE
    assert [child.name for child in inner.children] == ["name", "count"]

    tags = children["tags"]
    assert tags.kind is Kind.REPEATED
    assert tags.element.kind is Kind.STRING

    labels = children["labels"]
    assert labels.kind is Kind.MAP
    assert (labels.key.name, labels.key.kind) == ("key", Kind.STRING)
    assert (labels.value.name, labels.value.kind) == ("value", Kind.INT)

    choice = children["choice"]
    assert choice.kind is Kind.ONEOF
    assert [child.name for child in choice.children] == ["x", "y"]


def test_recursive_messages_stop_at_nesting_limit(request_descriptor) -> None:
    current = _children(schema_from_descriptor(request_descriptor))["node"]
    hops = 0
    while current.kind is Kind.MESSAGE:
        current = _children(current)["child"]
        hops += 1
    assert current.kind is Kind.UNSUPPORTED
    assert current.reason == "nesting limit reached"
    assert hops == MAX_NESTING


def test_form_from_descriptor_reports_truncated_recursion(request_descriptor) -> None:
    form = FormController("grpcexp.test.Echo.Call", schema_from_descriptor(request_descriptor))
    form.init()
    assert len(form.unsupported) == 1
    path = form.unsupported[0]
    assert path.startswith("node.child.")
    assert path.count("child") == MAX_NESTING
    assert form.input_type == "grpcexp.test.Request"


def test_factories_rename_nested_schemas() -> None:
    tags = repeated("tags", scalar("element", Kind.STRING))
    assert tags.element.name == "tags"
    assert tags.type_name == "string"

    labels = map_of("labels", scalar("k", Kind.STRING), scalar("v", Kind.INT))
    assert (labels.key.name, labels.value.name) == ("key", "value")

    node = message("m", scalar("a", Kind.STRING))
    assert node.renamed("n").children == node.children
    assert not node.is_scalar
    assert scalar("a", Kind.DURATION).is_scalar


def test_scalar_factory_rejects_non_scalars() -> None:
    with pytest.raises(ValueError):
        scalar("e", Kind.ENUM)
    with pytest.raises(ValueError):
        scalar("m", Kind.MESSAGE)
