from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator, Sequence

import pytest
from google.protobuf import descriptor_pool, duration_pb2, timestamp_pb2
from google.protobuf.descriptor_pb2 import (
    DescriptorProto,
    EnumDescriptorProto,
    EnumValueDescriptorProto,
    FieldDescriptorProto,
    FileDescriptorProto,
    MessageOptions,
    MethodDescriptorProto,
    OneofDescriptorProto,
    ServiceDescriptorProto,
)


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from grpcexp.form.styles import Line  # noqa: E402
from grpcexp.utils import logbook  # noqa: E402

TEST_FILE = "grpcexp_test.proto"
PACKAGE = "grpcexp.test"

F = FieldDescriptorProto


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.setenv("GRPCEXP_STATE_DIR", str(tmp_path))
    logbook.reset()
    yield tmp_path
    logbook.reset()


def _field(name: str, number: int, field_type: int, *, label: int = F.LABEL_OPTIONAL, **extra: object) -> F:
    return F(name=name, number=number, type=field_type, label=label, **extra)


def _message_field(name: str, number: int, type_name: str, **extra: object) -> F:
    return _field(name, number, F.TYPE_MESSAGE, type_name=type_name, **extra)


def _map_entry(name: str, key_type: int, value_type: int) -> DescriptorProto:
    return DescriptorProto(
        name=name,
        field=[_field("key", 1, key_type), _field("value", 2, value_type)],
        options=MessageOptions(map_entry=True),
    )


def sample_file_proto() -> FileDescriptorProto:
    """A proto3 file exercising every shape the form engine supports."""

    color = EnumDescriptorProto(
        name="Color",
        value=[
            EnumValueDescriptorProto(name="COLOR_UNSPECIFIED", number=0),
            EnumValueDescriptorProto(name="RED", number=1),
            EnumValueDescriptorProto(name="GREEN", number=2),
        ],
    )
    inner = DescriptorProto(
        name="Inner",
        field=[_field("name", 1, F.TYPE_STRING), _field("count", 2, F.TYPE_INT32)],
    )
    node = DescriptorProto(
        name="Node",
        field=[
            _field("value", 1, F.TYPE_STRING),
            _message_field("child", 2, f".{PACKAGE}.Node"),
        ],
    )
    request = DescriptorProto(
        name="Request",
        field=[
            _field("name", 1, F.TYPE_STRING),
            _field("enabled", 2, F.TYPE_BOOL),
            _field("count", 3, F.TYPE_INT64),
            _field("limit", 4, F.TYPE_UINT32),
            _field("ratio", 5, F.TYPE_DOUBLE),
            _field("blob", 6, F.TYPE_BYTES),
            _field("color", 7, F.TYPE_ENUM, type_name=f".{PACKAGE}.Color"),
            _message_field("inner", 8, f".{PACKAGE}.Inner"),
            _field("tags", 9, F.TYPE_STRING, label=F.LABEL_REPEATED),
            _message_field(
                "labels", 10, f".{PACKAGE}.Request.LabelsEntry", label=F.LABEL_REPEATED
            ),
            _field("x", 11, F.TYPE_STRING, oneof_index=0),
            _field("y", 12, F.TYPE_INT32, oneof_index=0),
            _message_field("created", 13, ".google.protobuf.Timestamp"),
            _message_field("ttl", 14, ".google.protobuf.Duration"),
            _field("nickname", 15, F.TYPE_STRING, oneof_index=1, proto3_optional=True),
            _message_field("node", 16, f".{PACKAGE}.Node"),
            _message_field(
                "codes", 17, f".{PACKAGE}.Request.CodesEntry", label=F.LABEL_REPEATED
            ),
        ],
        nested_type=[
            _map_entry("LabelsEntry", F.TYPE_STRING, F.TYPE_INT32),
            _map_entry("CodesEntry", F.TYPE_INT32, F.TYPE_STRING),
        ],
        oneof_decl=[OneofDescriptorProto(name="choice"), OneofDescriptorProto(name="_nickname")],
    )
    service = ServiceDescriptorProto(
        name="Echo",
        method=[
            MethodDescriptorProto(
                name="Call",
                input_type=f".{PACKAGE}.Request",
                output_type=f".{PACKAGE}.Inner",
            ),
            MethodDescriptorProto(
                name="Watch",
                input_type=f".{PACKAGE}.Inner",
                output_type=f".{PACKAGE}.Inner",
                server_streaming=True,
            ),
        ],
    )
    return FileDescriptorProto(
        name=TEST_FILE,
        package=PACKAGE,
        syntax="proto3",
        dependency=["google/protobuf/timestamp.proto", "google/protobuf/duration.proto"],
        message_type=[inner, node, request],
        enum_type=[color],
        service=[service],
    )




def well_known_protos() -> Sequence[FileDescriptorProto]:
    protos = []
    for module in (timestamp_pb2, duration_pb2):
        proto = FileDescriptorProto()
        module.DESCRIPTOR.CopyToProto(proto)
        protos.append(proto)
    return protos


def build_test_pool() -> descriptor_pool.DescriptorPool:
    pool = descriptor_pool.DescriptorPool()
    for proto in well_known_protos():
        pool.AddSerializedFile(proto.SerializeToString())
    pool.AddSerializedFile(sample_file_proto().SerializeToString())
    return pool


@pytest.fixture(scope="session")
def test_pool() -> descriptor_pool.DescriptorPool:
    return build_test_pool()


@pytest.fixture()
def request_descriptor(test_pool: descriptor_pool.DescriptorPool):
    return test_pool.FindMessageTypeByName(f"{PACKAGE}.Request")


def focus_label(lines: Sequence[Line]) -> str:
    """Label of the deepest focused row, e.g. ``"name"`` or ``"[+] Add"``."""

    focused = [line for line in lines if line.focus]
    assert focused, "nothing is focused"
    text = focused[-1].text.strip()
    if text.startswith("> "):
        text = text[2:]
    return text.split(":", 1)[0]
