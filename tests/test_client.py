from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import grpc
import pytest
from conftest import PACKAGE, sample_file_proto
from google.protobuf import message_factory
from google.protobuf.descriptor_pb2 import FileDescriptorSet

from grpcexp.core.client import (
    ClientError,
    GrpcClient,
    InvocationError,
    MethodInfo,
    ProtosetSource,
    split_method,
)
from grpcexp.core.schema import Kind

CALL = f"{PACKAGE}.Echo.Call"
WATCH = f"{PACKAGE}.Echo.Watch"


class FakeRpcError(grpc.RpcError):
    def __init__(self, code: grpc.StatusCode, details: str) -> None:
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self) -> grpc.StatusCode:
        return self._code

    def details(self) -> str:
        return self._details


class FakeChannel:
    """Records calls and answers every one with the same serialized reply."""

    def __init__(self, reply: bytes = b"", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[Any] = []
        self.closed = False

    def _call(self, path, request_serializer, response_deserializer, streaming: bool):
        def invoke(request, timeout=None):
            self.calls.append((path, request_serializer(request), timeout))
            if self.error is not None:
                raise self.error
            response = response_deserializer(self.reply)
            return iter([response, response]) if streaming else response

        return invoke

    def unary_unary(self, path, request_serializer=None, response_deserializer=None):
        return self._call(path, request_serializer, response_deserializer, False)

    def unary_stream(self, path, request_serializer=None, response_deserializer=None):
        return self._call(path, request_serializer, response_deserializer, True)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def protoset(tmp_path: Path) -> Path:
    # well-known imports are left out so they come from the bundled copies
    path = tmp_path / "echo.protoset"
    path.write_bytes(FileDescriptorSet(file=[sample_file_proto()]).SerializeToString())
    return path


def _client(protoset: Path, channel: Optional[FakeChannel] = None) -> GrpcClient:
    return GrpcClient(channel or FakeChannel(), ProtosetSource(str(protoset)))


def _message(client: GrpcClient, type_name: str, **values: Any):
    descriptor = client.source.pool.FindMessageTypeByName(f"{PACKAGE}.{type_name}")
    return message_factory.GetMessageClass(descriptor)(**values)


def test_split_method() -> None:
    assert split_method("pkg.Svc.Method") == ("pkg.Svc", "Method")
    assert split_method("pkg.Svc/Method") == ("pkg.Svc", "Method")
    with pytest.raises(ClientError):
        split_method("Method")


def test_method_info_streaming_labels() -> None:
    assert MethodInfo("a.S.M", "a.In", "a.Out").streaming == "unary"
    assert MethodInfo("a.S.M", "a.In", "a.Out", server_streaming=True).streaming == "server-streaming"
    assert MethodInfo("a.S.M", "a.In", "a.Out", True, True).streaming == "bidi-streaming"
    assert MethodInfo("a.S.M", "a.In", "a.Out").name == "M"


def test_protoset_lists_services_and_methods(protoset: Path) -> None:
    client = _client(protoset)
    assert client.list_services() == [f"{PACKAGE}.Echo"]
    methods = client.list_methods(f"{PACKAGE}.Echo")
    assert [info.full_name for info in methods] == [CALL, WATCH]
    assert methods[0].input_type == f"{PACKAGE}.Request"
    assert methods[1].streaming == "server-streaming"


def test_resolve_input_schema(protoset: Path) -> None:
    schema = _client(protoset).resolve_input_schema(CALL)
    assert schema.kind is Kind.MESSAGE
    assert schema.type_name == f"{PACKAGE}.Request"
    ttl = next(child for child in schema.children if child.name == "ttl")
    assert ttl.kind is Kind.DURATION


def test_unknown_service_and_method(protoset: Path) -> None:
    client = _client(protoset)
    with pytest.raises(ClientError, match="service not found"):
        client.list_methods("nope.Svc")
    with pytest.raises(ClientError, match="method not found"):
        client.resolve_input_schema(f"{PACKAGE}.Echo.Missing")


def test_missing_protoset_file(tmp_path: Path) -> None:
    with pytest.raises(ClientError, match="failed to load protoset file"):
        ProtosetSource(str(tmp_path / "missing.protoset"))


def test_invoke_unary_returns_json(protoset: Path) -> None:
    channel = FakeChannel()
    client = _client(protoset, channel)
    channel.reply = _message(client, "Inner", name="pong", count=2).SerializeToString()

    result = client.invoke(CALL, {"name": "ping", "count": "7", "ttl": ""}, timeout=5.0)

    assert json.loads(result) == {"name": "pong", "count": 2}
    path, sent, timeout = channel.calls[0]
    assert path == f"/{PACKAGE}.Echo/Call"
    assert timeout == 5.0
    request = _message(client, "Request")
    request.ParseFromString(sent)
    assert (request.name, request.count) == ("ping", 7)
    assert not request.HasField("ttl")


def test_invoke_server_streaming_joins_responses(protoset: Path) -> None:
    channel = FakeChannel()
    client = _client(protoset, channel)
    channel.reply = _message(client, "Inner", name="tick").SerializeToString()

    result = client.invoke(WATCH, {"name": ""}, timeout=1.0)
    documents = result.split("\n}\n")
    assert len(documents) == 2
    assert '"name": "tick"' in documents[0]


def test_invoke_reports_rpc_errors(protoset: Path) -> None:
    channel = FakeChannel(error=FakeRpcError(grpc.StatusCode.UNAVAILABLE, "down"))
    client = _client(protoset, channel)
    with pytest.raises(InvocationError) as excinfo:
        client.invoke(CALL, {}, timeout=1.0)
    assert str(excinfo.value) == "RPC error: UNAVAILABLE: down"


def test_invoke_reports_bad_payload(protoset: Path) -> None:
    channel = FakeChannel()
    client = _client(protoset, channel)
    with pytest.raises(InvocationError, match="failed to build request"):
        client.invoke(CALL, {"count": "12x"}, timeout=1.0)
    assert channel.calls == []


def test_invoke_unknown_method(protoset: Path) -> None:
    with pytest.raises(InvocationError, match="method not found"):
        _client(protoset).invoke(f"{PACKAGE}.Echo.Missing", {}, timeout=1.0)


def test_client_closes_channel(protoset: Path) -> None:
    channel = FakeChannel()
    with _client(protoset, channel):
        pass
    assert channel.closed
