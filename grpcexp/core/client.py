"""gRPC client: descriptor sources, method listing and dynamic invocation.

Descriptors come from the server's reflection service or from a protoset
file (a serialized ``FileDescriptorSet``). Either way they are loaded into a
private :class:`~google.protobuf.descriptor_pool.DescriptorPool`, from which
request and response classes are built on demand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import grpc
from google.protobuf import descriptor_pool, json_format, message_factory
from google.protobuf.descriptor_pb2 import FileDescriptorProto, FileDescriptorSet
from grpc_reflection.v1alpha import reflection_pb2, reflection_pb2_grpc

# registers the well-known types with the default pool
from google.protobuf import (  # noqa: F401
    any_pb2,
    duration_pb2,
    empty_pb2,
    field_mask_pb2,
    struct_pb2,
    timestamp_pb2,
    wrappers_pb2,
)

from .. import __version__
from .payload import coerce_request
from .schema import SchemaNode, schema_from_descriptor

log = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 10.0


class ClientError(RuntimeError):
    """Raised when the client cannot reach or describe the server."""


class InvocationError(RuntimeError):
    """Raised when a call fails; the message is shown verbatim."""


@dataclass
class ClientConfig:
    target: str
    tls: bool = False
    protoset: Optional[str] = None
    user_agent: str = f"grpcexp/{__version__}"
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT


@dataclass(frozen=True)
class MethodInfo:
    full_name: str
    input_type: str
    output_type: str
    client_streaming: bool = False
    server_streaming: bool = False

    @property
    def name(self) -> str:
        return self.full_name.rsplit(".", 1)[-1]

    @property
    def streaming(self) -> str:
        if self.client_streaming and self.server_streaming:
            return "bidi-streaming"
        if self.server_streaming:
            return "server-streaming"
        if self.client_streaming:
            return "client-streaming"
        return "unary"


def split_method(full_name: str) -> tuple:
    """``pkg.Svc.Method`` or ``pkg.Svc/Method`` -> ``(service, method)``."""

    separator = "/" if "/" in full_name else "."
    service, _, method = full_name.rpartition(separator)
    if not service or not method:
        raise ClientError(f"invalid method name: {full_name!r}")
    return service, method


def _bundled_file(name: str) -> Optional[FileDescriptorProto]:
    try:
        descriptor = descriptor_pool.Default().FindFileByName(name)
    except KeyError:
        return None
    proto = FileDescriptorProto()
    descriptor.CopyToProto(proto)
    return proto


def _rpc_error_text(exc: grpc.RpcError) -> str:
    code = getattr(exc, "code", None)
    details = getattr(exc, "details", None)
    if callable(code) and callable(details):
        return f"{code().name}: {details()}"
    return str(exc)


# ---------------------------------------------------------------------------
# Descriptor sources
# ---------------------------------------------------------------------------


class DescriptorSource:
    """A private descriptor pool filled from ``FileDescriptorProto`` messages."""

    def __init__(self) -> None:
        self.pool = descriptor_pool.DescriptorPool()
        self._loaded: set = set()

    def list_services(self) -> List[str]:
        raise NotImplementedError

    def find_service(self, name: str) -> Any:
        try:
            return self.pool.FindServiceByName(name)
        except KeyError:
            self._load_symbol(name)
        try:
            return self.pool.FindServiceByName(name)
        except KeyError as exc:
            raise ClientError(f"service not found: {name}") from exc

    def _load_symbol(self, name: str) -> None:
        raise NotImplementedError

    def _fetch_file(self, name: str) -> Optional[FileDescriptorProto]:
        return None

    def _add_files(self, protos: Dict[str, FileDescriptorProto]) -> None:
        """Add ``protos`` to the pool with every dependency added first."""

        def add(name: str, proto: Optional[FileDescriptorProto]) -> None:
            if name in self._loaded:
                return
            if proto is None:
                proto = self._fetch_file(name) or _bundled_file(name)
            if proto is None:
                raise ClientError(f"missing descriptor for {name}")
            self._loaded.add(name)
            for dependency in proto.dependency:
                add(dependency, protos.get(dependency))
            self.pool.AddSerializedFile(proto.SerializeToString())
            log.debug("Loaded descriptor file %s", name)

        for name, proto in protos.items():
            add(name, proto)


class ReflectionSource(DescriptorSource):
    """Descriptors fetched through ``grpc.reflection.v1alpha``."""

    def __init__(self, channel: grpc.Channel) -> None:
        super().__init__()
        self._stub = reflection_pb2_grpc.ServerReflectionStub(channel)

    def _request(self, **query: str) -> List[Any]:
        request = reflection_pb2.ServerReflectionRequest(**query)
        try:
            responses = list(self._stub.ServerReflectionInfo(iter([request])))
        except grpc.RpcError as exc:
            raise ClientError(f"server reflection unavailable: {_rpc_error_text(exc)}") from exc
        for response in responses:
            if response.HasField("error_response"):
                raise ClientError(response.error_response.error_message)
        return responses

    def _file_protos(self, **query: str) -> Dict[str, FileDescriptorProto]:
        protos: Dict[str, FileDescriptorProto] = {}
        for response in self._request(**query):
            if not response.HasField("file_descriptor_response"):
                continue
            for blob in response.file_descriptor_response.file_descriptor_proto:
                proto = FileDescriptorProto.FromString(blob)
                protos[proto.name] = proto
        return protos

    def list_services(self) -> List[str]:
        names: List[str] = []
        for response in self._request(list_services=""):
            if response.HasField("list_services_response"):
                names.extend(service.name for service in response.list_services_response.service)
        return names

    def _load_symbol(self, name: str) -> None:
        self._add_files(self._file_protos(file_containing_symbol=name))

    def _fetch_file(self, name: str) -> Optional[FileDescriptorProto]:
        try:
            protos = self._file_protos(file_by_filename=name)
        except ClientError:
            log.debug("Server does not serve %s; using the bundled copy", name)
            return None
        return protos.get(name)


class ProtosetSource(DescriptorSource):
    """Descriptors read from a compiled protoset file."""

    def __init__(self, path: str) -> None:
        super().__init__()
        try:
            data = Path(path).expanduser().read_bytes()
        except OSError as exc:
            raise ClientError(f"failed to load protoset file: {exc}") from exc
        try:
            descriptor_set = FileDescriptorSet.FromString(data)
        except Exception as exc:  # protobuf raises DecodeError subclasses per backend
            raise ClientError(f"failed to load protoset file: {exc}") from exc
        self._files = {proto.name: proto for proto in descriptor_set.file}
        self._add_files(self._files)

    def list_services(self) -> List[str]:
        names: List[str] = []
        for proto in self._files.values():
            for service in proto.service:
                names.append(f"{proto.package}.{service.name}" if proto.package else service.name)
        return names

    def _load_symbol(self, name: str) -> None:
        return None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GrpcClient:
    """Lists services and methods and invokes them with dynamic messages."""

    def __init__(self, channel: grpc.Channel, source: DescriptorSource) -> None:
        self.channel = channel
        self.source = source

    @classmethod
    def connect(cls, config: ClientConfig) -> "GrpcClient":
        options = [("grpc.primary_user_agent", config.user_agent)]
        if config.tls:
            channel = grpc.secure_channel(config.target, grpc.ssl_channel_credentials(), options=options)
        else:
            channel = grpc.insecure_channel(config.target, options=options)
        try:
            grpc.channel_ready_future(channel).result(timeout=config.connect_timeout)
        except grpc.FutureTimeoutError as exc:
            channel.close()
            raise ClientError(f"failed to connect to {config.target}") from exc

        if config.protoset:
            source: DescriptorSource = ProtosetSource(config.protoset)
        else:
            source = ReflectionSource(channel)
        log.info("Connected to %s (tls=%s protoset=%s)", config.target, config.tls, config.protoset)
        return cls(channel, source)

    def close(self) -> None:
        self.channel.close()

    def __enter__(self) -> "GrpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- schema provider ------------------------------------------------------

    def list_services(self) -> List[str]:
        return sorted(self.source.list_services())

    def list_methods(self, service: str) -> List[MethodInfo]:
        descriptor = self.source.find_service(service)
        methods = [
            MethodInfo(
                full_name=method.full_name,
                input_type=method.input_type.full_name,
                output_type=method.output_type.full_name,
                client_streaming=method.client_streaming,
                server_streaming=method.server_streaming,
            )
            for method in descriptor.methods
        ]
        return sorted(methods, key=lambda info: info.full_name)

    def method_descriptor(self, full_name: str) -> Any:
        service_name, method_name = split_method(full_name)
        service = self.source.find_service(service_name)
        method = service.methods_by_name.get(method_name)
        if method is None:
            raise ClientError(f"method not found: {full_name}")
        return method

    def resolve_input_schema(self, full_name: str) -> SchemaNode:
        method = self.method_descriptor(full_name)
        return schema_from_descriptor(method.input_type)

    # -- invocation -----------------------------------------------------------

    def invoke(self, full_name: str, payload: Dict[str, Any], timeout: float) -> str:
        """Call ``full_name`` with one request built from ``payload``.

        Returns the response(s) as indented JSON text; raises
        :class:`InvocationError` on any failure.
        """

        try:
            method = self.method_descriptor(full_name)
        except ClientError as exc:
            raise InvocationError(str(exc)) from exc

        request_class = message_factory.GetMessageClass(method.input_type)
        response_class = message_factory.GetMessageClass(method.output_type)
        try:
            request = json_format.ParseDict(coerce_request(method.input_type, payload), request_class())
        except json_format.ParseError as exc:
            raise InvocationError(f"failed to build request: {exc}") from exc

        path = f"/{method.containing_service.full_name}/{method.name}"
        call = self._callable(method, path, response_class.FromString)
        single: Callable[[], Iterable[Any]]
        if method.client_streaming:
            single = lambda: iter([request])  # noqa: E731
        else:
            single = lambda: request  # noqa: E731

        try:
            result = call(single(), timeout=timeout)
            responses = list(result) if method.server_streaming else [result]
        except grpc.RpcError as exc:
            raise InvocationError(f"RPC error: {_rpc_error_text(exc)}") from exc

        return "\n".join(
            json_format.MessageToJson(response, preserving_proto_field_name=True, indent=2)
            for response in responses
        )

    def _callable(self, method: Any, path: str, deserializer: Callable[[bytes], Any]) -> Any:
        serializer = lambda message: message.SerializeToString()  # noqa: E731
        if method.client_streaming and method.server_streaming:
            factory = self.channel.stream_stream
        elif method.client_streaming:
            factory = self.channel.stream_unary
        elif method.server_streaming:
            factory = self.channel.unary_stream
        else:
            factory = self.channel.unary_unary
        return factory(path, request_serializer=serializer, response_deserializer=deserializer)


__all__ = [
    "ClientConfig",
    "ClientError",
    "DescriptorSource",
    "GrpcClient",
    "InvocationError",
    "MethodInfo",
    "ProtosetSource",
    "ReflectionSource",
    "split_method",
]
