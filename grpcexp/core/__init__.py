"""Schema provider and invocation collaborator backed by gRPC."""

from .client import ClientConfig, ClientError, GrpcClient, InvocationError, MethodInfo
from .payload import coerce_request
from .schema import Kind, SchemaNode, schema_from_descriptor

__all__ = [
    "ClientConfig",
    "ClientError",
    "GrpcClient",
    "InvocationError",
    "Kind",
    "MethodInfo",
    "SchemaNode",
    "coerce_request",
    "schema_from_descriptor",
]
