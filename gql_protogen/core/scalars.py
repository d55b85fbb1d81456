"""Scalar handlers mapping GraphQL scalars to proto3 types.

Each handler names the proto type used for a non-null value and, when one
exists, the well-known wrapper type used for a nullable value.

Example usage:
    from gql_protogen.core.scalars import CustomScalarHandler, ScalarRegistry

    registry = ScalarRegistry()
    registry.register("DateTime", CustomScalarHandler("google.protobuf.Timestamp"))

    handler = registry.get("DateTime")
    handler.type_for(nullable=True)   # "google.protobuf.Timestamp"
"""

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

WRAPPERS_IMPORT = "google/protobuf/wrappers.proto"

# Imports needed by well-known types that a scalar may map to
WELL_KNOWN_IMPORTS = {
    "google.protobuf.StringValue": WRAPPERS_IMPORT,
    "google.protobuf.Int32Value": WRAPPERS_IMPORT,
    "google.protobuf.Int64Value": WRAPPERS_IMPORT,
    "google.protobuf.UInt32Value": WRAPPERS_IMPORT,
    "google.protobuf.UInt64Value": WRAPPERS_IMPORT,
    "google.protobuf.DoubleValue": WRAPPERS_IMPORT,
    "google.protobuf.FloatValue": WRAPPERS_IMPORT,
    "google.protobuf.BoolValue": WRAPPERS_IMPORT,
    "google.protobuf.BytesValue": WRAPPERS_IMPORT,
    "google.protobuf.Timestamp": "google/protobuf/timestamp.proto",
    "google.protobuf.Duration": "google/protobuf/duration.proto",
    "google.protobuf.Struct": "google/protobuf/struct.proto",
    "google.protobuf.Value": "google/protobuf/struct.proto",
    "google.protobuf.ListValue": "google/protobuf/struct.proto",
    "google.protobuf.Any": "google/protobuf/any.proto",
    "google.protobuf.Empty": "google/protobuf/empty.proto",
}


@runtime_checkable
class ScalarHandler(Protocol):
    """Protocol for scalar handlers.

    Attributes:
        proto_type: The proto type for a non-null value (e.g. "string")
        wrapper_type: The proto type for a nullable value, or None to use
                      proto_type for both
    """

    proto_type: str
    wrapper_type: str | None

    def type_for(self, nullable: bool) -> str:
        """Return the proto type for a value of the given nullability."""
        ...


class BuiltinScalarHandler:
    """Handler for scalars with a proto primitive and a wrapper type."""

    def __init__(self, proto_type: str, wrapper_type: str):
        self.proto_type = proto_type
        self.wrapper_type = wrapper_type

    def type_for(self, nullable: bool) -> str:
        return self.wrapper_type if nullable else self.proto_type


class CustomScalarHandler:
    """Handler for a user mapping such as "DateTime" -> "google.protobuf.Timestamp".

    Message types are already nullable on the wire, so no wrapper is used.
    Mapping to a proto primitive that has a wrapper (e.g. "int64") still
    wraps nullable values.
    """

    _PRIMITIVE_WRAPPERS = {
        "string": "google.protobuf.StringValue",
        "int32": "google.protobuf.Int32Value",
        "int64": "google.protobuf.Int64Value",
        "uint32": "google.protobuf.UInt32Value",
        "uint64": "google.protobuf.UInt64Value",
        "double": "google.protobuf.DoubleValue",
        "float": "google.protobuf.FloatValue",
        "bool": "google.protobuf.BoolValue",
        "bytes": "google.protobuf.BytesValue",
    }

    def __init__(self, proto_type: str):
        self.proto_type = proto_type
        self.wrapper_type = self._PRIMITIVE_WRAPPERS.get(proto_type)

    def type_for(self, nullable: bool) -> str:
        if nullable and self.wrapper_type:
            return self.wrapper_type
        return self.proto_type


class ScalarRegistry:
    """Registry for scalar handlers.

    Built-in GraphQL scalars are registered by default. Scalars without a
    handler fall back to strings, which is how custom scalars travel in a
    GraphQL response anyway.

    Example:
        registry = ScalarRegistry.from_mapping({"BigInt": "int64"})
        registry.get("BigInt").type_for(nullable=False)  # "int64"
    """

    def __init__(self):
        self._handlers: dict[str, ScalarHandler] = {}
        self._register_defaults()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "ScalarRegistry":
        """Create a registry with custom scalar -> proto type mappings added."""
        registry = cls()
        for scalar_name, proto_type in mapping.items():
            registry.register(scalar_name, CustomScalarHandler(proto_type))
        return registry

    def _register_defaults(self):
        """Register built-in default handlers."""
        self.register("ID", BuiltinScalarHandler("string", "google.protobuf.StringValue"))
        self.register("String", BuiltinScalarHandler("string", "google.protobuf.StringValue"))
        self.register("Int", BuiltinScalarHandler("int32", "google.protobuf.Int32Value"))
        self.register("Float", BuiltinScalarHandler("double", "google.protobuf.DoubleValue"))
        self.register("Boolean", BuiltinScalarHandler("bool", "google.protobuf.BoolValue"))

    def register(self, scalar_name: str, handler: ScalarHandler):
        """Register a handler for a scalar type."""
        self._handlers[scalar_name] = handler

    def get(self, scalar_name: str) -> ScalarHandler:
        """Get the handler for a scalar type, falling back to the String handler."""
        return self._handlers.get(scalar_name, self._handlers["String"])

    def has(self, scalar_name: str) -> bool:
        """Check if a handler is registered for a scalar type."""
        return scalar_name in self._handlers

    @staticmethod
    def import_for(proto_type: str) -> str | None:
        """Return the import a proto type needs, or None for primitives."""
        return WELL_KNOWN_IMPORTS.get(proto_type)
