"""Intermediate Representation (IR) for compiled proto3 services.

This module defines dataclasses that sit between the GraphQL inputs and
the rendered proto3 text. The compiler produces them, render hooks may
reshape them, and the generator turns them into IDL.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OperationDescriptor:
    """One GraphQL operation document handed to the compiler.

    `locator` identifies the source (usually a relative file path) and is
    used in error messages; `name` is used as the RPC name when the
    operation itself is anonymous.
    """
    name: str
    content: str
    locator: str = ""


def local_type_name(type_name: str) -> str:
    """Strip the package from a fully-qualified reference (".users.v1.Role" -> "Role")."""
    if type_name.startswith("."):
        return type_name.rsplit(".", 1)[-1]
    return type_name


@dataclass
class ProtoField:
    """A single field inside a proto message.

    `package_level` marks references to top-level types of the generated
    package (enums and input messages), as opposed to nested messages and
    scalars. Only those can be hidden by a nested message of the same name.
    """
    name: str
    type_name: str
    number: int
    repeated: bool = False
    comment: str | None = None
    package_level: bool = False


@dataclass
class ProtoOneof:
    """A oneof group; its fields share the number space of the enclosing message."""
    name: str
    fields: list[ProtoField] = field(default_factory=list)


@dataclass
class ProtoMessage:
    """A proto message, possibly holding nested message definitions.

    `full_name` is the dotted path used as the key in the field number
    lock, e.g. "GetUserResponse.User" for a nested message.
    """
    name: str
    fields: list[ProtoField] = field(default_factory=list)
    nested: list["ProtoMessage"] = field(default_factory=list)
    full_name: str = ""
    comment: str | None = None
    oneofs: list[ProtoOneof] = field(default_factory=list)

    def __post_init__(self):
        if not self.full_name:
            self.full_name = self.name

    def all_fields(self) -> list[ProtoField]:
        """Return plain fields followed by the fields of every oneof."""
        return self.fields + [f for oneof in self.oneofs for f in oneof.fields]

    def referenced_types(self) -> set[str]:
        """Return every type name used by this message or its nested messages."""
        names = {local_type_name(f.type_name) for f in self.all_fields()}
        for message in self.nested:
            names |= message.referenced_types()
        return names


@dataclass
class ProtoEnumValue:
    """A single value of a proto enum."""
    name: str
    number: int
    comment: str | None = None


@dataclass
class ProtoEnum:
    """A proto enum. The zero value is always the UNSPECIFIED placeholder."""
    name: str
    values: list[ProtoEnumValue]
    comment: str | None = None


@dataclass
class RpcMethod:
    """An RPC on the generated service, one per GraphQL operation."""
    name: str
    request_type: str
    response_type: str
    operation_type: str = "query"  # 'query', 'mutation' or 'subscription'
    idempotency_level: str | None = None
    server_streaming: bool = False
    comment: str | None = None


@dataclass
class CompiledService:
    """Complete compiled form of a proto3 service definition."""
    service_name: str
    package_name: str
    methods: list[RpcMethod] = field(default_factory=list)
    messages: list[ProtoMessage] = field(default_factory=list)
    enums: list[ProtoEnum] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    # Language namespace options, e.g. {"go_package": "example.com/users"}
    options: dict[str, str] = field(default_factory=dict)

    def get_message(self, name: str) -> ProtoMessage | None:
        """Look up a top-level message by name."""
        for message in self.messages:
            if message.name == name:
                return message
        return None

    def get_method(self, name: str) -> RpcMethod | None:
        """Look up an RPC by name."""
        for method in self.methods:
            if method.name == name:
                return method
        return None
