"""Unwrapping of GraphQL type references.

GraphQL wraps named types in NonNull and List layers. `describe_type`
peels those layers off once, recording what it saw, so callers can decide
on repetition and nullability without walking the wrappers again.
"""

from dataclasses import dataclass

from graphql import (
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLType,
    is_list_type,
    is_named_type,
    is_non_null_type,
)


@dataclass(frozen=True)
class TypeShape:
    """The structure of a GraphQL type reference.

    For `[String!]!` the shape is: named_type String, nullable False,
    list_depth 1, item_nullable False.
    """
    named_type: GraphQLNamedType
    nullable: bool = True
    list_depth: int = 0
    item_nullable: bool = True

    @property
    def is_list(self) -> bool:
        return self.list_depth > 0


def describe_type(gql_type: GraphQLType) -> TypeShape:
    """Describe a possibly wrapped GraphQL type.

    Raises:
        TypeError: If the type is not a named, list or non-null type
    """
    if is_non_null_type(gql_type):
        inner = describe_type(gql_type.of_type)
        return TypeShape(inner.named_type, False, inner.list_depth, inner.item_nullable)
    if is_list_type(gql_type):
        inner = describe_type(gql_type.of_type)
        item_nullable = inner.nullable if inner.list_depth == 0 else inner.item_nullable
        return TypeShape(inner.named_type, True, inner.list_depth + 1, item_nullable)
    if is_named_type(gql_type):
        return TypeShape(gql_type)
    raise TypeError(f"Unexpected GraphQL type: {gql_type!r}")


def type_signature(gql_type: GraphQLType) -> str:
    """Render a type reference back to SDL notation, e.g. "[User!]!"."""
    if isinstance(gql_type, GraphQLNonNull):
        return f"{type_signature(gql_type.of_type)}!"
    if isinstance(gql_type, GraphQLList):
        return f"[{type_signature(gql_type.of_type)}]"
    return gql_type.name


@dataclass(frozen=True)
class ProtoType:
    """The proto type chosen for one field."""
    name: str
    repeated: bool = False
    package_level: bool = False
