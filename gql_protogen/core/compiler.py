"""Compiles GraphQL operations into a proto3 service.

Every operation becomes one RPC with a `<Name>Request` message built from
its variables and a `<Name>Response` message built from its selection set.
Field numbers come from a FieldNumberManager seeded with the prior lock, so
fields that already had a number keep it and new fields get fresh ones.

Example:
    compiler = OperationCompiler(schema, CompilerConfig(service_name="users"))
    result = compiler.compile([OperationDescriptor("GetUser", query_text, "get_user.graphql")])
    proto_text = ProtoGenerator(result.service).render()
    lock_json = result.lock.to_json()

Selections on an interface or union keep their shared fields on the
message itself; fragments on concrete object types each become a nested
message, held in a `oneof type_specific` so the set arm tells which type
was returned.

Compilation is all-or-nothing: any error aborts the run and nothing is
returned, and the lock passed in is never modified.
"""

import logging
from dataclasses import dataclass, field

from graphql import (
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLEnumType,
    GraphQLError,
    GraphQLInputObjectType,
    GraphQLNamedType,
    GraphQLSchema,
    GraphQLType,
    InlineFragmentNode,
    NamedTypeNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    VariableDefinitionNode,
    do_types_overlap,
    is_abstract_type,
    is_composite_type,
    is_enum_type,
    is_input_object_type,
    is_input_type,
    is_object_type,
    is_union_type,
    parse,
    print_ast,
    type_from_ast,
)

from .errors import CompilationError, OperationSyntaxError, ResolutionError
from .field_numbering import FieldNumberManager
from .ir import (
    CompiledService,
    OperationDescriptor,
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoMessage,
    ProtoOneof,
    RpcMethod,
)
from .lock import ProtoLock
from .naming import enum_value_name, pascal_case, service_name, snake_case, unspecified_value_name, upper_first
from .parser import build_schema_from_sdl
from .scalars import ScalarRegistry
from .type_mapper import ProtoType, TypeShape, describe_type, type_signature

logger = logging.getLogger(__name__)

NO_SIDE_EFFECTS = "NO_SIDE_EFFECTS"
DEFAULT_SERVICE_NAME = "DefaultService"
DEFAULT_PACKAGE_NAME = "service.v1"
DEFAULT_MAX_DEPTH = 50
TYPE_SPECIFIC_ONEOF = "type_specific"


@dataclass
class CompilerConfig:
    """Options controlling the generated service.

    Attributes:
        service_name: Service name; normalized to PascalCase with a "Service" suffix
        package_name: proto package, e.g. "users.v1"
        language_options: File options such as {"go_package": "example.com/users/v1"}
        mark_queries_idempotent: Mark query RPCs with idempotency_level = NO_SIDE_EFFECTS
        include_comments: Carry schema descriptions over as proto comments
        max_depth: Maximum nesting depth of selection sets
    """
    service_name: str = DEFAULT_SERVICE_NAME
    package_name: str = DEFAULT_PACKAGE_NAME
    language_options: dict[str, str] = field(default_factory=dict)
    mark_queries_idempotent: bool = False
    include_comments: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class CompilationResult:
    """A compiled service and the lock to persist alongside it."""
    service: CompiledService
    lock: ProtoLock


class OperationCompiler:
    """Compiles a set of GraphQL operations against a schema."""

    def __init__(
        self,
        schema: GraphQLSchema,
        config: CompilerConfig | None = None,
        lock: ProtoLock | None = None,
        scalars: ScalarRegistry | None = None,
    ):
        """Initialize the compiler.

        Args:
            schema: The GraphQL schema the operations are written against
            config: Output options, defaults to CompilerConfig()
            lock: Field numbers from a previous run, if any
            scalars: Scalar handlers, defaults to the built-in mappings
        """
        self.schema = schema
        self.config = config or CompilerConfig()
        self.lock = lock or ProtoLock()
        self.scalars = scalars or ScalarRegistry()
        self._root_types = {
            OperationType.QUERY: schema.query_type,
            OperationType.MUTATION: schema.mutation_type,
            OperationType.SUBSCRIPTION: schema.subscription_type,
        }
        self._reset_state()

    def _reset_state(self):
        self._field_numbers = FieldNumberManager(self.lock.message_table())
        self._enum_numbers = FieldNumberManager(self.lock.enum_table())
        self._fragments: dict[str, FragmentDefinitionNode] = {}
        self._imports: set[str] = set()
        self._enum_types: dict[str, GraphQLEnumType] = {}
        self._messages: list[ProtoMessage] = []
        self._message_names: set[str] = set()
        self._input_messages: set[str] = set()
        self._methods: list[RpcMethod] = []

    def compile(self, operations: list[OperationDescriptor]) -> CompilationResult:
        """Compile operations into a service and an updated lock.

        Raises:
            ValueError: If no operations are given
            OperationSyntaxError: If an operation cannot be parsed
            ResolutionError: If an operation references something the schema lacks
            CompilationError: If an operation cannot be expressed as proto3
        """
        if not operations:
            raise ValueError("At least one operation is required to generate a service")

        self._reset_state()
        documents = [(operation, self._parse(operation)) for operation in operations]
        for operation, document in documents:
            self._collect_fragments(operation, document)

        for operation, document in documents:
            definition = self._single_operation(operation, document)
            if definition is not None:
                self._compile_operation(operation, definition)
        if not self._methods:
            raise CompilationError("No operation definitions found; documents only define fragments")

        service = CompiledService(
            service_name=service_name(self.config.service_name),
            package_name=self.config.package_name,
            methods=self._methods,
            messages=self._messages,
            enums=[self._build_enum(self._enum_types[name]) for name in sorted(self._enum_types)],
            imports=sorted(self._imports),
            options=dict(self.config.language_options),
        )
        lock = ProtoLock.from_tables(self._field_numbers.snapshot(), self._enum_numbers.snapshot())
        logger.debug(
            "Compiled %d operations into %d messages and %d enums",
            len(self._methods), len(self._messages), len(service.enums),
        )
        return CompilationResult(service=service, lock=lock)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse(operation: OperationDescriptor):
        try:
            return parse(operation.content)
        except GraphQLError as e:
            raise OperationSyntaxError(e.message, operation) from e

    def _collect_fragments(self, operation: OperationDescriptor, document):
        for definition in document.definitions:
            if not isinstance(definition, FragmentDefinitionNode):
                continue
            name = definition.name.value
            if name in self._fragments:
                raise CompilationError(f"Duplicate fragment definition '{name}'", operation)
            self._fragments[name] = definition

    @staticmethod
    def _single_operation(operation: OperationDescriptor, document) -> OperationDefinitionNode | None:
        """Return the document's operation, or None for a fragments-only document."""
        definitions = [d for d in document.definitions if isinstance(d, OperationDefinitionNode)]
        if len(definitions) > 1:
            names = ", ".join(d.name.value if d.name else "<anonymous>" for d in definitions)
            raise CompilationError(f"Multiple operations found in document: {names}", operation)
        if definitions:
            return definitions[0]
        if any(isinstance(d, FragmentDefinitionNode) for d in document.definitions):
            return None
        raise CompilationError("No operation definition found in document", operation)

    def _compile_operation(self, operation: OperationDescriptor, definition: OperationDefinitionNode):
        op_type = definition.operation
        root_type = self._root_types[op_type]
        if root_type is None:
            raise ResolutionError(f"Schema does not define a {op_type.value} type", operation)

        if definition.name:
            name = upper_first(definition.name.value)
        else:
            name = pascal_case(operation.name)
        if any(method.name == name for method in self._methods):
            raise CompilationError(f"Duplicate operation name '{name}'", operation)
        logger.debug("Compiling %s %s", op_type.value, name)

        request_name = f"{name}Request"
        response_name = f"{name}Response"
        request = self._build_request(request_name, definition.variable_definitions, operation)
        response = self._build_message(
            response_name, response_name, [definition.selection_set], root_type, operation, depth=0,
        )
        self._qualify_shadowed_types(response, frozenset())
        self._add_message(request, operation)
        self._add_message(response, operation)

        is_query = op_type == OperationType.QUERY
        self._methods.append(RpcMethod(
            name=name,
            request_type=request_name,
            response_type=response_name,
            operation_type=op_type.value,
            idempotency_level=NO_SIDE_EFFECTS if is_query and self.config.mark_queries_idempotent else None,
            server_streaming=op_type == OperationType.SUBSCRIPTION,
            comment=self._method_comment(definition, root_type),
        ))

    def _method_comment(self, definition: OperationDefinitionNode, root_type) -> str | None:
        """Join the descriptions of the root fields an operation selects."""
        if not self.config.include_comments:
            return None
        descriptions = []
        for selection in definition.selection_set.selections:
            if not isinstance(selection, FieldNode):
                continue
            root_field = root_type.fields.get(selection.name.value)
            if root_field is not None and root_field.description:
                descriptions.append(root_field.description.strip())
        return "\n\n".join(dict.fromkeys(descriptions)) or None

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def _add_message(self, message: ProtoMessage, operation: OperationDescriptor):
        if message.name in self._message_names:
            raise CompilationError(f"Duplicate message name '{message.name}'", operation)
        self._message_names.add(message.name)
        self._messages.append(message)

    def _field_number(self, message: str, field_name: str) -> int:
        number = self._field_numbers.get(message, field_name)
        if number is None:
            number = self._field_numbers.next_number(message)
            self._field_numbers.assign(message, field_name, number)
        return number

    def _make_field(self, message: str, field_name: str, proto_type: ProtoType, comment: str | None) -> ProtoField:
        return ProtoField(
            name=field_name,
            type_name=proto_type.name,
            number=self._field_number(message, field_name),
            repeated=proto_type.repeated,
            comment=comment if self.config.include_comments else None,
            package_level=proto_type.package_level,
        )

    @staticmethod
    def _finish_message(
        name: str,
        full_name: str,
        fields: list[ProtoField],
        nested: list[ProtoMessage],
        operation: OperationDescriptor,
        comment: str | None = None,
        oneofs: list[ProtoOneof] | None = None,
    ) -> ProtoMessage:
        """Check a message for clashing names or numbers and order its fields."""
        nested_names: set[str] = set()
        for message in nested:
            if message.name in nested_names:
                raise CompilationError(
                    f"Duplicate nested message '{message.name}' in message '{full_name}'", operation
                )
            nested_names.add(message.name)

        oneofs = oneofs or []
        by_name: dict[str, ProtoField] = {}
        by_number: dict[int, ProtoField] = {}
        for proto_field in fields + [f for oneof in oneofs for f in oneof.fields]:
            if proto_field.name in by_name:
                raise CompilationError(f"Duplicate field '{proto_field.name}' in message '{full_name}'", operation)
            clash = by_number.get(proto_field.number)
            if clash is not None:
                raise CompilationError(
                    f"Field number {proto_field.number} is bound to both '{clash.name}' and "
                    f"'{proto_field.name}' in message '{full_name}'",
                    operation,
                )
            by_name[proto_field.name] = proto_field
            by_number[proto_field.number] = proto_field
        return ProtoMessage(
            name=name,
            full_name=full_name,
            fields=sorted(fields, key=lambda f: f.number),
            nested=nested,
            comment=comment,
            oneofs=[
                ProtoOneof(oneof.name, sorted(oneof.fields, key=lambda f: f.number)) for oneof in oneofs
            ],
        )

    def _qualify_shadowed_types(self, message: ProtoMessage, scope: frozenset[str]):
        """Fully qualify enum and input references hidden by a nested message.

        protoc resolves a bare name from the innermost message outwards, so a
        nested `Status` message would capture a reference to the `Status`
        enum in any message below it.
        """
        scope = scope | {nested.name for nested in message.nested}
        prefix = f".{self.config.package_name}." if self.config.package_name else "."
        for proto_field in message.all_fields():
            if proto_field.package_level and proto_field.type_name in scope:
                proto_field.type_name = f"{prefix}{proto_field.type_name}"
        for nested in message.nested:
            self._qualify_shadowed_types(nested, scope)

    def _build_request(
        self,
        name: str,
        variable_definitions: tuple[VariableDefinitionNode, ...],
        operation: OperationDescriptor,
    ) -> ProtoMessage:
        fields = []
        for variable in variable_definitions or ():
            variable_name = variable.variable.name.value
            gql_type = type_from_ast(self.schema, variable.type)
            if gql_type is None:
                raise ResolutionError(
                    f"Unknown type '{print_ast(variable.type)}' for variable '${variable_name}'", operation
                )
            proto_type = self._input_type(gql_type, operation, f"${variable_name}")
            fields.append(self._make_field(name, snake_case(variable_name), proto_type, None))
        return self._finish_message(name, name, fields, [], operation)

    def _input_type(self, gql_type: GraphQLType, operation: OperationDescriptor, where: str) -> ProtoType:
        shape = describe_type(gql_type)
        named = shape.named_type
        if not is_input_type(named):
            raise ResolutionError(f"Type '{named.name}' of {where} is not an input type", operation)
        if shape.list_depth > 1:
            raise CompilationError(
                f"Nested list type '{type_signature(gql_type)}' of {where} is not supported", operation
            )
        if is_input_object_type(named):
            self._build_input_message(named, operation)
            return ProtoType(named.name, repeated=shape.is_list, package_level=True)
        return self._leaf_type(shape)

    def _build_input_message(self, input_type: GraphQLInputObjectType, operation: OperationDescriptor):
        """Generate a top-level message for an input object, once per run."""
        name = input_type.name
        if name in self._input_messages:
            return
        # Registered before recursing so self-referencing inputs terminate
        self._input_messages.add(name)
        fields = []
        for field_name, input_field in input_type.fields.items():
            proto_type = self._input_type(input_field.type, operation, f"'{name}.{field_name}'")
            fields.append(self._make_field(name, snake_case(field_name), proto_type, input_field.description))
        comment = input_type.description if self.config.include_comments else None
        self._add_message(self._finish_message(name, name, fields, [], operation, comment), operation)

    def _leaf_type(self, shape: TypeShape) -> ProtoType:
        named = shape.named_type
        if is_enum_type(named):
            self._enum_types[named.name] = named
            return ProtoType(named.name, repeated=shape.is_list, package_level=True)
        # Repeated fields cannot use wrappers and are never null on the wire
        nullable = shape.nullable and not shape.is_list
        type_name = self.scalars.get(named.name).type_for(nullable)
        import_path = self.scalars.import_for(type_name)
        if import_path:
            self._imports.add(import_path)
        return ProtoType(type_name, repeated=shape.is_list)

    def _check_depth(self, full_name: str, depth: int, operation: OperationDescriptor):
        if depth > self.config.max_depth:
            raise CompilationError(
                f"Selection depth exceeds the maximum of {self.config.max_depth} at '{full_name}'", operation
            )

    def _build_message(
        self,
        name: str,
        full_name: str,
        selection_sets: list[SelectionSetNode],
        parent_type: GraphQLNamedType,
        operation: OperationDescriptor,
        depth: int,
    ) -> ProtoMessage:
        """Build a message from one or more selection sets on the same type.

        On an interface or union, fragments on object types are gathered per
        type and become the arms of a `type_specific` oneof. Arm fields are
        numbered in this message; arm messages number their own fields.
        """
        self._check_depth(full_name, depth, operation)

        grouped: dict[str, list[tuple[FieldNode, GraphQLNamedType]]] = {}
        arms: dict[str, dict[str, list[tuple[FieldNode, GraphQLNamedType]]]] | None = (
            {} if is_abstract_type(parent_type) else None
        )
        for selection_set in selection_sets:
            self._collect_fields(grouped, selection_set, parent_type, operation, (), arms)

        fields, nested = self._build_fields(full_name, grouped, operation, depth)
        oneofs = []
        if arms:
            arm_fields = []
            for type_name, arm_grouped in arms.items():
                arm_name = pascal_case(type_name)
                arm_full_name = f"{full_name}.{arm_name}"
                self._check_depth(arm_full_name, depth + 1, operation)
                arm_message_fields, arm_nested = self._build_fields(arm_full_name, arm_grouped, operation, depth + 1)
                nested.append(
                    self._finish_message(arm_name, arm_full_name, arm_message_fields, arm_nested, operation)
                )
                arm_fields.append(self._make_field(full_name, snake_case(type_name), ProtoType(arm_name), None))
            oneofs.append(ProtoOneof(TYPE_SPECIFIC_ONEOF, arm_fields))
        return self._finish_message(name, full_name, fields, nested, operation, oneofs=oneofs)

    def _build_fields(
        self,
        full_name: str,
        grouped: dict[str, list[tuple[FieldNode, GraphQLNamedType]]],
        operation: OperationDescriptor,
        depth: int,
    ) -> tuple[list[ProtoField], list[ProtoMessage]]:
        """Turn grouped selections into fields plus the nested messages they need."""
        fields: list[ProtoField] = []
        nested: list[ProtoMessage] = []
        for response_key, entries in grouped.items():
            field_def = self._merged_field(response_key, entries, operation)
            if field_def is None:
                continue
            node, owner = entries[0]
            field_name = node.name.value

            shape = describe_type(field_def.type)
            named = shape.named_type
            coordinates = f"{owner.name}.{field_name}"
            sub_selections = [n.selection_set for n, _ in entries if n.selection_set is not None]
            if shape.list_depth > 1:
                raise CompilationError(
                    f"Nested list type '{type_signature(field_def.type)}' of '{coordinates}' is not supported",
                    operation,
                )

            if is_composite_type(named):
                if not sub_selections:
                    raise CompilationError(
                        f"Field '{coordinates}' of type '{named.name}' must have a selection set", operation
                    )
                nested_name = pascal_case(response_key)
                nested.append(self._build_message(
                    nested_name, f"{full_name}.{nested_name}", sub_selections, named, operation, depth + 1,
                ))
                proto_type = ProtoType(nested_name, repeated=shape.is_list)
            else:
                if sub_selections:
                    raise CompilationError(
                        f"Field '{coordinates}' of leaf type '{named.name}' cannot have a selection set",
                        operation,
                    )
                proto_type = self._leaf_type(shape)

            fields.append(self._make_field(full_name, snake_case(response_key), proto_type, field_def.description))
        return fields, nested

    def _merged_field(
        self,
        response_key: str,
        entries: list[tuple[FieldNode, GraphQLNamedType]],
        operation: OperationDescriptor,
    ):
        """Resolve the field behind a response key, or None for `__typename`.

        Every selection merged under one key must name the same field with
        the same arguments and resolve to the same type.
        """
        node, owner = entries[0]
        field_name = node.name.value
        arguments = _argument_key(node)
        for other, other_owner in entries[1:]:
            if other.name.value != field_name:
                raise CompilationError(
                    f"Response key '{response_key}' selects both '{owner.name}.{field_name}' "
                    f"and '{other_owner.name}.{other.name.value}'",
                    operation,
                )
            if _argument_key(other) != arguments:
                raise CompilationError(
                    f"Response key '{response_key}' selects '{field_name}' with different arguments", operation
                )
        if field_name == "__typename":
            return None

        field_def = self._field_definition(node, owner, operation)
        signature = type_signature(field_def.type)
        for other, other_owner in entries[1:]:
            other_signature = type_signature(self._field_definition(other, other_owner, operation).type)
            if other_signature != signature:
                raise CompilationError(
                    f"Response key '{response_key}' has conflicting types '{signature}' "
                    f"({owner.name}.{field_name}) and '{other_signature}' ({other_owner.name}.{field_name})",
                    operation,
                )
        return field_def

    @staticmethod
    def _field_definition(node: FieldNode, owner: GraphQLNamedType, operation: OperationDescriptor):
        field_name = node.name.value
        field_def = None if is_union_type(owner) else owner.fields.get(field_name)
        if field_def is None:
            raise ResolutionError(f"Field '{field_name}' not found on type '{owner.name}'", operation)
        return field_def

    def _collect_fields(
        self,
        grouped: dict[str, list[tuple[FieldNode, GraphQLNamedType]]],
        selection_set: SelectionSetNode,
        parent_type: GraphQLNamedType,
        operation: OperationDescriptor,
        spread_path: tuple[str, ...],
        arms: dict[str, dict[str, list[tuple[FieldNode, GraphQLNamedType]]]] | None = None,
    ):
        """Flatten fields, inline fragments and fragment spreads by response key.

        With `arms`, fragments on object types are collected into a group of
        their own per type instead of into `grouped`.
        """
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                key = selection.alias.value if selection.alias else selection.name.value
                grouped.setdefault(key, []).append((selection, parent_type))
            elif isinstance(selection, InlineFragmentNode):
                target = self._fragment_target(selection.type_condition, parent_type, operation)
                self._collect_fragment(grouped, selection.selection_set, target, operation, spread_path, arms)
            elif isinstance(selection, FragmentSpreadNode):
                fragment_name = selection.name.value
                if fragment_name in spread_path:
                    cycle = " -> ".join((*spread_path, fragment_name))
                    raise CompilationError(f"Circular fragment dependency detected: {cycle}", operation)
                fragment = self._fragments.get(fragment_name)
                if fragment is None:
                    raise ResolutionError(f"Unknown fragment '{fragment_name}'", operation)
                target = self._fragment_target(fragment.type_condition, parent_type, operation)
                self._collect_fragment(
                    grouped, fragment.selection_set, target, operation, (*spread_path, fragment_name), arms,
                )

    def _collect_fragment(self, grouped, selection_set, target, operation, spread_path, arms):
        if arms is not None and is_object_type(target):
            arm_grouped = arms.setdefault(target.name, {})
            self._collect_fields(arm_grouped, selection_set, target, operation, spread_path)
        else:
            self._collect_fields(grouped, selection_set, target, operation, spread_path, arms)

    def _fragment_target(
        self,
        type_condition: NamedTypeNode | None,
        parent_type: GraphQLNamedType,
        operation: OperationDescriptor,
    ) -> GraphQLNamedType:
        if type_condition is None:
            return parent_type
        type_name = type_condition.name.value
        target = self.schema.get_type(type_name)
        if target is None:
            raise ResolutionError(f"Unknown type '{type_name}' in fragment type condition", operation)
        if not is_composite_type(target):
            raise CompilationError(f"Fragment cannot condition on non-composite type '{type_name}'", operation)
        if not do_types_overlap(self.schema, target, parent_type):
            raise CompilationError(
                f"Fragment on '{type_name}' can never apply to type '{parent_type.name}'", operation
            )
        return target

    # -------------------------------------------------------------------------
    # Enums
    # -------------------------------------------------------------------------

    def _build_enum(self, enum_type: GraphQLEnumType) -> ProtoEnum:
        name = enum_type.name
        values = []
        for value_name, value in enum_type.values.items():
            proto_name = enum_value_name(name, value_name)
            number = self._enum_numbers.get(name, proto_name)
            if number is None:
                number = self._enum_numbers.next_number(name)
                self._enum_numbers.assign(name, proto_name, number)
            comment = value.description if self.config.include_comments else None
            values.append(ProtoEnumValue(proto_name, number, comment))
        values.sort(key=lambda v: v.number)
        return ProtoEnum(
            name=name,
            values=[ProtoEnumValue(unspecified_value_name(name), 0), *values],
            comment=enum_type.description if self.config.include_comments else None,
        )


def _argument_key(node: FieldNode) -> list[str]:
    return sorted(print_ast(argument) for argument in node.arguments or ())


def compile_operations(
    schema: GraphQLSchema | str,
    operations: list[OperationDescriptor],
    config: CompilerConfig | None = None,
    lock: ProtoLock | None = None,
    scalars: ScalarRegistry | None = None,
) -> CompilationResult:
    """Compile operations against a schema given as a GraphQLSchema or SDL text."""
    if isinstance(schema, str):
        schema = build_schema_from_sdl(schema)
    return OperationCompiler(schema, config, lock, scalars).compile(operations)
