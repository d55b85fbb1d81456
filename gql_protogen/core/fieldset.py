"""Validation of federation field sets.

A field set is the selection string carried by `@key(fields: ...)`,
`@requires(fields: ...)` and `@provides(fields: ...)`, e.g. "id organization { id }".
It is parsed as a GraphQL selection set and walked against the type it
applies to. Validation stops at the first problem found.

Example:
    result = validate_field_set(schema.get_type("User"), "id organization { id }")
    if not result.is_valid:
        print(result.errors[0])
"""

import logging
from dataclasses import dataclass, field

from graphql import (
    BREAK,
    DirectiveNode,
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLObjectType,
    GraphQLSchema,
    InlineFragmentNode,
    SelectionSetNode,
    StringValueNode,
    Visitor,
    is_interface_type,
    is_object_type,
    is_union_type,
    parse,
    print_ast,
    visit,
)

from .errors import FieldSetSyntaxError
from .type_mapper import describe_type

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validating a field set."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class FieldSetReport:
    """Validation outcome for one directive occurrence in a schema."""
    directive: str
    coordinates: str  # "User" for @key, "User.name" for @requires/@provides
    field_set: str
    result: ValidationResult


def invalid_field_set_message(field_set: str, reason: str) -> str:
    return f'The following field set is invalid:\n  "{field_set}"\nThis is because {reason}'


class FieldSetValidator(Visitor):
    """Walks a parsed field set and records the first structural error.

    The walker keeps a stack of the object types whose selection sets are
    being visited. A field is looked up on the type at the top of the stack;
    object-typed fields push their type when their selection set is entered
    and pop it again on leave.
    """

    def __init__(self, root_type: GraphQLObjectType, field_set: str = ""):
        super().__init__()
        self.root_type = root_type
        self.field_set = field_set
        self.result = ValidationResult()
        self._type_stack: list[GraphQLObjectType] = [root_type]
        # Type that the next field-level selection set belongs to, None for leaves
        self._selection_type: GraphQLObjectType | None = None
        self._current_field = ""

    def _fail(self, reason: str):
        self.result.errors.append(invalid_field_set_message(self.field_set, reason))
        return BREAK

    def enter_field(self, node: FieldNode, *_args):
        parent_type = self._type_stack[-1]
        field_name = node.name.value
        coordinates = f"{parent_type.name}.{field_name}"
        field_def = parent_type.fields.get(field_name)
        if field_def is None:
            return self._fail(f'the type "{parent_type.name}" does not define a field named "{field_name}".')

        named_type = describe_type(field_def.type).named_type
        if is_interface_type(named_type) or is_union_type(named_type):
            kind = "Interface" if is_interface_type(named_type) else "Union"
            return self._fail(
                f'"{coordinates}" returns "{named_type.name}", which is type "{kind}". '
                "Fields that return abstract types cannot be part of a field set."
            )
        if is_object_type(named_type) and node.selection_set is None:
            return self._fail(
                f'the field "{coordinates}" returns the composite type "{named_type.name}" '
                "and therefore must be appended with a selection set."
            )

        self._current_field = coordinates
        self._selection_type = named_type if is_object_type(named_type) else None
        return None

    def enter_selection_set(self, _node: SelectionSetNode, _key, parent, *_args):
        if isinstance(parent, InlineFragmentNode):
            return self._fail("inline fragments are not currently supported within a field set.")
        if not isinstance(parent, FieldNode):
            return None
        if self._selection_type is None:
            return self._fail(
                f'the field "{self._current_field}" returns a non-composite type, '
                "which cannot define a selection set."
            )
        self._type_stack.append(self._selection_type)
        return None

    def leave_selection_set(self, _node: SelectionSetNode, _key, parent, *_args):
        if isinstance(parent, FieldNode):
            self._type_stack.pop()

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args):
        return self._fail(f'fragment spreads such as "...{node.name.value}" are not supported within a field set.')


def parse_field_set(field_set: str) -> SelectionSetNode:
    """Parse a field-set string into a selection set.

    Raises:
        FieldSetSyntaxError: If the string is not a valid selection
    """
    try:
        document = parse(f"{{{field_set}}}", no_location=True)
    except GraphQLError as e:
        raise FieldSetSyntaxError(f'The field set "{field_set}" could not be parsed: {e.message}') from e
    return document.definitions[0].selection_set


def validate_field_set(root_type: GraphQLObjectType, field_set: str) -> ValidationResult:
    """Validate a field set against the object type it is declared on.

    Raises:
        FieldSetSyntaxError: If the field set cannot be parsed
    """
    selection_set = parse_field_set(field_set)
    validator = FieldSetValidator(root_type, field_set)
    visit(selection_set, validator)
    return validator.result


def _directive_field_set(directive: DirectiveNode) -> tuple[str | None, str | None]:
    """Return (field_set, problem) for a directive's `fields` argument."""
    for argument in directive.arguments:
        if argument.name.value != "fields":
            continue
        if isinstance(argument.value, StringValueNode):
            return argument.value.value, None
        return None, f'the "fields" argument of @{directive.name.value} must be a string, got {print_ast(argument.value)}'
    return None, f'@{directive.name.value} is missing its "fields" argument'


def _type_directives(type_: GraphQLObjectType) -> list[DirectiveNode]:
    nodes = [type_.ast_node, *(type_.extension_ast_nodes or ())]
    return [d for n in nodes if n is not None for d in (n.directives or ())]


def _check(
    directive: DirectiveNode,
    coordinates: str,
    root_type,
) -> FieldSetReport:
    name = directive.name.value
    field_set, problem = _directive_field_set(directive)
    if field_set is None:
        result = ValidationResult(warnings=[f'"{coordinates}": {problem}'])
        return FieldSetReport(name, coordinates, "", result)

    if not is_object_type(root_type):
        reason = f'"{coordinates}" does not return an object type.'
        result = ValidationResult(errors=[invalid_field_set_message(field_set, reason)])
        return FieldSetReport(name, coordinates, field_set, result)

    try:
        result = validate_field_set(root_type, field_set)
    except FieldSetSyntaxError as e:
        result = ValidationResult(errors=[str(e)])

    if name == "key" and "{" in field_set:
        result.warnings.append(
            f'"{coordinates}": nested key field sets are not supported by the proto generator; '
            "only the top-level fields are used."
        )
    if name == "requires":
        result.warnings.append(f'"{coordinates}": use of @requires is not supported yet.')
    return FieldSetReport(name, coordinates, field_set, result)


def validate_schema_field_sets(schema: GraphQLSchema) -> list[FieldSetReport]:
    """Validate every @key, @requires and @provides field set in a schema.

    @key and @requires are checked against the type that declares them,
    @provides against the type returned by the field it annotates.
    """
    reports = []
    for type_name, type_ in sorted(schema.type_map.items()):
        if type_name.startswith("__") or not is_object_type(type_):
            continue
        for directive in _type_directives(type_):
            if directive.name.value == "key":
                reports.append(_check(directive, type_name, type_))

        for field_name, field_def in type_.fields.items():
            if field_def.ast_node is None:
                continue
            coordinates = f"{type_name}.{field_name}"
            for directive in field_def.ast_node.directives or ():
                name = directive.name.value
                if name == "requires":
                    reports.append(_check(directive, coordinates, type_))
                elif name == "provides":
                    return_type = describe_type(field_def.type).named_type
                    reports.append(_check(directive, coordinates, return_type))

    logger.debug("Validated %d field sets", len(reports))
    return reports
