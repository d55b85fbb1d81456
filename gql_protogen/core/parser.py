"""Loading of GraphQL schema and operation files using graphql-core.

Schema files (.graphql, .graphqls, .gql) are merged into one document and
built into a GraphQLSchema. Operation files are read into
OperationDescriptors for the compiler.
"""

import logging
import os

from graphql import (
    DocumentNode,
    GraphQLError,
    GraphQLSchema,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    TypeDefinitionNode,
    build_ast_schema,
    parse,
)

from .errors import SchemaSyntaxError
from .ir import OperationDescriptor
from .naming import pascal_case

logger = logging.getLogger(__name__)

SCHEMA_EXTENSIONS = (".graphqls", ".graphql", ".gql")
OPERATION_EXTENSIONS = (".graphql", ".gql")


def _promote_orphan_extensions(definitions: list) -> list:
    """Turn `extend type X` into a definition when no `type X` exists.

    Subgraph schemas often only extend the root types they contribute to,
    which graphql-core would otherwise drop.
    """
    defined = {d.name.value for d in definitions if isinstance(d, TypeDefinitionNode)}
    result = []
    for definition in definitions:
        if isinstance(definition, ObjectTypeExtensionNode) and definition.name.value not in defined:
            defined.add(definition.name.value)
            definition = ObjectTypeDefinitionNode(
                name=definition.name,
                interfaces=definition.interfaces,
                directives=definition.directives,
                fields=definition.fields,
                loc=definition.loc,
            )
        result.append(definition)
    return result


def build_schema_from_documents(documents: list[DocumentNode]) -> GraphQLSchema:
    """Merge parsed SDL documents and build a schema.

    Unknown directives such as federation's @key are allowed; the SDL is
    not validated beyond what building it requires.
    """
    definitions = [d for document in documents for d in document.definitions]
    merged = DocumentNode(definitions=tuple(_promote_orphan_extensions(definitions)))
    return build_ast_schema(merged, assume_valid=True, assume_valid_sdl=True)


def build_schema_from_sdl(sdl: str, source: str | None = None) -> GraphQLSchema:
    """Build a schema from SDL text.

    Raises:
        SchemaSyntaxError: If the SDL cannot be parsed
    """
    try:
        document = parse(sdl)
    except GraphQLError as e:
        raise SchemaSyntaxError(e.message, source) from e
    return build_schema_from_documents([document])


class SchemaParser:
    """Parses GraphQL schema files into a GraphQLSchema."""

    def __init__(self, schema_path: str):
        """Initialize a parser with a path to a schema file or directory."""
        self.schema_path = schema_path

    def parse_all(self) -> GraphQLSchema:
        """Parse all schema files and return the built schema."""
        documents = []
        for file_path in self._collect_schema_files():
            with open(file_path) as f:
                content = f.read()
            try:
                documents.append(parse(content))
            except GraphQLError as e:
                raise SchemaSyntaxError(e.message, os.path.basename(file_path)) from e
            logger.debug("Parsed schema file %s", file_path)
        if not documents:
            raise SchemaSyntaxError(f"No schema files found in {self.schema_path}")
        return build_schema_from_documents(documents)

    def _collect_schema_files(self) -> list[str]:
        """Collect all schema files from path."""
        if os.path.isfile(self.schema_path):
            return [self.schema_path]
        files = []
        for root, _, filenames in os.walk(self.schema_path):
            for filename in filenames:
                if filename.endswith(SCHEMA_EXTENSIONS):
                    files.append(os.path.join(root, filename))
        return sorted(files)


def load_operations(path: str) -> list[OperationDescriptor]:
    """Read operation documents from a file or a directory tree.

    Files are returned in sorted path order. Each descriptor is named after
    its file (e.g. "get-user.graphql" -> "GetUser") and located by its path
    relative to `path`.
    """
    if os.path.isfile(path):
        files = [path]
        base = os.path.dirname(path)
    else:
        base = path
        files = []
        for root, _, filenames in os.walk(path):
            for filename in filenames:
                if filename.endswith(OPERATION_EXTENSIONS):
                    files.append(os.path.join(root, filename))

    operations = []
    for file_path in sorted(files):
        locator = os.path.relpath(file_path, base)
        with open(file_path) as f:
            content = f.read()
        stem = os.path.splitext(os.path.basename(file_path))[0]
        operations.append(OperationDescriptor(name=pascal_case(stem), content=content, locator=locator))
    logger.debug("Loaded %d operation files from %s", len(operations), path)
    return operations
