"""Errors raised while loading, validating and compiling GraphQL inputs."""

from .ir import OperationDescriptor


class ProtogenError(Exception):
    """Base class for all gql-protogen errors."""


class OperationError(ProtogenError):
    """An error tied to one operation document.

    The message is prefixed with the operation's locator (or its name when
    no locator was given) so callers can point at the offending file.
    """

    def __init__(self, message: str, operation: OperationDescriptor | None = None):
        self.message = message
        self.operation = operation
        if operation is not None:
            where = operation.locator or operation.name
            super().__init__(f"{where}: {message}")
        else:
            super().__init__(message)


class OperationSyntaxError(OperationError):
    """Operation text could not be parsed as GraphQL."""


class ResolutionError(OperationError):
    """An operation references a field, type or fragment the schema cannot resolve."""


class CompilationError(OperationError):
    """An operation resolves but cannot be expressed as proto3."""


class SchemaSyntaxError(ProtogenError):
    """A schema document could not be parsed."""

    def __init__(self, message: str, source: str | None = None):
        self.message = message
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class FieldSetSyntaxError(ProtogenError):
    """A field-set string could not be parsed."""


class LockFileError(ProtogenError):
    """A field number lock could not be read or validated."""
