"""Core modules for GraphQL to proto3 generation."""

from .compiler import (
    CompilationResult,
    CompilerConfig,
    OperationCompiler,
    compile_operations,
)
from .errors import (
    CompilationError,
    FieldSetSyntaxError,
    LockFileError,
    OperationError,
    OperationSyntaxError,
    ProtogenError,
    ResolutionError,
    SchemaSyntaxError,
)
from .field_numbering import FieldNumberManager
from .fieldset import (
    FieldSetReport,
    FieldSetValidator,
    ValidationResult,
    validate_field_set,
    validate_schema_field_sets,
)
from .generator import ProtoGenerator
from .hooks import (
    AddHeaderHook,
    FilterMethodsHook,
    HookRunner,
    PostRenderHook,
    PreRenderHook,
)
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
from .lock import MessageLock, ProtoLock
from .parser import SchemaParser, build_schema_from_sdl, load_operations
from .scalars import (
    BuiltinScalarHandler,
    CustomScalarHandler,
    ScalarHandler,
    ScalarRegistry,
)

__all__ = [
    # Compiler
    "CompilationResult",
    "CompilerConfig",
    "OperationCompiler",
    "compile_operations",
    # Errors
    "ProtogenError",
    "OperationError",
    "OperationSyntaxError",
    "ResolutionError",
    "CompilationError",
    "SchemaSyntaxError",
    "FieldSetSyntaxError",
    "LockFileError",
    # Field numbering
    "FieldNumberManager",
    "MessageLock",
    "ProtoLock",
    # Field sets
    "FieldSetReport",
    "FieldSetValidator",
    "ValidationResult",
    "validate_field_set",
    "validate_schema_field_sets",
    # Generator
    "ProtoGenerator",
    # Hooks
    "PreRenderHook",
    "PostRenderHook",
    "AddHeaderHook",
    "FilterMethodsHook",
    "HookRunner",
    # IR types
    "CompiledService",
    "OperationDescriptor",
    "ProtoEnum",
    "ProtoEnumValue",
    "ProtoField",
    "ProtoMessage",
    "ProtoOneof",
    "RpcMethod",
    # Parser
    "SchemaParser",
    "build_schema_from_sdl",
    "load_operations",
    # Scalars
    "ScalarHandler",
    "ScalarRegistry",
    "BuiltinScalarHandler",
    "CustomScalarHandler",
]
