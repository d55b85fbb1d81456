"""Command-line interface for gql-protogen."""

import json
import logging
import os
import tempfile
from pathlib import Path

import click

from .core.compiler import DEFAULT_MAX_DEPTH, DEFAULT_PACKAGE_NAME, CompilerConfig, OperationCompiler
from .core.errors import LockFileError, ProtogenError
from .core.fieldset import validate_schema_field_sets
from .core.generator import DEFAULT_FILENAME, ProtoGenerator
from .core.hooks import AddHeaderHook, HookRunner
from .core.lock import ProtoLock
from .core.parser import SchemaParser, load_operations
from .core.scalars import ScalarRegistry

LOCK_FILENAME = f"{DEFAULT_FILENAME}.lock.json"


def read_lock_file(path: Path) -> ProtoLock:
    """Read a lock file, returning an empty lock when there is none yet."""
    if not path.exists():
        return ProtoLock()
    try:
        text = path.read_text()
    except OSError as e:
        raise LockFileError(f"Cannot read {path}: {e}") from e
    return ProtoLock.from_json(text)


def write_file_atomic(path: Path, content: str):
    """Write content next to its destination, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        os.unlink(tmp_path)
        raise


def parse_scalar_mapping(mapping: str | None, mapping_file: str | None) -> dict[str, str]:
    """Combine custom scalar mappings from a JSON string and a JSON file."""
    result: dict[str, str] = {}
    sources = []
    if mapping_file:
        sources.append((mapping_file, Path(mapping_file).read_text()))
    if mapping:
        sources.append(("--custom-scalar-mapping", mapping))
    for origin, text in sources:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"{origin} is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise click.BadParameter(f"{origin} must be a JSON object of scalar name to proto type")
        result.update(data)
    return result


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option()
def main():
    """Generate proto3 service definitions from GraphQL operations.

    Each operation becomes an RPC; field numbers are kept stable across runs
    through a lock file stored next to the generated proto.
    """
    pass


@main.command()
@click.argument("name")
@click.option(
    "--schema",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to GraphQL schema file or directory.",
)
@click.option(
    "--operations",
    "-w",
    required=True,
    type=click.Path(exists=True),
    help="Path to an operation file or a directory of .graphql/.gql operation files.",
)
@click.option(
    "--output",
    "-o",
    default=".",
    type=click.Path(file_okay=False),
    help="Output directory for service.proto and its lock file.",
)
@click.option("--package-name", "-p", default=DEFAULT_PACKAGE_NAME, help="proto package name.")
@click.option("--go-package", "-g", help="Value for option go_package.")
@click.option("--java-package", help="Value for option java_package.")
@click.option("--csharp-namespace", help="Value for option csharp_namespace.")
@click.option(
    "--proto-lock",
    "-l",
    type=click.Path(dir_okay=False),
    help=f"Lock file to read field numbers from (default: <output>/{LOCK_FILENAME}).",
)
@click.option(
    "--idempotent-queries/--no-idempotent-queries",
    default=True,
    help="Mark query RPCs with idempotency_level = NO_SIDE_EFFECTS.",
)
@click.option(
    "--include-comments/--no-include-comments",
    default=True,
    help="Carry schema descriptions over as proto comments.",
)
@click.option("--custom-scalar-mapping", help='JSON object of scalar mappings, e.g. \'{"DateTime": "google.protobuf.Timestamp"}\'.')
@click.option(
    "--custom-scalar-mapping-file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of scalar mappings.",
)
@click.option("--max-depth", default=DEFAULT_MAX_DEPTH, show_default=True, type=click.IntRange(min=1), help="Maximum selection depth.")
@click.option("--header", help="Comment header to prepend to the generated proto.")
@click.option(
    "--template-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory with templates overriding the built-in ones.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
def generate(
    name: str,
    schema: str,
    operations: str,
    output: str,
    package_name: str,
    go_package: str | None,
    java_package: str | None,
    csharp_namespace: str | None,
    proto_lock: str | None,
    idempotent_queries: bool,
    include_comments: bool,
    custom_scalar_mapping: str | None,
    custom_scalar_mapping_file: str | None,
    max_depth: int,
    header: str | None,
    template_dir: str | None,
    verbose: bool,
):
    """Generate a proto3 service named NAME from GraphQL operations.

    Examples:

        gql-protogen generate users -s ./schema.graphql -w ./operations -o ./proto

        gql-protogen generate users -s ./schema -w ./operations -g example.com/users/v1
    """
    setup_logging(verbose)
    output_path = Path(output).resolve()
    lock_path = Path(proto_lock).resolve() if proto_lock else output_path / LOCK_FILENAME

    if verbose:
        click.echo(f"Schema: {schema}")
        click.echo(f"Operations: {operations}")
        click.echo(f"Output: {output_path}")
        click.echo(f"Lock: {lock_path}")

    language_options = {}
    if go_package:
        language_options["go_package"] = go_package
    if java_package:
        language_options["java_package"] = java_package
    if csharp_namespace:
        language_options["csharp_namespace"] = csharp_namespace

    config = CompilerConfig(
        service_name=name,
        package_name=package_name,
        language_options=language_options,
        mark_queries_idempotent=idempotent_queries,
        include_comments=include_comments,
        max_depth=max_depth,
    )
    scalars = ScalarRegistry.from_mapping(parse_scalar_mapping(custom_scalar_mapping, custom_scalar_mapping_file))

    try:
        click.echo("Parsing schema...")
        gql_schema = SchemaParser(schema).parse_all()

        reports = validate_schema_field_sets(gql_schema)
        _echo_field_set_reports(reports, verbose)
        if any(r.result.errors for r in reports):
            raise click.ClickException("Schema contains invalid field sets")

        descriptors = load_operations(operations)
        if not descriptors:
            raise click.ClickException(f"No operation files found in {operations}")
        click.echo(f"Compiling {len(descriptors)} operations...")

        lock = read_lock_file(lock_path)
        result = OperationCompiler(gql_schema, config, lock, scalars).compile(descriptors)

        hooks = HookRunner()
        if header:
            hooks.add_post_hook(AddHeaderHook(header))
        proto_text = ProtoGenerator(result.service, template_dir, hooks).render(DEFAULT_FILENAME)
    except ProtogenError as e:
        raise click.ClickException(str(e)) from e

    if verbose:
        click.echo(f"  Methods: {len(result.service.methods)}")
        click.echo(f"  Messages: {len(result.service.messages)}")
        click.echo(f"  Enums: {len(result.service.enums)}")

    proto_path = output_path / DEFAULT_FILENAME
    write_file_atomic(proto_path, proto_text)
    write_file_atomic(lock_path, result.lock.to_json())
    click.echo(f"Done! Generated {result.service.service_name} in {proto_path}")


@main.command()
@click.option(
    "--schema",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to GraphQL schema file or directory.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
def validate(schema: str, verbose: bool):
    """Validate the @key, @requires and @provides field sets of a schema.

    Examples:

        gql-protogen validate -s ./schema.graphql
    """
    setup_logging(verbose)
    try:
        gql_schema = SchemaParser(schema).parse_all()
    except ProtogenError as e:
        raise click.ClickException(str(e)) from e

    reports = validate_schema_field_sets(gql_schema)
    _echo_field_set_reports(reports, verbose)
    errors = sum(len(r.result.errors) for r in reports)
    warnings = sum(len(r.result.warnings) for r in reports)
    click.echo(f"Checked {len(reports)} field sets: {errors} errors, {warnings} warnings.")
    if errors:
        raise SystemExit(1)


def _echo_field_set_reports(reports, verbose: bool):
    for report in reports:
        for warning in report.result.warnings:
            click.echo(f"Warning: {warning}", err=True)
        for error in report.result.errors:
            click.echo(f"Error: @{report.directive} on {report.coordinates}: {error}", err=True)
        if verbose and report.result.is_valid:
            click.echo(f"  @{report.directive} on {report.coordinates}: ok")


if __name__ == "__main__":
    main()
