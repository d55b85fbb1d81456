"""Render hooks for customizing proto generation.

Hooks run inside ProtoGenerator.render, after the compiler has settled
every field number, so they change what is written to service.proto but
never what is written to the lock. A hook that drops an RPC therefore
keeps its numbers reserved for when the RPC comes back.

Pre-render hooks reshape the CompiledService (e.g. publish only a subset
of RPCs); post-render hooks rewrite the final proto text (e.g. the
`--header` option of `gql-protogen generate` is an AddHeaderHook).

Example usage:
    from gql_protogen.core.hooks import PreRenderHook, PostRenderHook

    # Pre-render hook that renames the package for a public build
    class PublicPackage(PreRenderHook):
        def pre_render(self, service):
            return dataclasses.replace(service, package_name="users.public.v1")

    # Post-render hook to add a license header
    class AddLicenseHeader(PostRenderHook):
        def post_render(self, filename, content):
            return "// Copyright 2024 My Company\\n\\n" + content
"""

import dataclasses
from typing import Protocol, runtime_checkable

from .ir import CompiledService
from .scalars import ScalarRegistry


@runtime_checkable
class PreRenderHook(Protocol):
    """Protocol for pre-render hooks.

    The service passed in is the compiler's result; hooks should return a
    new CompiledService (dataclasses.replace works well) rather than edit
    it, so the same result can be rendered more than once.
    """

    def pre_render(self, service: CompiledService) -> CompiledService:
        """Called before rendering.

        Args:
            service: The compiled service

        Returns:
            The service to render
        """
        ...


@runtime_checkable
class PostRenderHook(Protocol):
    """Protocol for post-render hooks.

    Post-render hooks receive the rendered proto text just before it is
    written. The text must stay valid proto3, so hooks usually only add
    comments or options.
    """

    def post_render(self, filename: str, content: str) -> str:
        """Called after rendering.

        Args:
            filename: The name of the output file (e.g., "service.proto")
            content: The rendered proto text

        Returns:
            The (possibly transformed) text to write
        """
        ...


class AddHeaderHook:
    """Prepends a comment header, as done by `gql-protogen generate --header`.

    Lines not already starting with "//" are turned into comments.

    Example:
        hook = AddHeaderHook("Code generated by gql-protogen. DO NOT EDIT.")
    """

    def __init__(self, header: str):
        self.header = header

    def post_render(self, _filename: str, content: str) -> str:
        """Add the header to the beginning of the file."""
        lines = []
        for line in self.header.rstrip("\n").splitlines():
            lines.append(line if line.startswith("//") else f"// {line}".rstrip())
        return "\n".join(lines) + "\n\n" + content


def _reachable(service: CompiledService, roots: set[str]) -> set[str]:
    """Return every type name reachable from `roots` through message fields."""
    messages = {m.name: m for m in service.messages}
    seen: set[str] = set()
    pending = list(roots)
    while pending:
        name = pending.pop()
        if name in seen:
            continue
        seen.add(name)
        message = messages.get(name)
        if message is not None:
            pending.extend(message.referenced_types())
    return seen


class FilterMethodsHook:
    """Publishes only the RPCs whose names pass a prefix/suffix filter.

    Messages, enums and well-known imports that only the removed RPCs
    used are dropped as well; anything a remaining RPC still reaches is
    kept. The compiled service itself is left untouched.

    Example:
        # Remove all RPCs starting with "Internal"
        hook = FilterMethodsHook(exclude_prefix="Internal")
    """

    def __init__(
        self,
        exclude_prefix: str | None = None,
        exclude_suffix: str | None = None,
        include_prefix: str | None = None,
        include_suffix: str | None = None,
    ):
        self.exclude_prefix = exclude_prefix
        self.exclude_suffix = exclude_suffix
        self.include_prefix = include_prefix
        self.include_suffix = include_suffix

    def _should_include(self, name: str) -> bool:
        """Check if an RPC should be kept."""
        if self.exclude_prefix and name.startswith(self.exclude_prefix):
            return False
        if self.exclude_suffix and name.endswith(self.exclude_suffix):
            return False
        if self.include_prefix and not name.startswith(self.include_prefix):
            return False
        if self.include_suffix and not name.endswith(self.include_suffix):
            return False
        return True

    def pre_render(self, service: CompiledService) -> CompiledService:
        """Return a copy of the service without the filtered RPCs and their types."""
        kept = [m for m in service.methods if self._should_include(m.name)]
        removed = [m for m in service.methods if not self._should_include(m.name)]
        if not removed:
            return service

        kept_types = _reachable(service, {n for m in kept for n in (m.request_type, m.response_type)})
        removed_types = _reachable(service, {n for m in removed for n in (m.request_type, m.response_type)})
        dropped = removed_types - kept_types
        kept_imports = {ScalarRegistry.import_for(t) for t in kept_types}
        dropped_imports = {ScalarRegistry.import_for(t) for t in dropped} - kept_imports

        return dataclasses.replace(
            service,
            methods=kept,
            messages=[m for m in service.messages if m.name not in dropped],
            enums=[e for e in service.enums if e.name not in dropped],
            imports=[i for i in service.imports if i not in dropped_imports],
        )


class HookRunner:
    """Runs pre- and post-render hooks in the order they were added.

    Each pre-render hook sees the service returned by the previous one;
    each post-render hook sees the text returned by the previous one.
    """

    def __init__(self):
        self.pre_hooks: list[PreRenderHook] = []
        self.post_hooks: list[PostRenderHook] = []

    def add_pre_hook(self, hook: PreRenderHook):
        self.pre_hooks.append(hook)

    def add_post_hook(self, hook: PostRenderHook):
        self.post_hooks.append(hook)

    def run_pre_hooks(self, service: CompiledService) -> CompiledService:
        for hook in self.pre_hooks:
            service = hook.pre_render(service)
        return service

    def run_post_hooks(self, filename: str, content: str) -> str:
        for hook in self.post_hooks:
            content = hook.post_render(filename, content)
        return content
