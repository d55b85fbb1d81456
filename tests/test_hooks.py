"""Tests for render hooks."""

import dataclasses

import pytest

from gql_protogen.core.hooks import (
    AddHeaderHook,
    FilterMethodsHook,
    HookRunner,
    PostRenderHook,
    PreRenderHook,
)
from gql_protogen.core.ir import (
    CompiledService,
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoMessage,
    RpcMethod,
)


@pytest.fixture
def sample_service():
    """Create a sample compiled service for testing."""
    return CompiledService(
        service_name="UsersService",
        package_name="users.v1",
        methods=[
            RpcMethod("GetUser", "GetUserRequest", "GetUserResponse"),
            RpcMethod("InternalStats", "InternalStatsRequest", "InternalStatsResponse"),
            RpcMethod("CreateUser", "CreateUserRequest", "CreateUserResponse", operation_type="mutation"),
        ],
        messages=[
            ProtoMessage("GetUserRequest"),
            ProtoMessage("GetUserResponse"),
            ProtoMessage("InternalStatsRequest"),
            ProtoMessage("InternalStatsResponse"),
            ProtoMessage("UserInput"),
            ProtoMessage("CreateUserRequest", [ProtoField("input", "UserInput", 1)]),
            ProtoMessage("CreateUserResponse"),
        ],
    )


@pytest.fixture
def typed_service():
    """A service whose RPCs use enums, input messages and well-known types."""
    return CompiledService(
        service_name="UsersService",
        package_name="users.v1",
        methods=[
            RpcMethod("GetUser", "GetUserRequest", "GetUserResponse"),
            RpcMethod("InternalStats", "InternalStatsRequest", "InternalStatsResponse"),
        ],
        messages=[
            ProtoMessage("GetUserRequest", [ProtoField("id", "string", 1)]),
            ProtoMessage(
                "GetUserResponse",
                [ProtoField("user", "User", 1)],
                nested=[ProtoMessage("User", [
                    ProtoField("id", "string", 1),
                    ProtoField("role", "Role", 2, package_level=True),
                    ProtoField("name", "google.protobuf.StringValue", 3),
                ], full_name="GetUserResponse.User")],
            ),
            ProtoMessage("InternalStatsRequest", [ProtoField("filter", "StatsFilter", 1, package_level=True)]),
            ProtoMessage("InternalStatsResponse", [
                ProtoField("period", "Period", 1, package_level=True),
                ProtoField("generated_at", "google.protobuf.Timestamp", 2),
            ]),
            ProtoMessage("StatsFilter", [ProtoField("since", "google.protobuf.Timestamp", 1)]),
        ],
        enums=[
            ProtoEnum("Role", [ProtoEnumValue("ROLE_UNSPECIFIED", 0)]),
            ProtoEnum("Period", [ProtoEnumValue("PERIOD_UNSPECIFIED", 0)]),
        ],
        imports=["google/protobuf/wrappers.proto", "google/protobuf/timestamp.proto"],
    )


class TestAddHeaderHook:
    """Tests for AddHeaderHook."""

    def test_adds_header(self):
        hook = AddHeaderHook("Auto-generated")
        result = hook.post_render("service.proto", 'syntax = "proto3";\n')
        assert result.startswith("// Auto-generated\n\n")

    def test_preserves_content(self):
        hook = AddHeaderHook("Header")
        content = 'syntax = "proto3";\n'
        assert content in hook.post_render("service.proto", content)

    def test_keeps_existing_comment_markers(self):
        hook = AddHeaderHook("// Line 1\nLine 2\n")
        result = hook.post_render("service.proto", "body")
        assert result == "// Line 1\n// Line 2\n\nbody"


class TestFilterMethodsHook:
    """Tests for FilterMethodsHook."""

    def test_exclude_prefix(self, sample_service):
        hook = FilterMethodsHook(exclude_prefix="Internal")
        result = hook.pre_render(sample_service)
        assert [m.name for m in result.methods] == ["GetUser", "CreateUser"]

    def test_drops_messages_of_removed_methods(self, sample_service):
        hook = FilterMethodsHook(exclude_prefix="Internal")
        names = [m.name for m in hook.pre_render(sample_service).messages]
        assert "InternalStatsRequest" not in names
        assert "InternalStatsResponse" not in names
        assert "UserInput" in names

    def test_include_suffix(self, sample_service):
        hook = FilterMethodsHook(include_suffix="User")
        result = hook.pre_render(sample_service)
        assert [m.name for m in result.methods] == ["GetUser", "CreateUser"]

    def test_shared_input_message_kept(self, sample_service):
        hook = FilterMethodsHook(exclude_prefix="Get")
        names = [m.name for m in hook.pre_render(sample_service).messages]
        assert "GetUserRequest" not in names
        assert "UserInput" in names
        assert "CreateUserRequest" in names

    def test_drops_inputs_enums_and_imports_of_removed_methods(self, typed_service):
        hook = FilterMethodsHook(exclude_prefix="Internal")
        result = hook.pre_render(typed_service)

        assert [m.name for m in result.messages] == ["GetUserRequest", "GetUserResponse"]
        assert [e.name for e in result.enums] == ["Role"]
        assert result.imports == ["google/protobuf/wrappers.proto"]

    def test_shared_import_kept(self, typed_service):
        typed_service.messages[1].nested[0].fields.append(
            ProtoField("seen_at", "google.protobuf.Timestamp", 4),
        )
        result = FilterMethodsHook(exclude_prefix="Internal").pre_render(typed_service)
        assert "google/protobuf/timestamp.proto" in result.imports

    def test_qualified_enum_reference_kept(self, typed_service):
        typed_service.messages[1].nested[0].fields[1].type_name = ".users.v1.Role"
        result = FilterMethodsHook(exclude_prefix="Internal").pre_render(typed_service)
        assert [e.name for e in result.enums] == ["Role"]

    def test_input_service_not_modified(self, typed_service):
        hook = FilterMethodsHook(exclude_prefix="Internal")
        result = hook.pre_render(typed_service)

        assert result is not typed_service
        assert len(typed_service.methods) == 2
        assert len(typed_service.messages) == 5
        assert len(typed_service.enums) == 2
        assert len(typed_service.imports) == 2

    def test_nothing_removed_returns_same_service(self, typed_service):
        hook = FilterMethodsHook(exclude_prefix="Admin")
        assert hook.pre_render(typed_service) is typed_service


class TestHookRunner:
    """Tests for HookRunner."""

    def test_run_pre_hooks(self, sample_service):
        runner = HookRunner()
        runner.add_pre_hook(FilterMethodsHook(exclude_prefix="Internal"))

        result = runner.run_pre_hooks(sample_service)
        assert "InternalStats" not in [m.name for m in result.methods]

    def test_run_post_hooks(self):
        runner = HookRunner()
        runner.add_post_hook(AddHeaderHook("Header"))

        result = runner.run_post_hooks("service.proto", "body")
        assert result.startswith("// Header")

    def test_multiple_post_hooks(self):
        runner = HookRunner()
        runner.add_post_hook(AddHeaderHook("Line 1"))
        runner.add_post_hook(AddHeaderHook("Line 0"))

        result = runner.run_post_hooks("service.proto", "body")
        # Second header wraps the first
        assert result == "// Line 0\n\n// Line 1\n\nbody"

    def test_no_hooks_is_identity(self, sample_service):
        runner = HookRunner()
        assert runner.run_pre_hooks(sample_service) is sample_service
        assert runner.run_post_hooks("service.proto", "body") == "body"

    def test_replacing_pre_hook_leaves_service_unchanged(self, sample_service):
        class PublicPackage:
            def pre_render(self, service):
                return dataclasses.replace(service, package_name="users.public.v1")

        runner = HookRunner()
        runner.add_pre_hook(PublicPackage())

        result = runner.run_pre_hooks(sample_service)
        assert result.package_name == "users.public.v1"
        assert sample_service.package_name == "users.v1"


class TestProtocolCompliance:
    """Tests for protocol compliance."""

    def test_add_header_is_post_hook(self):
        assert isinstance(AddHeaderHook("header"), PostRenderHook)

    def test_filter_methods_is_pre_hook(self):
        assert isinstance(FilterMethodsHook(), PreRenderHook)

    def test_custom_pre_hook(self):
        class CustomPreHook:
            def pre_render(self, service):
                return service

        assert isinstance(CustomPreHook(), PreRenderHook)
