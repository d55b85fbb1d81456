"""Tests for rendering compiled services to proto3 text."""

import pytest

from gql_protogen.core.generator import ProtoGenerator, proto_comment
from gql_protogen.core.hooks import AddHeaderHook, HookRunner
from gql_protogen.core.ir import (
    CompiledService,
    ProtoEnum,
    ProtoEnumValue,
    ProtoField,
    ProtoMessage,
    RpcMethod,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def service():
    return CompiledService(
        service_name="UsersService",
        package_name="users.v1",
        methods=[
            RpcMethod("GetUser", "GetUserRequest", "GetUserResponse", idempotency_level="NO_SIDE_EFFECTS"),
            RpcMethod("CreateUser", "CreateUserRequest", "CreateUserResponse", operation_type="mutation"),
        ],
        messages=[
            ProtoMessage("GetUserRequest", [ProtoField("id", "string", 1)]),
            ProtoMessage(
                "GetUserResponse",
                [ProtoField("user", "User", 1)],
                nested=[
                    ProtoMessage(
                        "User",
                        [ProtoField("id", "string", 1), ProtoField("tags", "string", 2, repeated=True)],
                        full_name="GetUserResponse.User",
                    ),
                ],
            ),
        ],
        enums=[
            ProtoEnum("Role", [ProtoEnumValue("ROLE_UNSPECIFIED", 0), ProtoEnumValue("ROLE_ADMIN", 1)]),
        ],
        imports=["google/protobuf/wrappers.proto"],
        options={"go_package": "example.com/users/v1"},
    )


EXPECTED = """\
syntax = "proto3";
package users.v1;

import "google/protobuf/wrappers.proto";

option go_package = "example.com/users/v1";

service UsersService {
  rpc GetUser(GetUserRequest) returns (GetUserResponse) {
    option idempotency_level = NO_SIDE_EFFECTS;
  }
  rpc CreateUser(CreateUserRequest) returns (CreateUserResponse) {}
}

message GetUserRequest {
  string id = 1;
}

message GetUserResponse {
  message User {
    string id = 1;
    repeated string tags = 2;
  }
  User user = 1;
}

enum Role {
  ROLE_UNSPECIFIED = 0;
  ROLE_ADMIN = 1;
}
"""


# =============================================================================
# Rendering
# =============================================================================


class TestRender:
    """Tests for ProtoGenerator.render."""

    def test_full_layout(self, service):
        assert ProtoGenerator(service).render() == EXPECTED

    def test_without_imports_or_options(self, service):
        service.imports = []
        service.options = {}
        text = ProtoGenerator(service).render()
        assert text.startswith('syntax = "proto3";\npackage users.v1;\n\nservice UsersService {\n')

    def test_streaming_method(self, service):
        service.methods = [RpcMethod("Updates", "UpdatesRequest", "UpdatesResponse", server_streaming=True)]
        text = ProtoGenerator(service).render()
        assert "  rpc Updates(UpdatesRequest) returns (stream UpdatesResponse) {}\n" in text

    def test_empty_message(self, service):
        service.messages = [ProtoMessage("EmptyRequest")]
        text = ProtoGenerator(service).render()
        assert "message EmptyRequest {\n}\n" in text

    def test_comments(self, service):
        service.messages[0].comment = "Request for a user."
        service.messages[0].fields[0].comment = "The user id.\nMust exist."
        service.enums[0].values[1].comment = "Full access"
        text = ProtoGenerator(service).render()
        assert "// Request for a user.\nmessage GetUserRequest {\n" in text
        assert "  // The user id.\n  // Must exist.\n  string id = 1;\n" in text
        assert "  // Full access\n  ROLE_ADMIN = 1;\n" in text

    def test_method_comment(self, service):
        service.methods[1].comment = "Creates a user."
        text = ProtoGenerator(service).render()
        assert "  // Creates a user.\n  rpc CreateUser(" in text

    def test_rendering_is_deterministic(self, service):
        assert ProtoGenerator(service).render() == ProtoGenerator(service).render()


class TestProtoComment:
    """Tests for the proto_comment filter."""

    def test_empty(self):
        assert proto_comment(None) == ""
        assert proto_comment("") == ""

    def test_multiline_with_indent(self):
        assert proto_comment("first\n\nsecond\n", "  ") == "  // first\n  //\n  // second"


class TestCustomization:
    """Tests for hooks and template overrides."""

    def test_post_hook_adds_header(self, service):
        hooks = HookRunner()
        hooks.add_post_hook(AddHeaderHook("Code generated by gql-protogen. DO NOT EDIT."))
        text = ProtoGenerator(service, hooks=hooks).render()
        assert text == "// Code generated by gql-protogen. DO NOT EDIT.\n\n" + EXPECTED

    def test_template_dir_overrides_builtin(self, service, tmp_path):
        (tmp_path / "service.proto.j2").write_text("custom {{ service.service_name }}\n")
        text = ProtoGenerator(service, template_dir=str(tmp_path)).render()
        assert text == "custom UsersService\n"

    def test_missing_template_dir_falls_back(self, service, tmp_path):
        text = ProtoGenerator(service, template_dir=str(tmp_path / "missing")).render()
        assert text == EXPECTED
