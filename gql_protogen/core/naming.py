"""Name conversions between GraphQL and proto3 conventions."""

import re

SERVICE_SUFFIX = "Service"


def snake_case(name: str) -> str:
    """Convert PascalCase or camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def pascal_case(name: str) -> str:
    """Convert snake_case, kebab-case or camelCase to PascalCase."""
    words = re.split(r"[^0-9A-Za-z]+", snake_case(name))
    return "".join(word.capitalize() for word in words if word)


def upper_case(name: str) -> str:
    """Convert to UPPER_CASE."""
    return snake_case(name).upper()


def upper_first(name: str) -> str:
    return name[:1].upper() + name[1:]


def service_name(name: str) -> str:
    """Normalize a user-supplied service name.

    The name is converted to PascalCase and "Service" is appended unless it
    is already there, so "users", "users-service" and "UsersService" all
    become "UsersService".
    """
    normalized = pascal_case(name)
    if not normalized.endswith(SERVICE_SUFFIX):
        normalized += SERVICE_SUFFIX
    return normalized


def enum_value_name(enum_name: str, value: str) -> str:
    """Build the prefixed proto enum value name, e.g. ("UserRole", "admin") -> "USER_ROLE_ADMIN"."""
    return f"{upper_case(enum_name)}_{upper_case(value)}"


def unspecified_value_name(enum_name: str) -> str:
    return f"{upper_case(enum_name)}_UNSPECIFIED"
