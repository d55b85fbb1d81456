"""Persisted field number table (the proto lock).

The lock records every field number and enum value number ever handed out,
so regenerating a service keeps existing tags stable. It is a plain value:
load it, pass it to the compiler, and write back the lock the compiler
returns.

Example file (service.proto.lock.json):
    {
      "version": "1.0.0",
      "messages": {
        "GetUserResponse.User": {"fields": {"id": 1, "name": 2}}
      },
      "enums": {
        "Role": {"fields": {"ROLE_ADMIN": 1}}
      }
    }
"""

from collections.abc import Mapping

from pydantic import BaseModel, Field, PositiveInt, ValidationError

from .errors import LockFileError

LOCK_VERSION = "1.0.0"


class MessageLock(BaseModel):
    """Bindings of one message (or enum) in the lock."""

    fields: dict[str, PositiveInt] = Field(default_factory=dict)


class ProtoLock(BaseModel):
    """Field number table for messages and enum values."""

    version: str = LOCK_VERSION
    messages: dict[str, MessageLock] = Field(default_factory=dict)
    enums: dict[str, MessageLock] = Field(default_factory=dict)

    @classmethod
    def from_tables(
        cls,
        messages: Mapping[str, Mapping[str, int]],
        enums: Mapping[str, Mapping[str, int]] | None = None,
    ) -> "ProtoLock":
        """Build a lock from plain message -> field -> number tables."""
        return cls(
            messages={name: MessageLock(fields=dict(fields)) for name, fields in messages.items()},
            enums={name: MessageLock(fields=dict(fields)) for name, fields in (enums or {}).items()},
        )

    def message_table(self) -> dict[str, dict[str, int]]:
        return {name: dict(entry.fields) for name, entry in self.messages.items()}

    def enum_table(self) -> dict[str, dict[str, int]]:
        return {name: dict(entry.fields) for name, entry in self.enums.items()}

    def to_json(self) -> str:
        """Serialize to the on-disk JSON form."""
        return self.model_dump_json(indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str) -> "ProtoLock":
        """Parse the on-disk JSON form.

        Raises:
            LockFileError: If the text is not a valid lock
        """
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise LockFileError(f"Invalid proto lock: {e}") from e
