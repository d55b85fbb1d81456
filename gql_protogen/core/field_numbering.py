"""Stable field number bookkeeping for generated proto messages.

Proto field numbers are the wire identity of a field, so once a field has
been given a number it must keep it on every later run. The manager holds a
table of message -> field -> number bindings plus a per-message cursor that
only moves forward.

Example:
    manager = FieldNumberManager({"User": {"id": 1, "name": 2}})
    manager.get("User", "name")        # 2
    manager.next_number("User")        # 3
    manager.assign("User", "email", 3)
    manager.snapshot()                 # {"User": {"id": 1, "name": 2, "email": 3}}
"""

from collections.abc import Mapping

FIRST_FIELD_NUMBER = 1


class FieldNumberManager:
    """Tracks field number bindings and per-message cursors.

    A message's cursor is always one past the highest number ever handed
    out or assigned for it. Assigning a number below the cursor never moves
    it back, so `next_number` cannot return a number that was already used.
    """

    def __init__(self, table: Mapping[str, Mapping[str, int]] | None = None):
        self._bindings: dict[str, dict[str, int]] = {}
        self._cursors: dict[str, int] = {}
        for message, fields in (table or {}).items():
            for field_name, number in fields.items():
                self.assign(message, field_name, number)

    def next_number(self, message: str) -> int:
        """Return the next free number for a message and advance its cursor."""
        number = self._cursors.get(message, FIRST_FIELD_NUMBER)
        self._cursors[message] = number + 1
        return number

    def assign(self, message: str, field_name: str, number: int):
        """Bind a field to a number, replacing any earlier binding for that field."""
        self._bindings.setdefault(message, {})[field_name] = number
        cursor = self._cursors.get(message, FIRST_FIELD_NUMBER)
        self._cursors[message] = max(cursor, number + 1)

    def get(self, message: str, field_name: str) -> int | None:
        """Return the number bound to a field, or None if it has none."""
        return self._bindings.get(message, {}).get(field_name)

    def reset_message(self, message: str):
        """Forget every binding of one message and restart its numbering."""
        self._bindings.pop(message, None)
        self._cursors.pop(message, None)

    def reset_all(self):
        self._bindings.clear()
        self._cursors.clear()

    def fields_of(self, message: str) -> dict[str, int]:
        """Return a copy of one message's bindings."""
        return dict(self._bindings.get(message, {}))

    def messages(self) -> list[str]:
        """Return the names of messages that currently hold bindings."""
        return [name for name, fields in self._bindings.items() if fields]

    def snapshot(self) -> dict[str, dict[str, int]]:
        """Return the whole table, with each message's fields ordered by number."""
        return {
            message: dict(sorted(fields.items(), key=lambda item: item[1]))
            for message, fields in self._bindings.items()
            if fields
        }
