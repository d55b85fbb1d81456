"""Tests for field number bookkeeping."""

from gql_protogen.core.field_numbering import FieldNumberManager


class TestNextNumber:
    """Tests for FieldNumberManager.next_number."""

    def test_sequential_numbers_start_at_one(self):
        manager = FieldNumberManager()
        assert [manager.next_number("User") for _ in range(3)] == [1, 2, 3]

    def test_messages_are_independent(self):
        manager = FieldNumberManager()
        manager.next_number("A")
        manager.next_number("A")
        assert manager.next_number("B") == 1
        assert manager.next_number("A") == 3

    def test_next_number_does_not_bind(self):
        manager = FieldNumberManager()
        manager.next_number("User")
        assert manager.fields_of("User") == {}


class TestAssign:
    """Tests for FieldNumberManager.assign."""

    def test_get_returns_assigned_number(self):
        manager = FieldNumberManager()
        manager.assign("User", "id", 1)
        assert manager.get("User", "id") == 1

    def test_get_unknown_field(self):
        manager = FieldNumberManager()
        assert manager.get("User", "id") is None
        manager.assign("User", "id", 1)
        assert manager.get("User", "name") is None

    def test_high_assignment_advances_cursor(self):
        manager = FieldNumberManager()
        manager.assign("A", "f1", 10)
        assert manager.next_number("A") == 11

    def test_low_assignment_never_retracts_cursor(self):
        manager = FieldNumberManager()
        manager.assign("A", "f1", 10)
        assert manager.next_number("A") == 11
        manager.assign("A", "f2", 5)
        assert manager.next_number("A") == 12

    def test_low_assignment_without_next_number(self):
        manager = FieldNumberManager()
        manager.assign("A", "f1", 10)
        manager.assign("A", "f2", 5)
        assert manager.next_number("A") == 11

    def test_reassign_overwrites_binding(self):
        manager = FieldNumberManager()
        manager.assign("User", "id", 1)
        manager.assign("User", "id", 3)
        assert manager.get("User", "id") == 3
        assert manager.fields_of("User") == {"id": 3}

    def test_assign_does_not_touch_other_messages(self):
        manager = FieldNumberManager()
        manager.assign("A", "f1", 7)
        assert manager.next_number("B") == 1


class TestReset:
    """Tests for reset_message and reset_all."""

    def test_reset_message_scope(self):
        manager = FieldNumberManager()
        manager.assign("A", "x", 4)
        manager.assign("B", "y", 9)
        manager.reset_message("A")

        assert manager.fields_of("A") == {}
        assert manager.next_number("A") == 1
        assert manager.get("B", "y") == 9
        assert manager.next_number("B") == 10

    def test_reset_unknown_message_is_harmless(self):
        manager = FieldNumberManager()
        manager.reset_message("Missing")
        assert manager.messages() == []

    def test_reset_all(self):
        manager = FieldNumberManager({"A": {"x": 1}, "B": {"y": 2}})
        manager.reset_all()
        assert manager.snapshot() == {}
        assert manager.next_number("A") == 1
        assert manager.next_number("B") == 1


class TestTable:
    """Tests for seeding from and exporting a table."""

    def test_seeded_bindings_are_kept(self):
        manager = FieldNumberManager({"User": {"id": 1, "name": 4}})
        assert manager.get("User", "name") == 4
        assert manager.next_number("User") == 5

    def test_fields_of_is_a_copy(self):
        manager = FieldNumberManager({"User": {"id": 1}})
        fields = manager.fields_of("User")
        fields["name"] = 2
        assert manager.get("User", "name") is None

    def test_snapshot_orders_fields_by_number(self):
        manager = FieldNumberManager()
        manager.assign("M", "b", 2)
        manager.assign("M", "a", 1)
        assert list(manager.snapshot()["M"]) == ["a", "b"]

    def test_snapshot_skips_reset_messages(self):
        manager = FieldNumberManager({"A": {"x": 1}, "B": {"y": 1}})
        manager.reset_message("A")
        assert manager.snapshot() == {"B": {"y": 1}}
        assert manager.messages() == ["B"]

    def test_seed_table_is_not_mutated(self):
        table = {"User": {"id": 1}}
        manager = FieldNumberManager(table)
        manager.assign("User", "name", manager.next_number("User"))
        assert table == {"User": {"id": 1}}
