"""Tests for Operation construction, ordering and application."""

import random

import pytest

from lwwcrdt.crdt.operation import InvalidOperationError, Operation, OperationType

ADD_X = [{"op": "add", "path": "/x", "value": 1}]


class TestOperationConstruction:
    """Tests for constructor validation."""

    def test_creates_update_with_payload(self):
        op = Operation("a", OperationType.UPDATE, 5, ADD_X)
        assert op.id == "a"
        assert op.kind is OperationType.UPDATE
        assert op.timestamp == 5
        assert op.payload == ADD_X

    @pytest.mark.parametrize("kind", [OperationType.CREATE, OperationType.READ, OperationType.DELETE])
    def test_non_update_has_no_payload(self, kind):
        assert Operation("a", kind, 0).payload is None

    def test_update_without_payload_rejected(self):
        with pytest.raises(ValueError, match="requires a payload"):
            Operation("a", OperationType.UPDATE, 0)

    @pytest.mark.parametrize("kind", [OperationType.CREATE, OperationType.READ, OperationType.DELETE])
    def test_payload_on_non_update_rejected(self, kind):
        with pytest.raises(ValueError, match="forbids a payload"):
            Operation("a", kind, 0, ADD_X)

    def test_negative_timestamp_rejected(self):
        with pytest.raises(ValueError, match=">= 0"):
            Operation("a", OperationType.CREATE, -1)

    @pytest.mark.parametrize("timestamp", [None, 1.5, "3", True])
    def test_non_integer_timestamp_rejected(self, timestamp):
        with pytest.raises(ValueError):
            Operation("a", OperationType.CREATE, timestamp)

    @pytest.mark.parametrize("op_id", [None, ""])
    def test_missing_id_rejected(self, op_id):
        with pytest.raises(ValueError, match="id"):
            Operation(op_id, OperationType.CREATE, 0)

    def test_unserializable_payload_rejected(self, rng):
        with pytest.raises(ValueError, match="JSON-serializable"):
            Operation.update(1, [{"op": "add", "path": "/x", "value": {1, 2}}], rng)

    def test_kind_must_be_operation_type(self):
        with pytest.raises(ValueError, match="OperationType"):
            Operation("a", "CREATE", 0)

    def test_malformed_payload_rejected(self):
        with pytest.raises(ValueError, match="patch steps"):
            Operation("a", OperationType.UPDATE, 0, {"op": "add"})

    def test_payload_is_a_copy(self):
        op = Operation("a", OperationType.UPDATE, 0, ADD_X)
        op.payload[0]["value"] = 99
        assert op.payload == ADD_X

    def test_factories_draw_ids_from_rng(self):
        a = Operation.create(0, random.Random(5))
        b = Operation.create(0, random.Random(5))
        assert a == b
        assert Operation.read(0).kind is OperationType.READ
        assert Operation.delete(0).kind is OperationType.DELETE
        assert Operation.update(0, ADD_X).kind is OperationType.UPDATE

    def test_repr(self):
        op = Operation("abc", OperationType.DELETE, 7)
        assert "DELETE" in repr(op)
        assert "abc" in repr(op)


class TestOperationOrdering:
    """Tests for the replay order."""

    def test_orders_by_timestamp_first(self):
        early = Operation("z", OperationType.READ, 1)
        late = Operation("a", OperationType.CREATE, 2)
        assert early < late

    def test_kind_breaks_timestamp_ties(self):
        ops = [
            Operation("a", OperationType.READ, 3),
            Operation("a", OperationType.DELETE, 3),
            Operation("a", OperationType.UPDATE, 3, ADD_X),
            Operation("a", OperationType.CREATE, 3),
        ]
        assert [op.kind for op in sorted(ops)] == [
            OperationType.CREATE,
            OperationType.UPDATE,
            OperationType.DELETE,
            OperationType.READ,
        ]

    def test_id_breaks_kind_ties(self):
        a = Operation("a", OperationType.CREATE, 3)
        b = Operation("b", OperationType.CREATE, 3)
        assert a < b

    def test_payload_breaks_id_ties(self):
        one = Operation("a", OperationType.UPDATE, 3, ADD_X)
        two = Operation("a", OperationType.UPDATE, 3, [{"op": "add", "path": "/y", "value": 2}])
        assert one != two
        assert (one < two) != (two < one)

    def test_order_independent_of_input_order(self):
        rng = random.Random(9)
        ops = [Operation.create(rng.randrange(3), rng) for _ in range(20)]
        ops += [Operation.update(rng.randrange(3), ADD_X, rng) for _ in range(20)]
        shuffled = list(ops)
        rng.shuffle(shuffled)
        assert sorted(ops) == sorted(shuffled)

    def test_no_ties_between_distinct_operations(self):
        rng = random.Random(2)
        ops = [Operation.create(0, rng) for _ in range(50)]
        keys = {op.sort_key for op in ops}
        assert len(keys) == 50


class TestOperationEquality:
    """Tests for equality and hashing."""

    def test_equal_fields_are_equal(self):
        assert Operation("a", OperationType.UPDATE, 1, ADD_X) == Operation("a", OperationType.UPDATE, 1, ADD_X)

    def test_hash_matches_equality(self):
        ops = {Operation("a", OperationType.CREATE, 1), Operation("a", OperationType.CREATE, 1)}
        assert len(ops) == 1

    def test_not_equal_to_other_types(self):
        assert Operation("a", OperationType.CREATE, 1) != "a"

    def test_mimic_keeps_change_with_new_id(self, rng):
        op = Operation.update(4, ADD_X, rng)
        copy = op.mimic(rng)
        assert copy.id != op.id
        assert copy.kind is op.kind
        assert copy.timestamp == op.timestamp
        assert copy.payload == op.payload


class TestOperationApply:
    """Tests for apply()."""

    def test_create_yields_empty_document(self):
        assert Operation.create(0).apply({"stale": True}) == {}

    def test_read_is_identity(self):
        doc = {"x": 1}
        assert Operation.read(0).apply(doc) is doc

    def test_delete_yields_absent_document(self):
        assert Operation.delete(0).apply({"x": 1}) is None

    def test_update_applies_patch(self):
        assert Operation.update(0, ADD_X).apply({}) == {"x": 1}

    def test_update_does_not_mutate_input(self):
        doc = {}
        Operation.update(0, ADD_X).apply(doc)
        assert doc == {}

    def test_update_on_absent_document_is_invalid(self):
        op = Operation.update(0, ADD_X)
        with pytest.raises(InvalidOperationError) as info:
            op.apply(None)
        assert info.value.operation is op

    def test_conflicting_update_is_invalid(self):
        op = Operation.update(0, [{"op": "remove", "path": "/missing"}])
        with pytest.raises(InvalidOperationError):
            op.apply({"x": 1})


class TestOperationSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self):
        op = Operation("a", OperationType.UPDATE, 3, ADD_X)
        assert Operation.from_dict(op.to_dict()) == op

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="kind"):
            Operation.from_dict({"id": "a", "kind": "MERGE", "timestamp": 0})

    def test_missing_timestamp_rejected(self):
        with pytest.raises(ValueError):
            Operation.from_dict({"id": "a", "kind": "CREATE"})
