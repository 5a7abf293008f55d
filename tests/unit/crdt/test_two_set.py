"""Tests for OperationTwoSet."""

from lwwcrdt.crdt.operation import Operation, OperationType
from lwwcrdt.crdt.protocol import CRDT
from lwwcrdt.crdt.two_set import OperationTwoSet

ADD_X = [{"op": "add", "path": "/x", "value": 1}]


def _ops(rng):
    return [
        Operation.create(0, rng),
        Operation.update(1, ADD_X, rng),
        Operation.read(2, rng),
        Operation.delete(3, rng),
    ]


class TestTwoSetBasics:
    """Tests for add, remove and the effective set."""

    def test_starts_empty(self):
        s = OperationTwoSet()
        assert s.is_empty()
        assert s.effective() == []
        assert s.add_count == 0
        assert s.remove_count == 0

    def test_effective_is_sorted(self, rng):
        ops = _ops(rng)
        s = OperationTwoSet()
        for op in reversed(ops):
            s.add(op)
        assert s.effective() == ops

    def test_add_is_idempotent(self, rng):
        op = Operation.create(0, rng)
        s = OperationTwoSet()
        s.add(op)
        s.add(op)
        assert s.add_count == 1

    def test_remove_dominates(self, rng):
        op = Operation.create(0, rng)
        s = OperationTwoSet()
        s.add(op)
        s.remove(op)
        assert op not in s.effective()
        assert s.is_empty()

    def test_remove_before_add_still_dominates(self, rng):
        op = Operation.create(0, rng)
        s = OperationTwoSet()
        s.remove(op)
        s.add(op)
        assert s.effective() == []

    def test_remove_does_not_shrink_add_set(self, rng):
        op = Operation.create(0, rng)
        s = OperationTwoSet()
        s.add(op)
        s.remove(op)
        assert op in s.add_set
        assert op in s.remove_set

    def test_not_empty_with_only_removed_extra(self, rng):
        kept, dropped = Operation.create(0, rng), Operation.delete(1, rng)
        s = OperationTwoSet()
        s.add(kept)
        s.remove(dropped)
        assert not s.is_empty()
        assert s.operation_count == 1

    def test_clear_empties_both_sets(self, rng):
        s = OperationTwoSet()
        for op in _ops(rng):
            s.add(op)
            s.remove(op)
        s.clear()
        assert s.add_count == 0
        assert s.remove_count == 0


class TestTwoSetQueries:
    """Tests for per-kind queries."""

    def test_counts_per_kind(self, rng):
        s = OperationTwoSet()
        for op in _ops(rng):
            s.add(op)
        s.add(Operation.update(5, ADD_X, rng))
        assert s.count_created() == 1
        assert s.count_read() == 1
        assert s.count_updated() == 2
        assert s.count_deleted() == 1
        assert s.count(OperationType.UPDATE) == 2

    def test_flags_follow_effective_set(self, rng):
        create, _, _, delete = _ops(rng)
        s = OperationTwoSet()
        s.add(create)
        s.add(delete)
        assert s.is_created()
        assert s.is_deleted()
        assert not s.is_updated()
        assert not s.is_read()
        s.remove(delete)
        assert not s.is_deleted()
        assert not s.contains_type(OperationType.DELETE)


class TestTwoSetMerge:
    """Tests for merge and serialization."""

    def test_merge_is_commutative(self, rng):
        ops = _ops(rng)
        a, b = OperationTwoSet(), OperationTwoSet()
        a.add(ops[0])
        a.remove(ops[1])
        b.add(ops[1])
        b.add(ops[2])
        ab, ba = OperationTwoSet(), OperationTwoSet()
        ab.merge(a)
        ab.merge(b)
        ba.merge(b)
        ba.merge(a)
        assert ab == ba
        assert ab.effective() == [ops[0], ops[2]]

    def test_merge_is_idempotent(self, rng):
        a = OperationTwoSet()
        for op in _ops(rng):
            a.add(op)
        before = a.to_dict()
        a.merge(a)
        assert a.to_dict() == before

    def test_round_trip(self, rng):
        ops = _ops(rng)
        s = OperationTwoSet()
        for op in ops:
            s.add(op)
        s.remove(ops[1])
        assert OperationTwoSet.from_dict(s.to_dict()) == s

    def test_not_a_crdt_without_value(self):
        assert not isinstance(OperationTwoSet(), CRDT)

    def test_repr(self, rng):
        s = OperationTwoSet()
        s.add(Operation.create(0, rng))
        assert "add=1" in repr(s)
