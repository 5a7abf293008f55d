"""Two-Phase Set (add-set / remove-set) of operations.

An operation is effective while it is in the add-set and not in the
remove-set. Removal is itself an insertion (into the remove-set), so
both sets only grow and two replicas holding the same insertions hold
the same effective set regardless of arrival order. Remove dominates:
an operation in both sets is never effective, whatever its timestamp.

Example::

    s = OperationTwoSet()
    s.add(op)
    s.remove(op)
    assert s.effective() == []
"""

from __future__ import annotations

from typing import Self

from lwwcrdt.crdt.operation import Operation, OperationType


class OperationTwoSet:
    """Add-set / remove-set pair of ``Operation`` values."""

    __slots__ = ("_add", "_remove")

    def __init__(self) -> None:
        self._add: set[Operation] = set()
        self._remove: set[Operation] = set()

    @property
    def add_set(self) -> frozenset[Operation]:
        return frozenset(self._add)

    @property
    def remove_set(self) -> frozenset[Operation]:
        return frozenset(self._remove)

    @property
    def add_count(self) -> int:
        return len(self._add)

    @property
    def remove_count(self) -> int:
        return len(self._remove)

    @property
    def operation_count(self) -> int:
        """Number of effective operations."""
        return len(self._add - self._remove)

    def add(self, operation: Operation) -> None:
        self._add.add(operation)

    def remove(self, operation: Operation) -> None:
        """Tombstone an operation, whether or not it was ever added."""
        self._remove.add(operation)

    def effective(self) -> list[Operation]:
        """Effective operations (add minus remove) in replay order."""
        return sorted(self._add - self._remove)

    def is_empty(self) -> bool:
        """True if no operation is effective."""
        return not (self._add - self._remove)

    def clear(self) -> None:
        self._add.clear()
        self._remove.clear()

    def merge(self, other: OperationTwoSet) -> None:
        """Union another replica's sets into this one (in-place).

        Commutative, associative and idempotent.
        """
        self._add |= other._add
        self._remove |= other._remove

    def count(self, kind: OperationType) -> int:
        return sum(1 for op in self._add - self._remove if op.kind is kind)

    def contains_type(self, kind: OperationType) -> bool:
        return any(op.kind is kind for op in self._add - self._remove)

    def is_created(self) -> bool:
        return self.contains_type(OperationType.CREATE)

    def is_read(self) -> bool:
        return self.contains_type(OperationType.READ)

    def is_updated(self) -> bool:
        return self.contains_type(OperationType.UPDATE)

    def is_deleted(self) -> bool:
        return self.contains_type(OperationType.DELETE)

    def count_created(self) -> int:
        return self.count(OperationType.CREATE)

    def count_read(self) -> int:
        return self.count(OperationType.READ)

    def count_updated(self) -> int:
        return self.count(OperationType.UPDATE)

    def count_deleted(self) -> int:
        return self.count(OperationType.DELETE)

    def to_dict(self) -> dict:
        """Serialize both sets, each in replay order."""
        return {
            "type": type(self).__name__,
            "add": [op.to_dict() for op in sorted(self._add)],
            "remove": [op.to_dict() for op in sorted(self._remove)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.
        """
        s = cls()
        for item in data["add"]:
            s.add(Operation.from_dict(item))
        for item in data["remove"]:
            s.remove(Operation.from_dict(item))
        return s

    def __repr__(self) -> str:
        return f"{type(self).__name__}(add={len(self._add)}, remove={len(self._remove)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OperationTwoSet):
            return NotImplemented
        return self._add == other._add and self._remove == other._remove
