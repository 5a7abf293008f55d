"""Last-Write-Wins document reconstruction over an operation two-set.

The document is never stored. It is derived by replaying the effective
operations in total order starting from an absent document:

1. Drop READs and every operation stamped after the requested time.
2. Fold ``Operation.apply`` over the rest in replay order.
3. When an operation does not fit the document reached so far (an
   UPDATE diffed against a different base, or one arriving before its
   CREATE), skip it and record it as invalid. Replay continues from the
   pre-failure document.

Results are memoized per requested timestamp as a ``Trial``. Every
mutating method drops the memo before returning, so a reader never
observes a document older than the sets it was asked about.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any

from lwwcrdt.crdt.operation import InvalidOperationError, Operation, OperationType
from lwwcrdt.crdt.two_set import OperationTwoSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trial:
    """Outcome of one replay.

    Attributes:
        document: Reconstructed document, or None when absent.
        operations: Operations replayed, in order, including invalid ones.
        invalid_operations: Operations skipped because they did not apply.
        timestamp: Replay horizon (``math.inf`` for "now").
    """

    document: Any
    operations: tuple[Operation, ...]
    invalid_operations: frozenset[Operation]
    timestamp: float

    @property
    def effective_operations(self) -> tuple[Operation, ...]:
        """Replayed operations that actually shaped the document."""
        return tuple(op for op in self.operations if op not in self.invalid_operations)


def replay(operations: list[Operation], timestamp: float = math.inf) -> Trial:
    """Replay already sorted ``operations`` up to and including ``timestamp``."""
    document: Any = None
    replayed: list[Operation] = []
    invalid: set[Operation] = set()

    for op in operations:
        if op.timestamp > timestamp:
            break
        if op.kind is OperationType.READ:
            continue
        replayed.append(op)
        try:
            document = op.apply(document)
        except InvalidOperationError as e:
            invalid.add(op)
            logger.debug("Quarantined %s: %s", op, e.reason, extra={"operation_id": op.id})

    return Trial(
        document=document,
        operations=tuple(replayed),
        invalid_operations=frozenset(invalid),
        timestamp=timestamp,
    )


class LastWriteWins(OperationTwoSet):
    """Two-set CRDT whose value is the replayed JSON document.

    Implements the ``CRDT`` protocol: ``value`` is the current document
    and ``merge`` unions another replica's add and remove sets.

    Example::

        lww = LastWriteWins()
        lww.add(Operation.create(0))
        lww.add(Operation.update(10, [{"op": "add", "path": "/x", "value": 1}]))
        assert lww.document() == {"x": 1}
    """

    __slots__ = ("_trials",)

    def __init__(self) -> None:
        super().__init__()
        self._trials: dict[float, Trial] = {}

    def add(self, operation: Operation) -> None:
        super().add(operation)
        self._trials.clear()

    def remove(self, operation: Operation) -> None:
        super().remove(operation)
        self._trials.clear()

    def clear(self) -> None:
        super().clear()
        self._trials.clear()

    def merge(self, other: OperationTwoSet) -> None:
        super().merge(other)
        self._trials.clear()

    def trial(self, timestamp: float = math.inf) -> Trial:
        """Replay result as of ``timestamp``, computed at most once per state."""
        cached = self._trials.get(timestamp)
        if cached is None:
            cached = replay(self.effective(), timestamp)
            self._trials[timestamp] = cached
        return cached

    @property
    def value(self) -> Any:
        """The current document."""
        return self.document()

    def document(self, timestamp: float = math.inf) -> Any:
        """A copy of the document as of ``timestamp``, None when absent."""
        return copy.deepcopy(self.trial(timestamp).document)

    def invalid_operations(self, timestamp: float = math.inf) -> frozenset[Operation]:
        return self.trial(timestamp).invalid_operations

    def effective_operations(self, timestamp: float = math.inf) -> tuple[Operation, ...]:
        """Replayed operations minus the invalid ones."""
        return self.trial(timestamp).effective_operations

    @property
    def invalid_count(self) -> int:
        return len(self.trial().invalid_operations)

    def __repr__(self) -> str:
        return (
            f"LastWriteWins(add={self.add_count}, remove={self.remove_count}, "
            f"invalid={self.invalid_count})"
        )
