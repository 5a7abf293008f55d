"""Structural protocol for document CRDTs built from operation sets.

State is a pair of grow-only sets of ``Operation`` values. ``merge`` is
the union of both sets, so any two replicas holding the same insertions
agree. The document is never stored: ``value`` and ``document`` replay
the effective operations, and operations that do not fit the document
reached so far are reported by ``invalid_operations`` instead of
raising.
"""

from __future__ import annotations

import math
from typing import Any, Protocol, Self, runtime_checkable

from lwwcrdt.crdt.operation import Operation


@runtime_checkable
class CRDT(Protocol):
    """Replicated JSON document over an add-set and a remove-set."""

    @property
    def value(self) -> Any:
        """The document as of now, None when absent."""
        ...

    def add(self, operation: Operation) -> None:
        ...

    def remove(self, operation: Operation) -> None:
        """Tombstone ``operation``; it never becomes effective again."""
        ...

    def merge(self, other: Self) -> None:
        """Union ``other``'s add-set and remove-set into this replica."""
        ...

    def document(self, timestamp: float = math.inf) -> Any:
        ...

    def invalid_operations(self, timestamp: float = math.inf) -> frozenset[Operation]:
        """Effective operations skipped during replay up to ``timestamp``."""
        ...

    def to_dict(self) -> dict:
        ...

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        ...
