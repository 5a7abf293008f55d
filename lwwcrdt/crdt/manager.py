"""Per-object CRDT managers.

A manager binds one ``LastWriteWins`` CRDT to one logical object and is
the only thing that mutates it. It turns status-tagged envelopes into
add-set or remove-set insertions, and turns snapshots of the object into
new operations by diffing them against the replayed document.

- ``CRDTManager`` works on plain JSON documents.
- ``TypedCRDTManager`` adds a ``DocumentCodec`` so callers deal in
  domain objects instead of trees.
- ``JsonManager`` and ``ObjectManager`` are single-replica conveniences
  that approve their own operations as they generate them.

Example::

    m = JsonManager(timestamp=0, document={"title": "draft"})
    m.update({"title": "final"}, timestamp=5)
    m.read(timestamp=3)     # {"title": "draft"}
    m.delete(timestamp=9)
    m.document()            # None
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Generic, Self, TypeVar

from lwwcrdt.crdt import patch as jp
from lwwcrdt.crdt.codec import DecodeError, DocumentCodec
from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
from lwwcrdt.crdt.last_write_wins import LastWriteWins
from lwwcrdt.crdt.operation import Operation

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CRDTManager:
    """Owns the LWW CRDT of one object and exposes its JSON document.

    Args:
        crdt: Existing CRDT state to adopt. A fresh, empty CRDT if None.
    """

    def __init__(self, crdt: LastWriteWins | None = None):
        self._crdt = crdt if crdt is not None else LastWriteWins()

    @property
    def crdt(self) -> LastWriteWins:
        return self._crdt

    def deliver(self, envelope: OperationEnvelope) -> None:
        """Apply an envelope's status to the CRDT.

        APPROVED and PENDING operations join the add-set. REJECTED ones
        join the remove-set.
        """
        if envelope.status is StatusType.REJECTED:
            self.remove_operation(envelope.operation)
        else:
            self.add_operation(envelope.operation)

    def add_operation(self, operation: Operation) -> None:
        self._crdt.add(operation)

    def remove_operation(self, operation: Operation) -> None:
        self._crdt.remove(operation)

    def document(self) -> Any:
        return self._crdt.document()

    def document_as_of(self, timestamp: float) -> Any:
        """The document built from operations stamped at or before ``timestamp``."""
        return self._crdt.document(timestamp)

    def is_created(self) -> bool:
        return self._crdt.is_created()

    def is_deleted(self) -> bool:
        return self._crdt.is_deleted()

    def invalid_operations(self, timestamp: float = math.inf) -> frozenset[Operation]:
        return self._crdt.invalid_operations(timestamp)

    @property
    def invalid_count(self) -> int:
        return self._crdt.invalid_count

    def clear(self) -> None:
        self._crdt.clear()

    def generate_create(self, timestamp: int, rng: random.Random | None = None) -> Operation:
        """A CREATE. It always yields an empty document; content follows as an UPDATE."""
        return Operation.create(timestamp, rng)

    def generate_read(self, timestamp: int, rng: random.Random | None = None) -> Operation:
        return Operation.read(timestamp, rng)

    def generate_update(
        self,
        timestamp: int,
        document: Any,
        rng: random.Random | None = None,
    ) -> Operation | None:
        """An UPDATE turning the current document into ``document``.

        The diff is taken against an empty object while the current
        document is absent.

        Returns:
            The operation, or None when nothing would change.
        """
        current = self._crdt.document()
        changes = jp.diff(current if current is not None else {}, document)
        if not changes:
            return None
        return Operation.update(timestamp, changes, rng)

    def generate_delete(self, timestamp: int, rng: random.Random | None = None) -> Operation:
        return Operation.delete(timestamp, rng)

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {"type": type(self).__name__, "crdt": self._crdt.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.
        """
        return cls(crdt=LastWriteWins.from_dict(data["crdt"]))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._crdt!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CRDTManager):
            return NotImplemented
        return (
            getattr(self, "object_type", None) == getattr(other, "object_type", None)
            and self._crdt == other._crdt
        )


class TypedCRDTManager(CRDTManager, Generic[T]):
    """CRDT manager whose document is the JSON tree of a domain object.

    Args:
        codec: Converts between ``T`` and document trees.
        crdt: Existing CRDT state to adopt.
    """

    def __init__(self, codec: DocumentCodec[T], crdt: LastWriteWins | None = None):
        super().__init__(crdt)
        self._codec = codec

    @property
    def codec(self) -> DocumentCodec[T]:
        return self._codec

    @property
    def object_type(self) -> str:
        return self._codec.object_type

    def generate_initial_update(
        self,
        timestamp: int,
        value: T,
        rng: random.Random | None = None,
    ) -> Operation | None:
        """The UPDATE that fills a freshly created (empty) document with ``value``."""
        changes = jp.diff({}, self._codec.to_tree(value))
        if not changes:
            return None
        return Operation.update(timestamp, changes, rng)

    def generate_update(
        self,
        timestamp: int,
        value: T,
        rng: random.Random | None = None,
    ) -> Operation | None:
        """An UPDATE turning the current document into the tree of ``value``."""
        return super().generate_update(timestamp, self._codec.to_tree(value), rng)

    def object(self) -> T | None:
        """The decoded object now, or None if absent or undecodable."""
        return self._decode(self.document(), math.inf)

    def object_as_of(self, timestamp: float) -> T | None:
        return self._decode(self.document_as_of(timestamp), timestamp)

    def _decode(self, document: Any, timestamp: float) -> T | None:
        if document is None:
            return None
        try:
            return self._codec.from_tree(document)
        except DecodeError as e:
            # Transient under quarantine; not the same as deletion.
            logger.warning(
                "Cannot decode %s document as of %s: %s",
                self._codec.object_type, timestamp, e,
            )
            return None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["object_type"] = self._codec.object_type
        return data

    @classmethod
    def from_dict(cls, data: dict, codec: DocumentCodec[T]) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.
            codec: Codec for the stored object type.

        Raises:
            ValueError: ``codec`` is for a different object type.
        """
        if data.get("object_type") != codec.object_type:
            raise ValueError(
                f"codec {codec.object_type!r} does not match stored type {data.get('object_type')!r}"
            )
        return cls(codec, crdt=LastWriteWins.from_dict(data["crdt"]))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypedCRDTManager):
            return NotImplemented
        return self.object_type == other.object_type and self._crdt == other._crdt


class JsonManager(CRDTManager):
    """Single-replica JSON document that approves its own operations.

    Args:
        timestamp: Creation time.
        document: Initial content, layered on the CREATE as an UPDATE.
        rng: Source for operation ids.
        crdt: Restored state. No CREATE is recorded when given.
    """

    def __init__(
        self,
        timestamp: int = 0,
        document: dict[str, Any] | None = None,
        rng: random.Random | None = None,
        crdt: LastWriteWins | None = None,
    ):
        super().__init__(crdt)
        self._rng = rng
        if crdt is not None:
            return
        self.add_operation(self.generate_create(timestamp, rng))
        if document is not None:
            self.update(document, timestamp)

    def read(self, timestamp: int) -> Any:
        """Record a READ and return the document as of ``timestamp``."""
        self.add_operation(self.generate_read(timestamp, self._rng))
        return self.document_as_of(timestamp)

    def update(self, document: dict[str, Any], timestamp: int) -> Operation | None:
        op = self.generate_update(timestamp, document, self._rng)
        if op is not None:
            self.add_operation(op)
        return op

    def delete(self, timestamp: int) -> Operation:
        op = self.generate_delete(timestamp, self._rng)
        self.add_operation(op)
        return op


class ObjectManager(TypedCRDTManager[T]):
    """Single-replica typed object that approves its own operations.

    Args:
        codec: Converts between ``T`` and document trees.
        value: Initial object, layered on the CREATE as an UPDATE.
        timestamp: Creation time.
        rng: Source for operation ids.
        crdt: Restored state. No CREATE is recorded when given.
    """

    def __init__(
        self,
        codec: DocumentCodec[T],
        value: T | None = None,
        timestamp: int = 0,
        rng: random.Random | None = None,
        crdt: LastWriteWins | None = None,
    ):
        super().__init__(codec, crdt)
        self._rng = rng
        if crdt is not None:
            return
        self.add_operation(self.generate_create(timestamp, rng))
        initial = None if value is None else self.generate_initial_update(timestamp, value, rng)
        if initial is not None:
            self.add_operation(initial)

    def read(self, timestamp: int) -> T | None:
        """Record a READ and return the object as of ``timestamp``."""
        self.add_operation(self.generate_read(timestamp, self._rng))
        return self.object_as_of(timestamp)

    def update(self, value: T, timestamp: int) -> Operation | None:
        op = self.generate_update(timestamp, value, self._rng)
        if op is not None:
            self.add_operation(op)
        return op

    def delete(self, timestamp: int) -> Operation:
        op = self.generate_delete(timestamp, self._rng)
        self.add_operation(op)
        return op
