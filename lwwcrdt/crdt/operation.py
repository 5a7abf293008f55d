"""Immutable, totally ordered operations on a replicated JSON document.

An ``Operation`` is the unit every replica exchanges. Replicas never
share documents, only operations, and rebuild the document by replaying
them in the order defined here:

    timestamp  ->  kind rank  ->  id  ->  payload digest

The order uses only stable values (no Python ``hash``), so two
processes holding the same operations always replay them identically.

Example::

    op = Operation.update(10, [{"op": "add", "path": "/x", "value": 1}])
    op.apply({})    # {"x": 1}
"""

from __future__ import annotations

import functools
import json
import random
from collections.abc import Mapping
from enum import Enum
from typing import Any, Self

from lwwcrdt.crdt import patch as jp
from lwwcrdt.utils.ids import new_id


class OperationType(Enum):
    """Kind of an operation; the value is its tie-break rank."""

    CREATE = 0
    UPDATE = 1
    DELETE = 2
    READ = 3


class InvalidOperationError(Exception):
    """An operation cannot be applied to the document it was replayed against.

    Expected under out-of-order delivery: the replay engine catches it
    and quarantines the operation instead of aborting.
    """

    def __init__(self, operation: Operation, reason: str):
        super().__init__(f"{operation!r}: {reason}")
        self.operation = operation
        self.reason = reason


@functools.total_ordering
class Operation:
    """A CREATE, READ, UPDATE or DELETE stamped with a time and a unique id.

    Only UPDATE carries a payload, an RFC 6902 patch. The payload is held
    as canonical JSON text so the instance stays immutable; ``payload``
    hands out a fresh copy on each access.

    Args:
        op_id: Unique identifier.
        kind: The operation kind.
        timestamp: Non-negative integer authoring time.
        payload: Patch steps, required for UPDATE and forbidden otherwise.

    Raises:
        ValueError: Any of the above constraints is violated.
    """

    __slots__ = ("_digest", "_id", "_kind", "_payload_json", "_timestamp")

    def __init__(
        self,
        op_id: str,
        kind: OperationType,
        timestamp: int,
        payload: list[Mapping[str, Any]] | None = None,
    ):
        if not isinstance(op_id, str) or not op_id:
            raise ValueError(f"operation id must be a non-empty string, got {op_id!r}")
        if not isinstance(kind, OperationType):
            raise ValueError(f"kind must be an OperationType, got {kind!r}")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError(f"timestamp must be an int, got {timestamp!r}")
        if timestamp < 0:
            raise ValueError(f"timestamp must be >= 0, got {timestamp}")
        if (kind is OperationType.UPDATE) != (payload is not None):
            raise ValueError(f"{kind.name} operation {'requires' if kind is OperationType.UPDATE else 'forbids'} a payload")
        if payload is not None:
            if not isinstance(payload, (list, tuple)) or not all(isinstance(step, Mapping) for step in payload):
                raise ValueError(f"payload must be a list of patch steps, got {payload!r}")
            try:
                payload_json = jp.canonical_json([dict(step) for step in payload])
            except (TypeError, ValueError) as e:
                raise ValueError(f"payload is not JSON-serializable: {e}") from e
        else:
            payload_json = None

        self._id = op_id
        self._kind = kind
        self._timestamp = timestamp
        self._payload_json = payload_json
        self._digest = "" if payload_json is None else jp.digest(json.loads(payload_json))

    @classmethod
    def create(cls, timestamp: int, rng: random.Random | None = None) -> Self:
        return cls(new_id(rng), OperationType.CREATE, timestamp)

    @classmethod
    def read(cls, timestamp: int, rng: random.Random | None = None) -> Self:
        return cls(new_id(rng), OperationType.READ, timestamp)

    @classmethod
    def update(cls, timestamp: int, payload: list[Mapping[str, Any]], rng: random.Random | None = None) -> Self:
        return cls(new_id(rng), OperationType.UPDATE, timestamp, payload)

    @classmethod
    def delete(cls, timestamp: int, rng: random.Random | None = None) -> Self:
        return cls(new_id(rng), OperationType.DELETE, timestamp)

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> OperationType:
        return self._kind

    @property
    def timestamp(self) -> int:
        return self._timestamp

    @property
    def payload(self) -> list[dict[str, Any]] | None:
        """A copy of the patch steps, or None for non-UPDATE operations."""
        if self._payload_json is None:
            return None
        return json.loads(self._payload_json)

    @property
    def sort_key(self) -> tuple[int, int, str, str]:
        """The total-order key used for replay."""
        return (self._timestamp, self._kind.value, self._id, self._digest)

    def mimic(self, rng: random.Random | None = None) -> Operation:
        """Return the same logical change under a fresh id."""
        return Operation(new_id(rng), self._kind, self._timestamp, self.payload)

    def apply(self, document: Any) -> Any:
        """Return the document that results from applying this operation.

        The input document is never mutated.

        Raises:
            InvalidOperationError: An UPDATE met an absent document or its
                patch does not fit the document's structure.
        """
        if self._kind is OperationType.CREATE:
            return {}
        if self._kind is OperationType.READ:
            return document
        if self._kind is OperationType.DELETE:
            return None
        if document is None:
            raise InvalidOperationError(self, "cannot update an absent document")
        try:
            return jp.apply(document, self.payload)
        except jp.PatchError as e:
            raise InvalidOperationError(self, str(e)) from e

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {
            "id": self._id,
            "kind": self._kind.name,
            "timestamp": self._timestamp,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.

        Raises:
            ValueError: Unknown kind or an invalid combination of fields.
        """
        try:
            kind = OperationType[data["kind"]]
        except KeyError as e:
            raise ValueError(f"unknown or missing operation kind in {data!r}") from e
        return cls(data.get("id"), kind, data.get("timestamp"), data.get("payload"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        return (
            self._id == other._id
            and self._kind is other._kind
            and self._timestamp == other._timestamp
            and self._payload_json == other._payload_json
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Operation):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash((self._id, self._kind, self._timestamp, self._payload_json))

    def __repr__(self) -> str:
        return f"Operation(kind={self._kind.name}, timestamp={self._timestamp}, id={self._id!r})"
