"""Status-tagged operations exchanged between replicas.

An envelope says what a replica should do with the operation inside it:

- ``PENDING``: proposed by a replica that does not own the object; held
  in the add-set until the owner rules on it.
- ``APPROVED``: insert into the add-set.
- ``REJECTED``: insert into the remove-set, even on replicas that never
  saw the original.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Self

from lwwcrdt.crdt.operation import Operation
from lwwcrdt.utils.ids import new_id


class StatusType(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class OperationEnvelope:
    """An operation addressed to one replicated object.

    Attributes:
        status: What receivers should do with ``operation``.
        operation: The wrapped operation, shared verbatim by all copies.
        object_id: Identity of the replicated object.
        object_type: Codec name used to decode the object's document.
        author_node_id: Node that issued this envelope.
        envelope_id: Unique id of this envelope.
        cause_id: Envelope this one was issued in response to, if any.
    """

    status: StatusType
    operation: Operation
    object_id: str | None = None
    object_type: str | None = None
    author_node_id: str | None = None
    envelope_id: str = field(default_factory=new_id)
    cause_id: str | None = None

    @property
    def is_authoritative(self) -> bool:
        """True once the owner has ruled (APPROVED or REJECTED)."""
        return self.status is not StatusType.PENDING

    def with_status(
        self,
        status: StatusType,
        author_node_id: str | None = None,
        rng: random.Random | None = None,
    ) -> OperationEnvelope:
        """Copy carrying the same operation under a new status and envelope id."""
        return replace(
            self,
            status=status,
            author_node_id=author_node_id if author_node_id is not None else self.author_node_id,
            envelope_id=new_id(rng),
            cause_id=self.envelope_id,
        )

    def approve(
        self,
        operation: Operation | None = None,
        author_node_id: str | None = None,
        rng: random.Random | None = None,
    ) -> OperationEnvelope:
        """Issue an APPROVED envelope in response to this one.

        Args:
            operation: Operation to approve. Defaults to a re-identified
                copy of this envelope's operation.
            author_node_id: Node issuing the approval.
            rng: Source for the new operation and envelope ids.
        """
        approved = operation if operation is not None else self.operation.mimic(rng)
        return replace(
            self.with_status(StatusType.APPROVED, author_node_id, rng),
            operation=approved,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "operation": self.operation.to_dict(),
            "object_id": self.object_id,
            "object_type": self.object_type,
            "author_node_id": self.author_node_id,
            "envelope_id": self.envelope_id,
            "cause_id": self.cause_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            status=StatusType(data["status"]),
            operation=Operation.from_dict(data["operation"]),
            object_id=data.get("object_id"),
            object_type=data.get("object_type"),
            author_node_id=data.get("author_node_id"),
            envelope_id=data["envelope_id"],
            cause_id=data.get("cause_id"),
        )
