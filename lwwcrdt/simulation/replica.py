"""One node's replica of one simulated object.

Every node keeps a ``ReplicaManager`` per object it has heard of. The
replica on the node that created the object is the owner and arbitrates
PENDING operations; every other replica is a shadow that applies what it
receives without judgement.

Owner arbitration of a PENDING envelope:

1. Apply the operation locally.
2. Always answer with a REJECTED copy, so every replica tombstones the
   proposal whether or not it is accepted.
3. Unless the proposal is refused (probability ``p_reject``) or made
   new operations invalid, also answer with an APPROVED envelope:
   a re-identified copy for CREATE, READ and DELETE, and for UPDATE a
   patch recomputed from the owner's own before/after documents,
   stamped with the current simulation time.

The REJECTED copy removes the proposal everywhere, the APPROVED one adds
the accepted change everywhere, so every delivered envelope is exactly
one insertion into one set.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lwwcrdt.crdt import patch as jp
from lwwcrdt.crdt.codec import DocumentCodec
from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
from lwwcrdt.crdt.manager import TypedCRDTManager
from lwwcrdt.crdt.operation import Operation, OperationType
from lwwcrdt.utils.ids import new_id

if TYPE_CHECKING:
    from lwwcrdt.simulation.executive import Executive
    from lwwcrdt.simulation.message import Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplicaStats:
    """Delivery and CRDT counters of one replica.

    Attributes:
        delivered: Messages received.
        pending_delivered: Received PENDING envelopes.
        approved_delivered: Received APPROVED envelopes.
        rejected_delivered: Received REJECTED envelopes.
        sent: Messages sent in response to deliveries or generation.
        add_count: Operations in the add-set.
        remove_count: Operations in the remove-set.
        invalid_count: Quarantined operations in the current document.
    """

    delivered: int = 0
    pending_delivered: int = 0
    approved_delivered: int = 0
    rejected_delivered: int = 0
    sent: int = 0
    add_count: int = 0
    remove_count: int = 0
    invalid_count: int = 0


class ReplicaManager(TypedCRDTManager[Any]):
    """Typed CRDT manager for one (object, node) pair.

    Args:
        object_id: Identity of the replicated object.
        owner_node_id: Node that arbitrates PENDING operations.
        manager_node_id: Node holding this replica.
        codec: Codec for the object's type.
        executive: Supplies the clock and the random source.
    """

    def __init__(
        self,
        object_id: str,
        owner_node_id: str,
        manager_node_id: str,
        codec: DocumentCodec[Any],
        executive: Executive,
    ):
        super().__init__(codec)
        self._object_id = object_id
        self._owner_node_id = owner_node_id
        self._manager_node_id = manager_node_id
        self._executive = executive
        self._received: list[Message] = []
        self._sent: list[Message] = []

    @property
    def object_id(self) -> str:
        return self._object_id

    @property
    def owner_node_id(self) -> str:
        return self._owner_node_id

    @property
    def manager_node_id(self) -> str:
        return self._manager_node_id

    @property
    def is_owner(self) -> bool:
        return self._owner_node_id == self._manager_node_id

    @property
    def received(self) -> tuple[Message, ...]:
        return tuple(self._received)

    @property
    def sent(self) -> tuple[Message, ...]:
        return tuple(self._sent)

    def record_sent(self, messages: list[Message]) -> None:
        self._sent.extend(messages)

    def receive(self, message: Message, p_reject: float) -> list[OperationEnvelope]:
        """Apply a delivered message and return the envelopes it provokes.

        Only the owner answers, and only to PENDING envelopes.
        """
        self._received.append(message)
        envelope = message.envelope
        if envelope.status is StatusType.PENDING and self.is_owner:
            return self._arbitrate(envelope, p_reject)
        self.deliver(envelope)
        return []

    def _arbitrate(self, envelope: OperationEnvelope, p_reject: float) -> list[OperationEnvelope]:
        rng = self._executive.rng
        before = self.document()
        invalid_before = self.invalid_operations()
        self.deliver(envelope)

        responses = [envelope.with_status(StatusType.REJECTED, self._manager_node_id, rng)]
        newly_invalid = self.invalid_operations() - invalid_before
        if newly_invalid or rng.random() < p_reject:
            logger.debug(
                "Rejected %r (%d newly invalid)", envelope.operation, len(newly_invalid),
                extra={"node_id": self._manager_node_id, "object_id": self._object_id},
            )
            return responses

        if envelope.operation.kind is OperationType.UPDATE:
            approved = self._recompute_update(before)
            if approved is None:
                return responses
        else:
            approved = envelope.operation.mimic(rng)
        responses.append(envelope.approve(approved, self._manager_node_id, rng))
        return responses

    def _recompute_update(self, before: Any) -> Operation | None:
        after = self.document()
        if after is None or after == before:
            return None
        changes = jp.diff(before if before is not None else {}, after)
        if not changes:
            return None
        return Operation.update(self._executive.timestamp, changes, self._executive.rng)

    def _envelope(self, operation: Operation, status: StatusType) -> OperationEnvelope:
        return OperationEnvelope(
            status=status,
            operation=operation,
            object_id=self._object_id,
            object_type=self.object_type,
            author_node_id=self._manager_node_id,
            envelope_id=new_id(self._executive.rng),
        )

    def _is_live(self) -> bool:
        return self.is_created() and not self.is_deleted()

    def propose_create(self, value: Any, status: StatusType) -> list[OperationEnvelope]:
        """CREATE followed by the UPDATE carrying ``value``, both at the current time.

        Empty if this replica already saw a CREATE or DELETE.
        """
        if self.is_created() or self.is_deleted():
            return []
        ts = self._executive.timestamp
        rng = self._executive.rng
        envelopes = [self._envelope(self.generate_create(ts, rng), status)]
        initial = self.generate_initial_update(ts, value, rng)
        if initial is not None:
            envelopes.append(self._envelope(initial, status))
        return envelopes

    def propose_read(self, status: StatusType) -> list[OperationEnvelope]:
        if not self._is_live():
            return []
        return [self._envelope(self.generate_read(self._executive.timestamp, self._executive.rng), status)]

    def propose_update(self, value: Any, status: StatusType) -> list[OperationEnvelope]:
        """UPDATE towards ``value``; empty if not live or nothing changes."""
        if not self._is_live():
            return []
        op = self.generate_update(self._executive.timestamp, value, self._executive.rng)
        if op is None:
            return []
        return [self._envelope(op, status)]

    def propose_delete(self, status: StatusType) -> list[OperationEnvelope]:
        if not self._is_live():
            return []
        return [self._envelope(self.generate_delete(self._executive.timestamp, self._executive.rng), status)]

    def delivered_count(self, kind: OperationType | None = None, status: StatusType | None = None) -> int:
        """Received messages, optionally filtered by operation kind and status."""
        return sum(
            1
            for m in self._received
            if (kind is None or m.operation.kind is kind) and (status is None or m.envelope.status is status)
        )

    def added_count(self, kind: OperationType | None = None) -> int:
        return sum(1 for op in self.crdt.add_set if kind is None or op.kind is kind)

    def removed_count(self, kind: OperationType | None = None) -> int:
        return sum(1 for op in self.crdt.remove_set if kind is None or op.kind is kind)

    @property
    def stats(self) -> ReplicaStats:
        """Return a frozen snapshot of replica counters."""
        by_status = Counter(m.envelope.status for m in self._received)
        return ReplicaStats(
            delivered=len(self._received),
            pending_delivered=by_status[StatusType.PENDING],
            approved_delivered=by_status[StatusType.APPROVED],
            rejected_delivered=by_status[StatusType.REJECTED],
            sent=len(self._sent),
            add_count=self.crdt.add_count,
            remove_count=self.crdt.remove_count,
            invalid_count=self.invalid_count,
        )

    def clear(self) -> None:
        super().clear()
        self._received.clear()
        self._sent.clear()

    def __repr__(self) -> str:
        role = "owner" if self.is_owner else "shadow"
        return f"ReplicaManager({self._object_id!r} on {self._manager_node_id!r}, {role}, {self.crdt!r})"
