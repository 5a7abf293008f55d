"""Simulated replica node.

A node holds one ``ReplicaManager`` per object it knows about and is
the only place where operations enter the simulation. Everything a node
authors or answers is broadcast to every node, itself included, so each
replica changes state only through counted message deliveries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
from lwwcrdt.simulation.replica import ReplicaManager

if TYPE_CHECKING:
    from lwwcrdt.simulation.executive import Executive
    from lwwcrdt.simulation.message import Message

logger = logging.getLogger(__name__)


class Node:
    """A replica node in a simulation.

    Args:
        node_id: Unique node identifier.
        executive: The simulation this node belongs to.
    """

    def __init__(self, node_id: str, executive: Executive):
        self._node_id = node_id
        self._executive = executive
        self._datastore: dict[str, ReplicaManager] = {}

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def crdts(self) -> dict[str, ReplicaManager]:
        """Replicas held by this node, keyed by object id."""
        return dict(self._datastore)

    @property
    def object_ids(self) -> list[str]:
        return list(self._datastore)

    def crdt(self, object_id: str) -> ReplicaManager | None:
        return self._datastore.get(object_id)

    def add_crdt(self, replica: ReplicaManager) -> None:
        """Store a replica and register its owner (first registration wins)."""
        self._datastore[replica.object_id] = replica
        self._executive.register_crdt(replica.object_id, replica.owner_node_id)

    def pick_random_object_id(self) -> str | None:
        if not self._datastore:
            return None
        return self._executive.rng.choice(list(self._datastore))

    def pick_random_crdt(self) -> ReplicaManager | None:
        object_id = self.pick_random_object_id()
        return None if object_id is None else self._datastore[object_id]

    def _status_for(self, replica: ReplicaManager) -> StatusType:
        return StatusType.APPROVED if replica.is_owner else StatusType.PENDING

    def _broadcast(self, replica: ReplicaManager, envelopes: list[OperationEnvelope]) -> list[Message]:
        messages = self._executive.build_messages(self._node_id, envelopes)
        replica.record_sent(messages)
        return messages

    def generate_create(self, value: Any, object_id: str) -> list[Message]:
        """Create and own a new object holding ``value``.

        Returns no messages if this node already holds ``object_id``.
        """
        if object_id in self._datastore:
            return []
        codec = self._executive.codec_for(type(value).__name__)
        replica = ReplicaManager(object_id, self._node_id, self._node_id, codec, self._executive)
        envelopes = replica.propose_create(value, StatusType.APPROVED)
        if not envelopes:
            return []
        self.add_crdt(replica)
        logger.debug("Created %s %s", replica.object_type, object_id, extra={"node_id": self._node_id})
        return self._broadcast(replica, envelopes)

    def generate_read(self) -> list[Message]:
        replica = self.pick_random_crdt()
        if replica is None:
            return []
        return self._broadcast(replica, replica.propose_read(StatusType.APPROVED))

    def generate_update(self, revise: Callable[[Any], Any]) -> list[Message]:
        """Revise a random live object with ``revise`` and broadcast the change.

        Owners approve their own updates; other nodes propose them.
        """
        replica = self.pick_random_crdt()
        if replica is None:
            return []
        current = replica.object()
        if current is None:
            return []
        return self._broadcast(replica, replica.propose_update(revise(current), self._status_for(replica)))

    def generate_delete(self) -> list[Message]:
        replica = self.pick_random_crdt()
        if replica is None:
            return []
        return self._broadcast(replica, replica.propose_delete(self._status_for(replica)))

    def deliver(self, message: Message, p_reject: float) -> list[Message]:
        """Hand a message to the object's replica, creating a shadow on first sight."""
        envelope = message.envelope
        replica = self._datastore.get(envelope.object_id)
        if replica is None:
            owner = self._executive.owner_of(envelope.object_id) or envelope.author_node_id
            codec = self._executive.codec_for(envelope.object_type)
            replica = ReplicaManager(envelope.object_id, owner, self._node_id, codec, self._executive)
            self.add_crdt(replica)
        return self._broadcast(replica, replica.receive(message, p_reject))

    def clear(self) -> None:
        self._datastore.clear()

    def __repr__(self) -> str:
        return f"Node({self._node_id!r}, objects={len(self._datastore)})"
