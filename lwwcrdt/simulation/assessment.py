"""Invariant checks over a finished simulation.

These checks belong to the test harness, not to the CRDT: each raises
``ConsistencyError`` naming the first replica that violates its
invariant. Run them after ``Executive.run()`` has drained the queue.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from lwwcrdt.crdt.envelope import StatusType
from lwwcrdt.crdt.operation import OperationType
from lwwcrdt.crdt.patch import canonical_json

if TYPE_CHECKING:
    from lwwcrdt.simulation.executive import Executive
    from lwwcrdt.simulation.replica import ReplicaManager


class ConsistencyError(RuntimeError):
    """A simulation invariant does not hold."""


def _replicas(executive: Executive) -> list[ReplicaManager]:
    return [replica for node in executive.nodes.values() for replica in node.crdts.values()]


def assess_object_count(executive: Executive, expected: int | None = None) -> None:
    """Every node holds a replica of every registered object.

    Args:
        expected: Number of objects that must exist; skipped if None.
    """
    owners = executive.owners
    if expected is not None and len(owners) != expected:
        raise ConsistencyError(f"expected {expected} objects, found {len(owners)}")
    for node in executive.nodes.values():
        missing = set(owners) - set(node.object_ids)
        if missing:
            raise ConsistencyError(f"{node.node_id} is missing {len(missing)} objects, e.g. {min(missing)}")


def assess_convergence(executive: Executive) -> None:
    """All replicas of an object hold the same sets and the same document."""
    by_object: dict[str, list[ReplicaManager]] = defaultdict(list)
    for replica in _replicas(executive):
        by_object[replica.object_id].append(replica)

    for object_id, replicas in by_object.items():
        reference = replicas[0]
        expected_doc = canonical_json(reference.document())
        for replica in replicas[1:]:
            if replica.crdt != reference.crdt:
                raise ConsistencyError(
                    f"{object_id}: operation sets differ between "
                    f"{reference.manager_node_id} and {replica.manager_node_id}"
                )
            if replica.is_deleted() != reference.is_deleted():
                raise ConsistencyError(f"{object_id}: deletion state differs on {replica.manager_node_id}")
            if canonical_json(replica.document()) != expected_doc:
                raise ConsistencyError(f"{object_id}: document differs on {replica.manager_node_id}")


def assess_operation_validity(executive: Executive) -> None:
    """A live object has a document and a deleted one does not."""
    for replica in _replicas(executive):
        document = replica.document()
        where = f"{replica.object_id} on {replica.manager_node_id}"
        if replica.is_deleted():
            if document is not None:
                raise ConsistencyError(f"{where}: deleted but document present")
            if replica.object() is not None:
                raise ConsistencyError(f"{where}: deleted but object present")
        elif replica.is_created() and document is None:
            raise ConsistencyError(f"{where}: created but document absent")


def assess_message_accounting(executive: Executive) -> None:
    """Each delivery inserted exactly one operation into one set.

    Overall and per operation kind, deliveries equal add-set plus
    remove-set size, and REJECTED deliveries equal the remove-set size.
    """
    for replica in _replicas(executive):
        where = f"{replica.object_id} on {replica.manager_node_id}"
        stats = replica.stats
        if stats.delivered != stats.add_count + stats.remove_count:
            raise ConsistencyError(
                f"{where}: {stats.delivered} deliveries but "
                f"{stats.add_count} adds + {stats.remove_count} removes"
            )
        if stats.rejected_delivered != stats.remove_count:
            raise ConsistencyError(
                f"{where}: {stats.rejected_delivered} rejections but {stats.remove_count} removes"
            )
        for kind in OperationType:
            delivered = replica.delivered_count(kind)
            inserted = replica.added_count(kind) + replica.removed_count(kind)
            if delivered != inserted:
                raise ConsistencyError(f"{where}: {kind.name} delivered {delivered}, inserted {inserted}")


def assess_message_consistency(executive: Executive) -> None:
    """Only owners rule on operations and owners never propose.

    READs are exempt: any node may author an APPROVED READ.
    """
    for replica in _replicas(executive):
        for message in replica.received:
            envelope = message.envelope
            if envelope.operation.kind is OperationType.READ:
                continue
            from_owner = message.source == replica.owner_node_id
            if envelope.status is StatusType.PENDING and from_owner:
                raise ConsistencyError(f"{message!r}: owner {message.source} sent a PENDING envelope")
            if envelope.is_authoritative and not from_owner:
                raise ConsistencyError(f"{message!r}: {message.source} is not the owner of {replica.object_id}")


def assess_simulation(executive: Executive, expected_objects: int | None = None) -> None:
    """Run every check; raises on the first violation."""
    if not executive.router.is_empty():
        raise ConsistencyError(f"{executive.router.message_count} messages still queued")
    assess_object_count(executive, expected_objects)
    assess_message_consistency(executive)
    assess_message_accounting(executive)
    assess_operation_validity(executive)
    assess_convergence(executive)
