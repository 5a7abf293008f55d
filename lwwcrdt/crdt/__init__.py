"""Last-Write-Wins CRDT for JSON documents.

Replicas exchange immutable, totally ordered operations and rebuild the
document by replaying them. Layers, leaf to root:

- **Operation**: CREATE / READ / UPDATE / DELETE, ordered by
  timestamp, kind, id and payload digest.
- **OperationTwoSet**: add-set and remove-set; remove dominates.
- **LastWriteWins**: replays the effective set into a document and
  quarantines operations that no longer apply.
- **CRDTManager** / **TypedCRDTManager**: one CRDT per object, deliver
  envelopes and synthesize operations from snapshots.
"""

from lwwcrdt.crdt.codec import DecodeError, DictCodec, DocumentCodec, JsonCodec
from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
from lwwcrdt.crdt.last_write_wins import LastWriteWins, Trial
from lwwcrdt.crdt.manager import CRDTManager, JsonManager, ObjectManager, TypedCRDTManager
from lwwcrdt.crdt.operation import InvalidOperationError, Operation, OperationType
from lwwcrdt.crdt.patch import PatchError
from lwwcrdt.crdt.protocol import CRDT
from lwwcrdt.crdt.two_set import OperationTwoSet

__all__ = [
    "CRDT",
    "CRDTManager",
    "DecodeError",
    "DictCodec",
    "DocumentCodec",
    "InvalidOperationError",
    "JsonCodec",
    "JsonManager",
    "LastWriteWins",
    "ObjectManager",
    "Operation",
    "OperationEnvelope",
    "OperationTwoSet",
    "OperationType",
    "PatchError",
    "StatusType",
    "Trial",
    "TypedCRDTManager",
]
