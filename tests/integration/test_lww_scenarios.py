"""End-to-end LWW scenarios across several replicas.

Replicas are plain managers fed the same envelopes in different orders,
or simulation nodes exchanging messages through the router.
"""

import itertools
import json
import random
from dataclasses import replace

from lwwcrdt.crdt.codec import DictCodec
from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
from lwwcrdt.crdt.manager import CRDTManager, TypedCRDTManager
from lwwcrdt.crdt.operation import Operation
from lwwcrdt.crdt.patch import canonical_json
from lwwcrdt.sample.data import TextRecord
from lwwcrdt.simulation.config import SimulationConfig
from lwwcrdt.simulation.executive import Executive


def _env(status, op):
    return OperationEnvelope(status, op, object_id="O", object_type="json")


def _drain(executive, p_reject):
    while not executive.router.is_empty():
        executive.transmit(executive.router.deliver_next(p_reject))


class TestReverseOrderCreateUpdate:
    """An UPDATE that arrives before its CREATE recovers once the CREATE lands."""

    def test_replica_b_recovers(self):
        rng = random.Random(0)
        create = Operation.create(0, rng)
        update = Operation.update(10, [{"op": "add", "path": "/x", "value": 1}], rng)

        a, b = CRDTManager(), CRDTManager()
        for envelope in (_env(StatusType.APPROVED, create), _env(StatusType.APPROVED, update)):
            a.deliver(envelope)

        b.deliver(_env(StatusType.APPROVED, update))
        assert b.document() is None
        assert b.invalid_count == 1

        b.deliver(_env(StatusType.APPROVED, create))
        assert b.document() == {"x": 1}
        assert b.invalid_count == 0
        assert a == b
        assert canonical_json(a.document()) == canonical_json(b.document())


class TestDeleteThenLateUpdate:
    """Nothing resurrects a deleted object."""

    def test_object_absent_after_delete(self):
        rng = random.Random(1)
        codec = DictCodec(TextRecord)
        m = TypedCRDTManager(codec)
        m.add_operation(m.generate_create(0, rng))
        m.add_operation(m.generate_initial_update(0, TextRecord(id="O", text="x"), rng))
        m.add_operation(m.generate_delete(20, rng))
        for ts in (20, 21, 100):
            assert m.object_as_of(ts) is None
        assert m.object_as_of(19) == TextRecord(id="O", text="x")

        late = Operation.update(25, [{"op": "replace", "path": "/text", "value": "y"}], rng)
        m.add_operation(late)
        assert m.object() is None
        assert m.invalid_operations() == frozenset({late})


class TestRejectedPendingUpdate:
    """A refused proposal lands in every remove-set and changes nothing."""

    def test_every_replica_tombstones_the_proposal(self):
        executive = Executive(SimulationConfig(node_count=3, max_delivery_delay=100, seed=11))
        owner, proposer, bystander = (executive.add_node() for _ in range(3))
        executive.transmit(owner.generate_create(TextRecord(id="O", text="before"), "O"))
        _drain(executive, p_reject=1.0)
        before = owner.crdt("O").document()

        proposal = proposer.generate_update(lambda current: replace(current, version=1, text="after"))
        pending = proposal[0].operation
        executive.transmit(proposal)
        _drain(executive, p_reject=1.0)

        for node in (owner, proposer, bystander):
            replica = node.crdt("O")
            assert pending in replica.crdt.remove_set
            assert pending not in replica.crdt.effective()
            assert replica.document() == before
            assert replica.stats.rejected_delivered == 1


class TestConvergenceUnderAnyOrder:
    """Replicas fed the same envelopes in different orders agree."""

    def test_all_permutations_agree(self):
        rng = random.Random(2)
        create = Operation.create(0, rng)
        first = Operation.update(1, [{"op": "add", "path": "/a", "value": 1}], rng)
        second = Operation.update(1, [{"op": "add", "path": "/a", "value": 2}], rng)
        refused = Operation.update(2, [{"op": "add", "path": "/b", "value": 3}], rng)
        envelopes = [
            _env(StatusType.APPROVED, create),
            _env(StatusType.APPROVED, first),
            _env(StatusType.APPROVED, second),
            _env(StatusType.PENDING, refused),
            _env(StatusType.REJECTED, refused),
        ]
        documents = set()
        for order in itertools.permutations(envelopes):
            m = CRDTManager()
            for envelope in order:
                m.deliver(envelope)
            documents.add(canonical_json(m.document()))
        assert len(documents) == 1
        assert set(json.loads(documents.pop())) == {"a"}

    def test_sample_records_converge(self):
        rng = random.Random(3)
        record = TextRecord.generate(rng)
        codec = DictCodec(TextRecord)
        source = TypedCRDTManager(codec)
        ops = [source.generate_create(0, rng), source.generate_initial_update(0, record, rng)]
        for op in ops:
            source.add_operation(op)
        for ts in range(1, 6):
            record = record.evolve(0.5, rng)
            op = source.generate_update(ts, record, rng)
            if op is not None:
                source.add_operation(op)
                ops.append(op)

        for seed in range(5):
            shuffled = list(ops)
            random.Random(seed).shuffle(shuffled)
            replica = TypedCRDTManager(codec)
            for op in shuffled:
                replica.add_operation(op)
            assert replica.object() == record
            assert replica.invalid_count == 0
