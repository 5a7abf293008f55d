"""Tests for the simulation Executive."""

import logging

import pytest

from lwwcrdt.simulation.assessment import assess_simulation
from lwwcrdt.simulation.config import SimulationConfig
from lwwcrdt.simulation.executive import EventType, Executive


def _comparable(summary):
    data = summary.to_dict()
    del data["wall_clock_seconds"]
    return data


class TestExecutiveNodes:
    """Tests for node and owner bookkeeping."""

    def test_default_node_ids(self):
        executive = Executive()
        assert executive.add_node().node_id == "node-000"
        assert executive.add_node().node_id == "node-001"

    def test_duplicate_node_id(self):
        executive = Executive()
        executive.add_node("x")
        with pytest.raises(ValueError, match="duplicate"):
            executive.add_node("x")

    def test_owner_registration_is_write_once(self):
        executive = Executive()
        assert executive.register_crdt("obj", "a") == "a"
        assert executive.register_crdt("obj", "b") == "a"
        assert executive.owner_of("obj") == "a"
        assert executive.owner_of("other") is None

    def test_codec_lookup(self):
        executive = Executive()
        assert executive.codec_for("TextRecord").object_type == "TextRecord"
        with pytest.raises(ValueError):
            executive.codec_for(None)


class TestExecutiveEvents:
    """Tests for event selection and budgets."""

    def test_nothing_left(self):
        executive = Executive(SimulationConfig().with_counts(0, 0, 0, 0))
        assert executive.event_count == 0
        assert executive.pick_event() is None
        assert executive.tick() is False

    def test_only_remaining_types_are_picked(self):
        executive = Executive(SimulationConfig(seed=3).with_counts(create=0, read=5, update=0, delete=0))
        assert {executive.pick_event() for _ in range(20)} == {EventType.READ}

    def test_unproductive_event_keeps_budget(self):
        executive = Executive(SimulationConfig(node_count=2, seed=3).with_counts(create=0, read=5, update=0, delete=0))
        executive.add_node()
        assert executive.tick() is False
        assert executive.remaining(EventType.READ) == 5
        assert executive.ticks == 1

    def test_productive_event_spends_budget(self):
        executive = Executive(SimulationConfig(node_count=2, seed=3).with_counts(create=1, read=0, update=0, delete=0))
        executive.add_node()
        executive.add_node()
        assert executive.tick() is True
        assert executive.remaining(EventType.CREATE) == 0
        # CREATE plus its initial UPDATE, addressed to both nodes
        assert executive.remaining(EventType.DELIVER) == 4
        assert executive.event_counts()[EventType.CREATE] == 1

    def test_build_messages_reach_every_node(self, rng):
        from lwwcrdt.crdt.envelope import OperationEnvelope, StatusType
        from lwwcrdt.crdt.operation import Operation

        executive = Executive(SimulationConfig(max_delivery_delay=10, seed=1))
        for _ in range(3):
            executive.add_node()
        envelopes = [OperationEnvelope(StatusType.APPROVED, Operation.read(0, rng)) for _ in range(2)]
        messages = executive.build_messages("node-000", envelopes)
        assert len(messages) == 6
        assert {m.destination for m in messages} == {"node-000", "node-001", "node-002"}
        assert all(0 <= m.delivery_time < 10 for m in messages)


class TestExecutiveRun:
    """Tests for complete runs."""

    def test_run_spends_all_budgets(self, small_config):
        executive = Executive(small_config)
        summary = executive.run()
        assert executive.event_count == 0
        assert not summary.abandoned
        assert summary.objects == small_config.create_count
        assert summary.events["create"] == small_config.create_count
        assert summary.events["update"] == small_config.update_count
        assert summary.messages_delivered == summary.events["deliver"]
        assert len(executive.nodes) == small_config.node_count

    def test_same_seed_same_run(self, small_config):
        first = Executive(small_config).run()
        second = Executive(small_config).run()
        assert _comparable(first) == _comparable(second)

    def test_clear_restarts_from_seed(self, small_config):
        executive = Executive(small_config)
        first = _comparable(executive.run())
        executive.clear()
        assert executive.nodes == {}
        assert executive.owners == {}
        assert executive.remaining(EventType.CREATE) == small_config.create_count
        assert _comparable(executive.run()) == first

    def test_impossible_budgets_are_abandoned(self, caplog):
        config = SimulationConfig(node_count=2, stall_limit=50, seed=5).with_counts(create=0, read=3, update=0, delete=0)
        executive = Executive(config)
        with caplog.at_level(logging.WARNING, logger="lwwcrdt"):
            summary = executive.run()
        assert summary.abandoned
        assert executive.abandoned
        assert executive.event_count == 0
        assert "abandoning budgets" in caplog.text

    def test_create_budget_is_never_abandoned(self):
        config = SimulationConfig(
            node_count=1, create_count=1, read_count=18, update_count=55, delete_count=2,
            max_delivery_delay=1, stall_limit=200, seed=147,
        )
        executive = Executive(config)
        summary = executive.run()
        assert summary.objects == 1
        assert summary.events["create"] == 1
        assert executive.remaining(EventType.CREATE) == 0
        assess_simulation(executive, expected_objects=1)

    def test_run_logs_start_and_end(self, small_config, caplog):
        with caplog.at_level(logging.INFO, logger="lwwcrdt"):
            Executive(small_config).run()
        assert "Starting simulation" in caplog.text
        assert "Simulation complete" in caplog.text
