"""Replica simulation harness for the LWW CRDT.

A population of nodes authors randomized CREATE / READ / UPDATE /
DELETE operations on shared objects and exchanges them through a
delivery queue that reorders messages. Owners arbitrate proposals from
other nodes. Once the queue drains, the assessment checks verify that
every replica converged.

Example::

    from lwwcrdt.simulation import Executive, SimulationConfig, assess_simulation

    executive = Executive(SimulationConfig(node_count=4, create_count=16, seed=3))
    print(executive.run())
    assess_simulation(executive)
"""

from lwwcrdt.simulation.assessment import (
    ConsistencyError,
    assess_convergence,
    assess_message_accounting,
    assess_message_consistency,
    assess_object_count,
    assess_operation_validity,
    assess_simulation,
)
from lwwcrdt.simulation.config import SimulationConfig
from lwwcrdt.simulation.executive import EventType, Executive
from lwwcrdt.simulation.message import Message
from lwwcrdt.simulation.node import Node
from lwwcrdt.simulation.replica import ReplicaManager, ReplicaStats
from lwwcrdt.simulation.router import MessageRouter
from lwwcrdt.simulation.summary import ReplicaSummary, SimulationSummary

__all__ = [
    "ConsistencyError",
    "EventType",
    "Executive",
    "Message",
    "MessageRouter",
    "Node",
    "ReplicaManager",
    "ReplicaStats",
    "ReplicaSummary",
    "SimulationConfig",
    "SimulationSummary",
    "assess_convergence",
    "assess_message_accounting",
    "assess_message_consistency",
    "assess_object_count",
    "assess_operation_validity",
    "assess_simulation",
]
