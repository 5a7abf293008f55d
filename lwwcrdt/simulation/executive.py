"""Simulation driver.

The executive owns everything a run shares: the random source, the
nodes, the message router (and with it the clock), the write-once
object ownership table and the codecs. Nodes and replicas receive the
executive explicitly, so independent runs can coexist in one process.

Each tick picks a random node and a random event, weighted by what is
left to do:

    weight(CREATE) = remaining creates      weight(DELIVER) = queued messages
    weight(READ)   = remaining reads        ...

An authoring event uses up one unit of its budget only if it produced
messages. The run ends when every budget is spent and the queue is
drained.

Example::

    executive = Executive(SimulationConfig(node_count=4, create_count=8, seed=1))
    summary = executive.run()
    assess_simulation(executive)
"""

from __future__ import annotations

import logging
import random
import time
from collections import Counter
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from lwwcrdt.crdt.codec import DocumentCodec
from lwwcrdt.sample.data import SampleFactory
from lwwcrdt.simulation.config import SimulationConfig
from lwwcrdt.simulation.message import Message
from lwwcrdt.simulation.node import Node
from lwwcrdt.simulation.router import MessageRouter
from lwwcrdt.simulation.summary import ReplicaSummary, SimulationSummary

if TYPE_CHECKING:
    from lwwcrdt.crdt.envelope import OperationEnvelope

logger = logging.getLogger(__name__)


class EventType(Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    DELIVER = "deliver"


class ObjectFactory(Protocol):
    """Source of new objects and of the codecs able to decode them."""

    def make(self) -> Any:
        ...

    def codecs(self) -> Mapping[str, DocumentCodec[Any]]:
        ...


class Executive:
    """Runs one replica simulation.

    Args:
        config: Budgets and probabilities. Defaults to ``SimulationConfig()``.
        factory: Produces created objects; objects must expose ``id`` and
            ``evolve(p_change, rng)``. Defaults to a ``SampleFactory``
            sharing this run's random source.
    """

    def __init__(self, config: SimulationConfig | None = None, factory: ObjectFactory | None = None):
        self._config = config if config is not None else SimulationConfig()
        self._rng = random.Random(self._config.seed)
        self._factory = factory if factory is not None else SampleFactory(self._rng)
        self._codecs: dict[str, DocumentCodec[Any]] = dict(self._factory.codecs())
        self._router = MessageRouter(self)
        self._nodes: dict[str, Node] = {}
        self._owners: dict[str, str] = {}
        self._remaining: dict[EventType, int] = {}
        self._events: Counter[EventType] = Counter()
        self._ticks = 0
        self._abandoned = False
        self._wall_clock_seconds = 0.0
        self._reset_budgets()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def router(self) -> MessageRouter:
        return self._router

    @property
    def timestamp(self) -> int:
        """Current simulation time (the router's clock)."""
        return self._router.timestamp

    @property
    def nodes(self) -> dict[str, Node]:
        return dict(self._nodes)

    @property
    def owners(self) -> dict[str, str]:
        """Object id to owner node id for every registered object."""
        return dict(self._owners)

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def abandoned(self) -> bool:
        """True if the last run gave up on budgets it could not spend."""
        return self._abandoned

    @property
    def event_count(self) -> int:
        """Remaining authoring budget plus queued messages."""
        return sum(self._remaining.values()) + self._router.message_count

    def remaining(self, event_type: EventType) -> int:
        if event_type is EventType.DELIVER:
            return self._router.message_count
        return self._remaining[event_type]

    def event_counts(self) -> dict[EventType, int]:
        """Productive events executed so far, by type."""
        return {event_type: self._events[event_type] for event_type in EventType}

    def _reset_budgets(self) -> None:
        self._remaining = {
            EventType.CREATE: self._config.create_count,
            EventType.READ: self._config.read_count,
            EventType.UPDATE: self._config.update_count,
            EventType.DELETE: self._config.delete_count,
        }

    def add_node(self, node_id: str | None = None) -> Node:
        node_id = node_id if node_id is not None else f"node-{len(self._nodes):03d}"
        if node_id in self._nodes:
            raise ValueError(f"duplicate node id {node_id!r}")
        node = Node(node_id, self)
        self._nodes[node_id] = node
        return node

    def node(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def pick_node(self) -> Node:
        return self._nodes[self._rng.choice(list(self._nodes))]

    def register_crdt(self, object_id: str, owner_node_id: str) -> str:
        """Record the owner of ``object_id`` unless one is already recorded.

        Returns:
            The owner in effect after the call.
        """
        return self._owners.setdefault(object_id, owner_node_id)

    def owner_of(self, object_id: str) -> str | None:
        return self._owners.get(object_id)

    def codec_for(self, object_type: str | None) -> DocumentCodec[Any]:
        try:
            return self._codecs[object_type]
        except KeyError:
            raise ValueError(f"no codec registered for object type {object_type!r}") from None

    def build_messages(self, source: str, envelopes: list[OperationEnvelope]) -> list[Message]:
        """Address every envelope to every node with a random delivery delay."""
        now = self.timestamp
        delay = self._config.max_delivery_delay
        return [
            Message(source, destination, envelope, now + self._rng.randrange(delay))
            for envelope in envelopes
            for destination in self._nodes
        ]

    def transmit(self, messages: list[Message]) -> None:
        self._router.extend(messages)

    def pick_event(self) -> EventType | None:
        """Pick an event type with probability proportional to what remains."""
        weights = [(event_type, self.remaining(event_type)) for event_type in EventType]
        total = sum(weight for _, weight in weights)
        if total == 0:
            return None
        choice = self._rng.randrange(total)
        for event_type, weight in weights:
            if choice < weight:
                return event_type
            choice -= weight
        raise AssertionError("unreachable")

    def execute(self, node: Node, event_type: EventType) -> list[Message]:
        """Run one event on ``node`` and return the messages it produced."""
        if event_type is EventType.DELIVER:
            return self._router.deliver_next(self._config.reject_probability)
        if event_type is EventType.CREATE:
            value = self._factory.make()
            return node.generate_create(value, value.id)
        if event_type is EventType.READ:
            return node.generate_read()
        if event_type is EventType.UPDATE:
            p_change = self._config.update_probability
            return node.generate_update(lambda current: current.evolve(p_change, self._rng))
        return node.generate_delete()

    def tick(self) -> bool:
        """Run one event; True if it changed the state of the simulation."""
        event_type = self.pick_event()
        if event_type is None:
            return False
        node = self.pick_node()
        messages = self.execute(node, event_type)
        self._ticks += 1

        productive = event_type is EventType.DELIVER or bool(messages)
        if productive:
            self._events[event_type] += 1
            if event_type is not EventType.DELIVER:
                self._remaining[event_type] -= 1
        self.transmit(messages)
        return productive

    def run(self) -> SimulationSummary:
        """Build the nodes if needed and tick until nothing is left to do."""
        if not self._nodes:
            for _ in range(self._config.node_count):
                self.add_node()

        logger.info(
            "Starting simulation: %d nodes, budgets %s, reject probability %.2f",
            len(self._nodes),
            {event_type.value: count for event_type, count in self._remaining.items()},
            self._config.reject_probability,
        )
        wall_start = time.perf_counter()
        stalled = 0
        while self.event_count > 0:
            # Unspent CREATE budget can always make progress.
            if self.tick() or not self._router.is_empty() or self._remaining[EventType.CREATE]:
                stalled = 0
                continue
            stalled += 1
            if stalled >= self._config.stall_limit:
                logger.warning(
                    "No progress after %d ticks; abandoning budgets %s",
                    stalled,
                    {event_type.value: count for event_type, count in self._remaining.items() if count},
                )
                self._abandoned = True
                for event_type in self._remaining:
                    self._remaining[event_type] = 0
        self._wall_clock_seconds = time.perf_counter() - wall_start

        summary = self.summary()
        logger.info(
            "Simulation complete: %d ticks, %d messages delivered, final time %d",
            summary.ticks, summary.messages_delivered, summary.final_timestamp,
        )
        return summary

    def summary(self) -> SimulationSummary:
        replicas = [
            ReplicaSummary.from_replica(replica)
            for node in self._nodes.values()
            for replica in node.crdts.values()
        ]
        return SimulationSummary(
            ticks=self._ticks,
            final_timestamp=self.timestamp,
            messages_delivered=self._router.delivered_count,
            wall_clock_seconds=self._wall_clock_seconds,
            events={event_type.value: count for event_type, count in self.event_counts().items()},
            objects=len(self._owners),
            abandoned=self._abandoned,
            replicas=replicas,
        )

    def clear(self) -> None:
        """Forget all nodes, messages and objects; budgets are restored."""
        for node in self._nodes.values():
            node.clear()
        self._nodes.clear()
        self._router.clear()
        self._owners.clear()
        self._events.clear()
        self._ticks = 0
        self._abandoned = False
        self._wall_clock_seconds = 0.0
        self._rng.seed(self._config.seed)
        self._reset_budgets()
