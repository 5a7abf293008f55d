"""Summary of a replica simulation run.

``SimulationSummary`` is returned by ``Executive.run()``. It holds one
``ReplicaSummary`` per (node, object) pair plus run-level totals, and can
be flattened into a pandas DataFrame for analysis.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from lwwcrdt.simulation.replica import ReplicaManager


@dataclass
class ReplicaSummary:
    """Counters of one replica at the end of a run."""
    node_id: str
    object_id: str
    object_type: str
    is_owner: bool
    is_deleted: bool
    delivered: int
    pending_delivered: int
    approved_delivered: int
    rejected_delivered: int
    sent: int
    add_count: int
    remove_count: int
    invalid_count: int

    @classmethod
    def from_replica(cls, replica: ReplicaManager) -> ReplicaSummary:
        stats = replica.stats
        return cls(
            node_id=replica.manager_node_id,
            object_id=replica.object_id,
            object_type=replica.object_type,
            is_owner=replica.is_owner,
            is_deleted=replica.is_deleted(),
            **asdict(stats),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationSummary:
    """Run-level totals and per-replica counters."""
    ticks: int
    final_timestamp: int
    messages_delivered: int
    wall_clock_seconds: float
    events: dict[str, int] = field(default_factory=dict)
    objects: int = 0
    abandoned: bool = False
    replicas: list[ReplicaSummary] = field(default_factory=list)

    @property
    def invalid_operations(self) -> int:
        return sum(r.invalid_count for r in self.replicas)

    @property
    def nodes(self) -> list[str]:
        return sorted({r.node_id for r in self.replicas})

    def __str__(self) -> str:
        lines = [
            "Simulation Summary",
            f"  Ticks: {self.ticks} (final time {self.final_timestamp}, {self.wall_clock_seconds:.3f}s wall)",
            f"  Objects: {self.objects} across {len(self.nodes)} nodes",
            f"  Messages delivered: {self.messages_delivered}",
            "  Events: " + ", ".join(f"{name}={count}" for name, count in self.events.items()),
            f"  Invalid operations: {self.invalid_operations}",
        ]
        if self.abandoned:
            lines.append("  Budgets abandoned: no further progress was possible")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticks": self.ticks,
            "final_timestamp": self.final_timestamp,
            "messages_delivered": self.messages_delivered,
            "wall_clock_seconds": self.wall_clock_seconds,
            "events": dict(self.events),
            "objects": self.objects,
            "abandoned": self.abandoned,
            "replicas": [r.to_dict() for r in self.replicas],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per replica, one column per ``ReplicaSummary`` field."""
        columns = list(ReplicaSummary.__dataclass_fields__)
        return pd.DataFrame([r.to_dict() for r in self.replicas], columns=columns)

    def node_totals(self) -> pd.DataFrame:
        """Counters summed per node, indexed by node id."""
        frame = self.to_dataframe()
        numeric = [
            "delivered", "pending_delivered", "approved_delivered", "rejected_delivered",
            "sent", "add_count", "remove_count", "invalid_count",
        ]
        return frame.groupby("node_id")[numeric].sum()
