"""Parameters of a replica simulation run."""

from __future__ import annotations

from dataclasses import dataclass, replace

DEFAULT_NODE_COUNT = 16
DEFAULT_CREATE_COUNT = 256
DEFAULT_READ_COUNT = 1024
DEFAULT_UPDATE_COUNT = 2048
DEFAULT_DELETE_COUNT = 32
DEFAULT_MAX_DELIVERY_DELAY = 65536


@dataclass(frozen=True)
class SimulationConfig:
    """Budgets and probabilities for one simulation run.

    Attributes:
        node_count: Number of replica nodes.
        create_count: Objects to create.
        read_count: READ operations to author.
        update_count: UPDATE operations to author.
        delete_count: DELETE operations to author.
        reject_probability: Chance that an owner refuses a PENDING operation.
        update_probability: Chance that each field changes when a node
            revises an object.
        max_delivery_delay: Messages arrive uniformly within
            ``[now, now + max_delivery_delay)``.
        stall_limit: Consecutive unproductive ticks with an empty queue
            and no creates left, after which the remaining budgets are abandoned.
        seed: Seed for the run's random source; None for a random run.
    """

    node_count: int = DEFAULT_NODE_COUNT
    create_count: int = DEFAULT_CREATE_COUNT
    read_count: int = DEFAULT_READ_COUNT
    update_count: int = DEFAULT_UPDATE_COUNT
    delete_count: int = DEFAULT_DELETE_COUNT
    reject_probability: float = 0.0
    update_probability: float = 0.5
    max_delivery_delay: int = DEFAULT_MAX_DELIVERY_DELAY
    stall_limit: int = 10_000
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.node_count < 1:
            raise ValueError(f"node_count must be >= 1, got {self.node_count}")
        for name in ("create_count", "read_count", "update_count", "delete_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("reject_probability", "update_probability"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {getattr(self, name)}")
        if self.max_delivery_delay < 1:
            raise ValueError(f"max_delivery_delay must be >= 1, got {self.max_delivery_delay}")
        if self.stall_limit < 1:
            raise ValueError(f"stall_limit must be >= 1, got {self.stall_limit}")

    def with_counts(
        self,
        create: int | None = None,
        read: int | None = None,
        update: int | None = None,
        delete: int | None = None,
    ) -> SimulationConfig:
        """Copy with some operation budgets replaced."""
        return replace(
            self,
            create_count=self.create_count if create is None else create,
            read_count=self.read_count if read is None else read,
            update_count=self.update_count if update is None else update,
            delete_count=self.delete_count if delete is None else delete,
        )
