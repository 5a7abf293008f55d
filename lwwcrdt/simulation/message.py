from __future__ import annotations

from dataclasses import dataclass

from lwwcrdt.crdt.envelope import OperationEnvelope
from lwwcrdt.crdt.operation import Operation


@dataclass(frozen=True, eq=False)
class Message:
    """One envelope in transit from one node to another.

    Messages order by delivery time, then by the wrapped operation's
    timestamp, so the router's heap can hold them directly.
    """

    source: str
    destination: str
    envelope: OperationEnvelope
    delivery_time: int

    def __post_init__(self) -> None:
        if self.delivery_time < 0:
            raise ValueError(f"delivery_time must be >= 0, got {self.delivery_time}")

    @property
    def operation(self) -> Operation:
        return self.envelope.operation

    @property
    def object_id(self) -> str | None:
        return self.envelope.object_id

    def __lt__(self, other: Message) -> bool:
        return (self.delivery_time, self.operation.timestamp) < (other.delivery_time, other.operation.timestamp)

    def __repr__(self) -> str:
        return (
            f"Message({self.source} -> {self.destination} @ {self.delivery_time}: "
            f"{self.envelope.status.name} {self.operation!r})"
        )
