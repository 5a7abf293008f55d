"""Delivery queue for in-flight messages.

Messages sit on a heap ordered by delivery time, so delivery order
differs from send order whenever a later message draws a shorter delay.
Delivering a message advances the router's logical clock, which is the
time every newly authored operation is stamped with.
"""

from __future__ import annotations

import heapq
import logging
from typing import TYPE_CHECKING

from lwwcrdt.simulation.message import Message

if TYPE_CHECKING:
    from lwwcrdt.simulation.executive import Executive

logger = logging.getLogger(__name__)


class MessageRouter:
    """Min-heap of messages plus the simulation clock.

    Args:
        executive: Resolves destination node ids to nodes.
    """

    def __init__(self, executive: Executive):
        self._executive = executive
        self._heap: list[Message] = []
        self._timestamp = 0
        self._delivered = 0

    @property
    def timestamp(self) -> int:
        """The delivery time of the most recently delivered message."""
        return self._timestamp

    @property
    def delivered_count(self) -> int:
        return self._delivered

    @property
    def message_count(self) -> int:
        return len(self._heap)

    def is_empty(self) -> bool:
        return not self._heap

    def add(self, message: Message) -> None:
        heapq.heappush(self._heap, message)

    def extend(self, messages: list[Message]) -> None:
        for message in messages:
            heapq.heappush(self._heap, message)

    def peek(self) -> Message:
        return self._heap[0]

    def deliver_next(self, p_reject: float) -> list[Message]:
        """Deliver the earliest message and return the messages it caused.

        The returned messages are not enqueued; the caller decides when.

        Raises:
            IndexError: The queue is empty.
        """
        message = heapq.heappop(self._heap)
        self._timestamp = max(self._timestamp, message.delivery_time)
        self._delivered += 1
        logger.debug("Delivering %r", message, extra={"node_id": message.destination})
        return self._executive.node(message.destination).deliver(message, p_reject)

    def clear(self) -> None:
        self._heap.clear()
        self._timestamp = 0
        self._delivered = 0
