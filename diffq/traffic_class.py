"""A traffic class: a bounded FIFO of packets selected by filters."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

from .filters import Filter
from .packet import Packet


@dataclass
class TrafficClass:
    """A bounded FIFO queue that accepts packets matching any of its filters."""

    priority_level: int = 0
    weight: float = 1.0
    max_packets: int = 100
    filters: List[Filter] = field(default_factory=list)
    _queue: Deque[Packet] = field(default_factory=deque, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.weight < 0.0:
            raise ValueError("weight must not be negative")
        if self.max_packets < 0:
            raise ValueError("max_packets must not be negative")
        if self.priority_level < 0:
            raise ValueError("priority_level must not be negative")

    def match(self, packet: Packet) -> bool:
        """True if any filter matches; a class without filters matches all."""
        if not self.filters:
            return True
        return any(flt.match(packet) for flt in self.filters)

    def enqueue(self, packet: Packet) -> bool:
        """Append the packet; return False (dropping it) when the class is full."""
        if len(self._queue) >= self.max_packets:
            return False
        self._queue.append(packet)
        return True

    def dequeue(self) -> Optional[Packet]:
        """Remove and return the head packet, or None when empty."""
        return self._queue.popleft() if self._queue else None

    def peek(self) -> Optional[Packet]:
        """Return the head packet without removing it, or None when empty."""
        return self._queue[0] if self._queue else None

    def is_empty(self) -> bool:
        return not self._queue

    def add_filter(self, filter_: Filter) -> None:
        self.filters.append(filter_)

    def __len__(self) -> int:
        return len(self._queue)