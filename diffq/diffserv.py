"""A differentiated-services queue built from an ordered list of traffic classes."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .packet import Packet
from .traffic_class import TrafficClass

log = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100


class ConfigError(ValueError):
    """Raised when a queue is configured badly or cannot be configured."""


class DiffServ:
    """A queue that classifies packets into traffic classes and serves them.

    The base scheduler serves the first non-empty class in index order;
    subclasses override :meth:`schedule` to implement other disciplines.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size < 0:
            raise ValueError("max_size must not be negative")
        self.max_size = max_size
        self._classes: List[TrafficClass] = []

    @property
    def traffic_classes(self) -> Sequence[TrafficClass]:
        """The configured traffic classes, in index order."""
        return tuple(self._classes)

    def add_traffic_class(self, traffic_class: TrafficClass) -> None:
        self._classes.append(traffic_class)

    def traffic_class(self, index: int) -> Optional[TrafficClass]:
        """Return the class at ``index``, or None when there is none."""
        if 0 <= index < len(self._classes):
            return self._classes[index]
        return None

    def classify(self, packet: Packet) -> int:
        """Index of the first class matching the packet; 0 when none matches."""
        for index, traffic_class in enumerate(self._classes):
            if traffic_class.match(packet):
                log.debug("packet matches traffic class %d", index)
                return index
        log.debug("no matching traffic class, using default (0)")
        return 0

    def schedule(self) -> Optional[Packet]:
        """Remove and return the next packet to send, or None."""
        for traffic_class in self._classes:
            if not traffic_class.is_empty():
                return traffic_class.dequeue()
        return None

    def enqueue(self, packet: Packet) -> bool:
        """Queue the packet; return False when it is dropped."""
        if len(self) >= self.max_size:
            log.debug("queue full, dropping packet")
            return False
        if not self._classes:
            raise ConfigError("no traffic classes configured")
        index = self.classify(packet)
        if index >= len(self._classes):
            index = 0
        return self._classes[index].enqueue(packet)

    def dequeue(self) -> Optional[Packet]:
        """Return the next scheduled packet, or None when the queue is empty."""
        if self.is_empty():
            return None
        return self.schedule()

    def remove(self) -> Optional[Packet]:
        """Remove the next scheduled packet."""
        return self.schedule()

    def peek(self) -> Optional[Packet]:
        """Head of the first non-empty class, without removing it."""
        for traffic_class in self._classes:
            if not traffic_class.is_empty():
                return traffic_class.peek()
        return None

    def is_empty(self) -> bool:
        return all(traffic_class.is_empty() for traffic_class in self._classes)

    def __len__(self) -> int:
        return sum(len(traffic_class) for traffic_class in self._classes)