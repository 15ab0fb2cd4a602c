"""Deficit round robin scheduling over DiffServ traffic classes."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .diffserv import DEFAULT_MAX_SIZE, ConfigError, DiffServ
from .packet import Packet
from .traffic_class import TrafficClass

log = logging.getLogger(__name__)

_UINT32_MAX = 0xFFFFFFFF
_LEADING_UINT = re.compile(r"\s*\+?(\d+)")


class _UintStream:
    """Reads whitespace-separated unsigned integers from text, one at a time."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def read(self) -> Optional[int]:
        match = _LEADING_UINT.match(self._text, self._pos)
        if match is None:
            return None
        value = int(match.group(1))
        if value > _UINT32_MAX:
            return None
        self._pos = match.end()
        return value


class DRR(DiffServ):
    """Deficit round robin: each turn a class earns its quantum in bytes of credit."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        super().__init__(max_size)
        self.config_file = ""
        self._quantums: List[int] = []
        self._deficits: List[int] = []
        self._last_served = 0

    @property
    def quantums(self) -> Sequence[int]:
        return tuple(self._quantums)

    @property
    def deficits(self) -> Sequence[int]:
        return tuple(self._deficits)

    def load_config(self, filename: str) -> None:
        """Read a queue count followed by one positive quantum per queue."""
        self.config_file = filename
        try:
            with open(filename, encoding="utf-8") as handle:
                stream = _UintStream(handle.read())
        except OSError as exc:
            raise ConfigError(f"can't open DRR config file: {filename}") from exc

        num_queues = stream.read()
        if not num_queues:
            raise ConfigError(f"invalid number of queues in DRR config file: {filename}")

        existing = len(self.traffic_classes)
        if existing and existing != num_queues:
            log.warning(
                "reconfiguring with a different number of queues (%d vs %d)",
                num_queues,
                existing,
            )
        for _ in range(existing, num_queues):
            self.add_traffic_class(TrafficClass())

        quantums = []
        for index in range(num_queues):
            quantum = stream.read()
            if not quantum:
                raise ConfigError(
                    f"invalid quantum for queue {index} in DRR config file: {filename}"
                )
            quantums.append(quantum)
            log.info("queue %d quantum %d", index, quantum)

        self._quantums = quantums
        self._deficits = [0] * num_queues
        self._last_served = num_queues - 1

    def schedule(self) -> Optional[Packet]:
        count = len(self._quantums)
        if count == 0:
            return None
        if len(self.traffic_classes) < count:
            log.warning(
                "configured queues (%d) exceed traffic classes (%d); cannot schedule",
                count,
                len(self.traffic_classes),
            )
            return None

        for offset in range(count):
            index = (self._last_served + 1 + offset) % count
            tc = self.traffic_class(index)
            if tc is None or tc.is_empty():
                continue
            self._deficits[index] += self._quantums[index]
            head = tc.peek()
            size = head.size
            if size <= self._deficits[index]:
                packet = tc.dequeue()
                self._deficits[index] -= size
                self._last_served = index
                if tc.is_empty():
                    self._deficits[index] = 0
                return packet
            log.debug(
                "queue %d head packet (%d B) exceeds deficit (%d); carried over",
                index,
                size,
                self._deficits[index],
            )

        log.debug("no packet could be scheduled in a full scan of %d queues", count)
        return None