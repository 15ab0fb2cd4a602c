"""Strict priority queueing over DiffServ traffic classes."""

from __future__ import annotations

import logging
import re
from typing import Optional

from .cisco_parser import parse_cisco_config
from .diffserv import DEFAULT_MAX_SIZE, ConfigError, DiffServ
from .packet import Packet
from .traffic_class import TrafficClass

log = logging.getLogger(__name__)

_UINT32_MAX = 0xFFFFFFFF
_LEADING_UINT = re.compile(r"\s*\+?(\d+)")


def _leading_uint(text: str) -> Optional[int]:
    """Read an unsigned 32-bit integer from the start of ``text``."""
    match = _LEADING_UINT.match(text)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value <= _UINT32_MAX else None


class SPQ(DiffServ):
    """Serves the non-empty traffic class with the lowest priority level first.

    Ties between classes of equal priority go to the lower index.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        super().__init__(max_size)
        self.config_file = ""
        self.cisco_config_file = ""

    def schedule(self) -> Optional[Packet]:
        candidates = [tc for tc in self.traffic_classes if not tc.is_empty()]
        if not candidates:
            log.debug("no packet found in scheduling")
            return None
        chosen = min(candidates, key=lambda tc: tc.priority_level)
        log.debug("serving traffic class with priority %d", chosen.priority_level)
        return chosen.dequeue()

    def load_config(self, filename: str) -> None:
        """Add traffic classes from a file: a queue count, then one priority per line.

        An empty file configures no classes.
        """
        self.config_file = filename
        try:
            handle = open(filename, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"failed to open file {filename}") from exc
        with handle:
            lines = iter(handle)
            first = next(lines, None)
            if first is None:
                return
            num_queues = _leading_uint(first)
            if num_queues is None:
                raise ConfigError("invalid number of queues")
            for index in range(num_queues):
                line = next(lines, None)
                if line is None:
                    raise ConfigError("not enough priority levels specified")
                priority = _leading_uint(line)
                if priority is None:
                    raise ConfigError(f"invalid priority level for queue {index}")
                self.add_traffic_class(TrafficClass(priority_level=priority))
                log.info("added traffic class %d with priority %d", index, priority)

    def load_cisco_config(self, filename: str) -> None:
        """Add one traffic class per queue described by a Cisco configuration file."""
        self.cisco_config_file = filename
        priorities = parse_cisco_config(filename)
        for index, priority in enumerate(priorities):
            self.add_traffic_class(TrafficClass(priority_level=priority))
            log.info("added traffic class %d with priority %d", index, priority)