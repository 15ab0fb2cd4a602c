"""Reader for a subset of Cisco 3750 QoS commands describing strict priority queues."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .diffserv import ConfigError

log = logging.getLogger(__name__)

NUM_QUEUES = 4
LOWEST_PRIORITY = 3
MAX_DSCP = 63
MAX_QUEUE = 3
_UINT32_MAX = 0xFFFFFFFF
_LEADING_UINT = re.compile(r"\s*\+?(\d+)")


class CiscoConfigError(ConfigError):
    """Raised when a Cisco configuration cannot be read or is incomplete."""


def _parse_uint(token: str) -> Optional[int]:
    """Read a leading unsigned integer from a token, as a stream extraction would."""
    match = _LEADING_UINT.match(token)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value <= _UINT32_MAX else None


def _split(line: str) -> List[str]:
    return [token for token in line.split(" ") if token]


@dataclass
class CiscoParser:
    """Accumulates QoS settings from CLI lines and derives queue priorities."""

    qos_enabled: bool = False
    priority_queue_enabled: bool = False
    dscp_trust_enabled: bool = False
    current_interface: str = ""
    dscp_map: Dict[int, int] = field(default_factory=dict)
    dscp_priority_map: Dict[int, int] = field(default_factory=dict)

    def parse(self, filename: str) -> List[int]:
        """Parse a configuration file; return one priority level per queue."""
        try:
            with open(filename, encoding="utf-8") as handle:
                return self.parse_lines(handle)
        except OSError as exc:
            raise CiscoConfigError(f"failed to open file {filename}") from exc

    def parse_lines(self, lines: Iterable[str]) -> List[int]:
        """Parse configuration lines; return one priority level per queue."""
        for raw in lines:
            line = raw[:-1] if raw.endswith("\n") else raw
            if not line or line[0] in "#!":
                continue
            self.parse_line(line.strip(" \t"))
        return self._priorities()

    def parse_line(self, line: str) -> None:
        """Apply one command line; raise CiscoConfigError if it is malformed."""
        tokens = _split(line)
        if not tokens:
            return
        command = tokens[0]
        if command == "interface":
            self._interface(tokens)
            return
        if command == "priority-queue":
            self._priority_queue(tokens)
            return
        if command == "mls" and len(tokens) > 1 and tokens[1] == "qos":
            if len(tokens) > 2 and tokens[2] == "trust":
                self._trust(tokens)
            elif len(tokens) > 2 and tokens[2] == "map":
                self._map(tokens)
            else:
                self._qos(tokens)
            return
        log.warning("unknown command: %s", line)

    def _interface(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            raise CiscoConfigError("invalid interface command")
        self.current_interface = tokens[1]

    def _priority_queue(self, tokens: List[str]) -> None:
        if len(tokens) < 2:
            raise CiscoConfigError("invalid priority-queue command")
        if tokens[1] != "out":
            raise CiscoConfigError(f"unknown priority-queue command: {tokens[1]}")
        self.priority_queue_enabled = True

    def _qos(self, tokens: List[str]) -> None:
        if len(tokens) == 2:
            self.qos_enabled = True
        else:
            log.warning("unknown mls qos command: %s", " ".join(tokens))

    def _trust(self, tokens: List[str]) -> None:
        if len(tokens) < 4:
            raise CiscoConfigError("invalid mls qos trust command")
        if tokens[3] == "dscp":
            self.dscp_trust_enabled = True
        else:
            log.warning("unknown trust type: %s", tokens[3])

    def _map(self, tokens: List[str]) -> None:
        if len(tokens) < 6:
            raise CiscoConfigError("invalid mls qos map command")
        kind = tokens[3]
        if kind == "dscp-queue":
            dscps, target = self._dscp_mapping(tokens)
            queue = _parse_uint(target)
            if queue is None or queue > MAX_QUEUE:
                raise CiscoConfigError(f"invalid queue value: {target}")
            self.dscp_map.update(dict.fromkeys(dscps, queue))
        elif kind == "dscp-priority":
            dscps, target = self._dscp_mapping(tokens)
            priority = _parse_uint(target)
            if priority is None:
                raise CiscoConfigError(f"invalid priority value: {target}")
            self.dscp_priority_map.update(dict.fromkeys(dscps, priority))
        else:
            log.warning("unknown mls qos map command: %s", kind)

    @staticmethod
    def _dscp_mapping(tokens: List[str]) -> "tuple[List[int], str]":
        """Split ``... <dscp>... to <value>`` into DSCP values and the target token."""
        try:
            to_index = tokens.index("to", 4)
        except ValueError:
            to_index = None
        if to_index is None or to_index == len(tokens) - 1:
            raise CiscoConfigError(
                "invalid mls qos map command: missing 'to' keyword or value"
            )
        dscps = []
        for token in tokens[4:to_index]:
            dscp = _parse_uint(token)
            if dscp is None or dscp > MAX_DSCP:
                raise CiscoConfigError(f"invalid DSCP value: {token}")
            dscps.append(dscp)
        return dscps, tokens[to_index + 1]

    def _priorities(self) -> List[int]:
        if not self.qos_enabled:
            raise CiscoConfigError("QoS is not enabled")
        if not self.priority_queue_enabled:
            raise CiscoConfigError("priority queue is not enabled")
        if not self.dscp_trust_enabled:
            raise CiscoConfigError("DSCP trust is not enabled")
        if not self.dscp_map:
            raise CiscoConfigError("no DSCP to queue mapping")

        priorities = [0] + [LOWEST_PRIORITY] * (NUM_QUEUES - 1)
        if self.dscp_priority_map:
            for queue in range(1, NUM_QUEUES):
                priorities[queue] = min(
                    (
                        p
                        for p in self.dscp_priority_map.values()
                        if p % (NUM_QUEUES - 1) + 1 == queue
                    ),
                    default=LOWEST_PRIORITY,
                )
                priorities[queue] = min(priorities[queue], LOWEST_PRIORITY)
        else:
            for dscp, queue in sorted(self.dscp_map.items()):
                if 0 < queue < NUM_QUEUES:
                    priorities[queue] = min(priorities[queue], dscp % 3 + 1)
        log.info("parsed Cisco configuration: %d queues %s", NUM_QUEUES, priorities)
        return priorities


def parse_cisco_config(filename: str) -> List[int]:
    """Parse a Cisco configuration file into per-queue priority levels."""
    return CiscoParser().parse(filename)