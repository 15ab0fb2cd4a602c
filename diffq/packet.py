"""A minimal packet model: an optional IPv4 header, an optional TCP header and a payload."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import ClassVar, Optional, Union

AddressLike = Union[IPv4Address, str, int]

TCP_PROTOCOL = 6
UDP_PROTOCOL = 17


def _to_address(value: AddressLike) -> IPv4Address:
    return value if isinstance(value, IPv4Address) else IPv4Address(value)


@dataclass
class Ipv4Header:
    """IPv4 header fields relevant to classification."""

    source: IPv4Address = field(default_factory=lambda: IPv4Address("0.0.0.0"))
    destination: IPv4Address = field(default_factory=lambda: IPv4Address("0.0.0.0"))
    protocol: int = TCP_PROTOCOL

    SIZE: ClassVar[int] = 20

    def __post_init__(self) -> None:
        self.source = _to_address(self.source)
        self.destination = _to_address(self.destination)
        if not 0 <= self.protocol <= 255:
            raise ValueError(f"protocol out of range: {self.protocol}")


@dataclass
class TcpHeader:
    """TCP header fields relevant to classification."""

    source_port: int = 0
    destination_port: int = 0

    SIZE: ClassVar[int] = 20

    def __post_init__(self) -> None:
        for port in (self.source_port, self.destination_port):
            if not 0 <= port <= 0xFFFF:
                raise ValueError(f"port out of range: {port}")


@dataclass
class Packet:
    """A packet with optional IPv4 and TCP headers followed by a payload."""

    ipv4: Optional[Ipv4Header] = None
    tcp: Optional[TcpHeader] = None
    payload_size: int = 0

    def __post_init__(self) -> None:
        if self.payload_size < 0:
            raise ValueError("payload size must not be negative")

    @property
    def size(self) -> int:
        """Total size in bytes: headers plus payload."""
        total = self.payload_size
        if self.ipv4 is not None:
            total += Ipv4Header.SIZE
        if self.tcp is not None:
            total += TcpHeader.SIZE
        return total

    def copy(self) -> "Packet":
        """Return an independent copy of this packet."""
        return _copy.deepcopy(self)