"""Packet filters: individual match conditions and their conjunction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import List, Union

from .packet import TCP_PROTOCOL, Packet

AddressLike = Union[IPv4Address, str, int]


def _any_address() -> IPv4Address:
    return IPv4Address("0.0.0.0")


class FilterElement(ABC):
    """A single condition a packet may satisfy."""

    @abstractmethod
    def match(self, packet: Packet) -> bool:
        """Return True if the packet satisfies this condition."""


@dataclass
class SourceIpAddress(FilterElement):
    """Matches packets whose IPv4 source address equals ``address``."""

    address: IPv4Address = field(default_factory=_any_address)

    def __post_init__(self) -> None:
        if not isinstance(self.address, IPv4Address):
            self.address = IPv4Address(self.address)

    def match(self, packet: Packet) -> bool:
        header = packet.ipv4
        if header is None:
            return False
        return header.source == self.address


@dataclass
class DestIpAddress(FilterElement):
    """Matches packets whose IPv4 destination address equals ``address``."""

    address: IPv4Address = field(default_factory=_any_address)

    def __post_init__(self) -> None:
        if not isinstance(self.address, IPv4Address):
            self.address = IPv4Address(self.address)

    def match(self, packet: Packet) -> bool:
        header = packet.ipv4
        if header is None:
            return False
        return header.destination == self.address


@dataclass
class DestPortFilter(FilterElement):
    """Matches TCP-over-IPv4 packets sent to ``port``."""

    port: int = 0

    def match(self, packet: Packet) -> bool:
        if packet.ipv4 is None or packet.ipv4.protocol != TCP_PROTOCOL:
            return False
        if packet.tcp is None:
            return False
        return packet.tcp.destination_port == self.port


@dataclass
class Filter:
    """A conjunction of filter elements; an empty filter matches everything."""

    elements: List[FilterElement] = field(default_factory=list)

    def add_element(self, element: FilterElement) -> None:
        self.elements.append(element)

    def match(self, packet: Packet) -> bool:
        return all(element.match(packet) for element in self.elements)