from ipaddress import IPv4Address

import pytest

from diffq.filters import (
    DestIpAddress,
    DestPortFilter,
    Filter,
    FilterElement,
    SourceIpAddress,
)
from diffq.packet import Ipv4Header, Packet, TcpHeader


def make_packet(src="10.1.1.1", dst="10.1.2.2", protocol=6, dport=9, tcp=True):
    return Packet(
        ipv4=Ipv4Header(source=src, destination=dst, protocol=protocol),
        tcp=TcpHeader(source_port=49153, destination_port=dport) if tcp else None,
        payload_size=100,
    )


def test_filter_element_is_abstract():
    with pytest.raises(TypeError):
        FilterElement()


def test_source_ip_default_is_any():
    assert SourceIpAddress().address == IPv4Address("0.0.0.0")


def test_source_ip_match():
    element = SourceIpAddress("10.1.1.1")
    assert element.match(make_packet(src="10.1.1.1")) is True
    assert element.match(make_packet(src="10.1.1.5")) is False


def test_source_ip_without_ipv4_header():
    assert SourceIpAddress("10.1.1.1").match(Packet(payload_size=10)) is False


def test_source_ip_address_can_be_changed():
    element = SourceIpAddress("10.1.1.1")
    element.address = IPv4Address("10.1.1.5")
    assert element.match(make_packet(src="10.1.1.5")) is True


def test_dest_ip_match():
    element = DestIpAddress("10.1.2.2")
    assert element.match(make_packet(dst="10.1.2.2")) is True
    assert element.match(make_packet(dst="10.1.2.3")) is False
    assert element.match(Packet()) is False


def test_dest_ip_default_is_any():
    assert DestIpAddress().address == IPv4Address("0.0.0.0")


def test_dest_port_match():
    element = DestPortFilter(9)
    assert element.match(make_packet(dport=9)) is True
    assert element.match(make_packet(dport=10)) is False


def test_dest_port_requires_tcp_protocol():
    assert DestPortFilter(9).match(make_packet(protocol=17, dport=9)) is False


def test_dest_port_requires_tcp_header():
    assert DestPortFilter(9).match(make_packet(tcp=False)) is False


def test_dest_port_requires_ipv4_header():
    packet = Packet(tcp=TcpHeader(destination_port=9))
    assert DestPortFilter(9).match(packet) is False


def test_empty_filter_matches_everything():
    assert Filter().match(Packet()) is True


def test_filter_requires_all_elements():
    flt = Filter()
    flt.add_element(SourceIpAddress("10.1.1.1"))
    flt.add_element(DestPortFilter(9))
    assert len(flt.elements) == 2
    assert flt.match(make_packet(src="10.1.1.1", dport=9)) is True
    assert flt.match(make_packet(src="10.1.1.1", dport=10)) is False
    assert flt.match(make_packet(src="10.1.1.7", dport=9)) is False


def test_filter_does_not_modify_packet():
    packet = make_packet()
    before = packet.copy()
    flt = Filter([DestPortFilter(9), DestIpAddress("10.1.2.2")])
    flt.match(packet)
    assert packet == before