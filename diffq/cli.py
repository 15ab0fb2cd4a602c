"""Command-line driver: configure a queue, push bulk flows through it, plot throughput."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .diffserv import ConfigError, DiffServ
from .drr import DRR
from .filters import DestPortFilter, Filter
from .packet import Ipv4Header, Packet, TcpHeader
from .spq import SPQ
from .throughput import (
    DEFAULT_BIN_INTERVAL,
    DEFAULT_PORT_BASE,
    DEFAULT_SIM_DURATION,
    FlowSample,
    Scenario,
    ThroughputRecorder,
    generate_throughput_plot,
)
from .traffic_class import TrafficClass

log = logging.getLogger(__name__)

SPQ_DEFAULT_FILE = "spq_default.conf"
SPQ_DEFAULT_CONFIG = "2\n0\n1\n"
DRR_DEFAULT_FILE = "drr_default.conf"
DRR_DEFAULT_CONFIG = "3\n300\n200\n100\n"

EGRESS_RATE_BPS = 1_000_000
SEGMENT_PAYLOAD = 536
SENDER_WINDOW = 20
SOURCE_ADDRESS = "10.1.1.1"
SINK_ADDRESS = "10.1.2.2"
HIGH_PRIORITY_START = 12.0
HIGH_PRIORITY_STOP = 20.0
_FIRST_SOURCE_PORT = 49153


def write_default_config_file(filename: str, content: str) -> None:
    """Write ``content`` to ``filename``; log an error if it cannot be written."""
    try:
        with open(filename, "w", encoding="utf-8") as handle:
            handle.write(content)
    except OSError:
        log.error("Could not write default config file: %s", filename)
        return
    log.info("created default config file: %s", filename)


def _add_port_filter(traffic_class: TrafficClass, port: int) -> None:
    port_filter = Filter()
    port_filter.add_element(DestPortFilter(port))
    traffic_class.add_filter(port_filter)


def setup_spq(
    config_file: str, use_cisco: bool = False, port_base: int = DEFAULT_PORT_BASE
) -> SPQ:
    """Build the SPQ validation queue: class 0 takes ``port_base + 1``, class 1 ``port_base``."""
    spq = SPQ()
    if use_cisco:
        if config_file:
            spq.load_cisco_config(config_file)
    else:
        if not config_file:
            raise ConfigError("SPQ standard config file must be provided")
        spq.load_config(config_file)

    classes = spq.traffic_classes
    if len(classes) < 2:
        raise ConfigError("SPQ config did not create at least 2 queues for validation")
    _add_port_filter(classes[0], port_base + 1)
    _add_port_filter(classes[1], port_base)
    return spq


def setup_drr(config_file: str, port_base: int = DEFAULT_PORT_BASE) -> DRR:
    """Build the DRR validation queue: classes 0, 1 and 2 take consecutive ports."""
    if not config_file:
        raise ConfigError("DRR config file must be provided")
    drr = DRR()
    drr.load_config(config_file)
    classes = drr.traffic_classes
    if len(classes) < 3:
        raise ConfigError("DRR config did not create at least 3 queues for validation")
    for offset, traffic_class in enumerate(classes[:3]):
        _add_port_filter(traffic_class, port_base + offset)
    return drr


@dataclass
class _Flow:
    """A window-limited bulk sender and its receiving sink."""

    flow_id: int
    port: int
    start: float
    stop: float
    in_queue: int = 0
    received: int = 0
    started: bool = False

    def active(self, now: float) -> bool:
        return self.start <= now < self.stop

    def packet(self) -> Packet:
        return Packet(
            ipv4=Ipv4Header(SOURCE_ADDRESS, SINK_ADDRESS),
            tcp=TcpHeader(_FIRST_SOURCE_PORT + self.flow_id, self.port),
            payload_size=SEGMENT_PAYLOAD,
        )

    def sample(self) -> FlowSample:
        return FlowSample(self.flow_id, self.received, self.port if self.started else None)


def _next_packet(queue: DiffServ) -> Optional[Packet]:
    packet = queue.dequeue()
    while packet is None and not queue.is_empty():
        packet = queue.dequeue()
    return packet


def _run(
    queue: DiffServ, flows: Sequence[_Flow], recorder: ThroughputRecorder, duration: float
) -> None:
    """Drive the flows through the queue over a single egress link and sample throughput."""
    by_port = {flow.port: flow for flow in flows}
    interval = recorder.bin_interval
    record_times = deque()
    t = interval
    while t <= duration + interval / 2.0:
        record_times.append(t)
        t += interval

    idle_slot = flows[0].packet().size * 8 / EGRESS_RATE_BPS
    now = 0.0
    while now < duration:
        for flow in flows:
            if flow.active(now):
                flow.started = True
                while flow.in_queue < SENDER_WINDOW and queue.enqueue(flow.packet()):
                    flow.in_queue += 1
        packet = _next_packet(queue)
        if packet is None:
            now += idle_slot
        else:
            now += packet.size * 8 / EGRESS_RATE_BPS
            flow = by_port[packet.tcp.destination_port]
            flow.in_queue -= 1
            if now <= duration:
                flow.received += 1
        while record_times and record_times[0] <= min(now, duration):
            recorder.record(record_times.popleft(), [f.sample() for f in flows])

    while record_times and record_times[0] <= duration:
        recorder.record(record_times.popleft(), [f.sample() for f in flows])
    recorder.record(duration, [f.sample() for f in flows])


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {text}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diffq", description="Run a DiffServ queue validation scenario."
    )
    parser.add_argument("--mode", default="spq", help="Simulation mode (spq or drr)")
    parser.add_argument(
        "--config",
        default="",
        help="Configuration file (e.g., for DRR, or optional for SPQ)",
    )
    parser.add_argument(
        "--cisco",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=False,
        help="Use Cisco configuration format for SPQ",
    )
    parser.add_argument(
        "--simTime",
        dest="sim_time",
        type=float,
        default=DEFAULT_SIM_DURATION,
        help="Total simulation time in seconds",
    )
    parser.add_argument(
        "--plotInterval",
        dest="plot_interval",
        type=float,
        default=DEFAULT_BIN_INTERVAL,
        help="Interval for collecting plot data in seconds",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.sim_time <= 0 or args.plot_interval <= 0:
        parser.error("simTime and plotInterval must be positive")

    mode = args.mode
    config_file = args.config
    use_cisco = args.cisco
    duration = args.sim_time
    port_base = DEFAULT_PORT_BASE

    if mode == "spq":
        if not config_file and not use_cisco:
            config_file = SPQ_DEFAULT_FILE
            write_default_config_file(config_file, SPQ_DEFAULT_CONFIG)
            log.info("SPQ mode: no config file specified, using default %r", config_file)
        elif not config_file:
            print("SPQ Cisco mode: config file must be specified.", file=sys.stderr)
            return 1
    elif mode == "drr":
        if not config_file:
            config_file = DRR_DEFAULT_FILE
            write_default_config_file(config_file, DRR_DEFAULT_CONFIG)
            log.warning("DRR mode: no config file specified, using default %r", config_file)
    else:
        print(f"Unknown mode: {mode}", file=sys.stderr)
        return 1

    try:
        if mode == "spq":
            queue: DiffServ = setup_spq(config_file, use_cisco, port_base)
            scenario = Scenario.spq(port_base)
            flows = [
                _Flow(1, port_base, 0.0, duration),
                _Flow(2, port_base + 1, HIGH_PRIORITY_START, HIGH_PRIORITY_STOP),
            ]
        else:
            queue = setup_drr(config_file, port_base)
            scenario = Scenario.drr(port_base)
            flows = [_Flow(i + 1, port_base + i, 0.0, duration) for i in range(3)]
    except ConfigError as exc:
        print(f"Failed to configure {mode} queue from {config_file}: {exc}", file=sys.stderr)
        return 1

    recorder = ThroughputRecorder(scenario, bin_interval=args.plot_interval)
    log.info(
        "starting simulation for %s seconds with plot interval %ss",
        duration,
        args.plot_interval,
    )
    _run(queue, flows, recorder, duration)

    tag = mode
    if mode == "spq" and use_cisco:
        tag += "-cisco"
    generate_throughput_plot(recorder, f"{tag}-throughput", scenario, duration)
    return 0


if __name__ == "__main__":
    sys.exit(main())