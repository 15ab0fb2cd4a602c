"""Per-flow throughput sampling and gnuplot rendering of the results."""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_BIN_INTERVAL = 0.5
DEFAULT_SIM_DURATION = 40.0
DEFAULT_PORT_BASE = 9
STEP_EPSILON = 0.00001

Point = Tuple[float, float]


@dataclass(frozen=True)
class FlowSample:
    """Cumulative statistics of one flow at a sampling instant.

    ``destination_port`` is None while the flow's five-tuple is not yet known.
    """

    flow_id: int
    rx_packets: int
    destination_port: Optional[int] = None


@dataclass(frozen=True)
class Scenario:
    """The flows a validation scenario cares about, with their plot styles.

    Each entry of ``flows`` is ``(port, title prefix, colour)``, in the order
    they are checked when plotting.
    """

    name: str
    flows: Tuple[Tuple[int, str, str], ...]

    @classmethod
    def spq(cls, port_base: int = DEFAULT_PORT_BASE) -> "Scenario":
        """Two flows: low priority on ``port_base``, high priority on the next port."""
        return cls(
            "spq",
            (
                (port_base, "Low Priority", "blue"),
                (port_base + 1, "High Priority", "red"),
            ),
        )

    @classmethod
    def drr(cls, port_base: int = DEFAULT_PORT_BASE) -> "Scenario":
        """Three flows on consecutive ports, weighted 3, 2 and 1."""
        return cls(
            "drr",
            (
                (port_base, "DRR W3", "red"),
                (port_base + 1, "DRR W2", "blue"),
                (port_base + 2, "DRR W1", "green"),
            ),
        )

    @property
    def ports(self) -> Tuple[int, ...]:
        return tuple(port for port, _, _ in self.flows)

    def is_relevant(self, port: int) -> bool:
        """True if traffic to ``port`` belongs to this scenario."""
        return port in self.ports

    def _style(self, port: int) -> Optional[Tuple[str, str]]:
        for flow_port, prefix, colour in self.flows:
            if flow_port != 0 and port == flow_port:
                return f"{prefix} (Port {port})", colour
        return None


@dataclass
class PlotDataset:
    """One line of the throughput plot."""

    title: str
    color: str
    points: List[Point]


@dataclass
class ThroughputRecorder:
    """Turns cumulative received-packet counts into packets/second per bin."""

    scenario: Scenario
    bin_interval: float = DEFAULT_BIN_INTERVAL
    plot_data: Dict[int, Dict[float, float]] = field(default_factory=dict)
    last_rx_packets: Dict[int, int] = field(default_factory=dict)
    destination_ports: Dict[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.bin_interval <= 0:
            raise ValueError("bin_interval must be positive")

    def record(self, now: float, flows: Iterable[FlowSample]) -> None:
        """Record one sampling instant for every flow seen so far."""
        for sample in flows:
            flow_id = sample.flow_id
            if flow_id not in self.destination_ports:
                if sample.destination_port is not None:
                    self.destination_ports[flow_id] = sample.destination_port
                else:
                    log.debug("destination port of flow %d not known yet", flow_id)
                    continue
            port = self.destination_ports[flow_id]

            relevant = self.scenario.is_relevant(port)
            if (
                not relevant
                and sample.rx_packets == 0
                and flow_id not in self.last_rx_packets
            ):
                continue
            if not relevant and port != 0:
                continue

            previous = self.last_rx_packets.get(flow_id)
            in_bin = sample.rx_packets if previous is None else sample.rx_packets - previous
            self.plot_data.setdefault(flow_id, {})[now] = in_bin / self.bin_interval
            self.last_rx_packets[flow_id] = sample.rx_packets


def step_series(samples: Mapping[float, float], sim_duration: float) -> List[Point]:
    """Turn bin-end samples into the points of a step line from 0 to ``sim_duration``."""
    points: List[Point] = [(0.0, 0.0)]
    prev_time = 0.0
    prev_value = 0.0
    if not samples:
        points.append((sim_duration, 0.0))
    else:
        for time, value in sorted(samples.items()):
            if time > prev_time:
                step_time = time - STEP_EPSILON
                if step_time > prev_time:
                    points.append((step_time, prev_value))
                else:
                    points.append((prev_time, prev_value))
            elif prev_time == 0.0 and prev_value == 0.0 and time > 0.0:
                points.append((time - STEP_EPSILON, 0.0))
            points.append((time, value))
            prev_time, prev_value = time, value
    if prev_time < sim_duration:
        points.append((sim_duration, prev_value))
    return points


def plot_datasets(
    recorder: ThroughputRecorder, scenario: Scenario, sim_duration: float
) -> List[PlotDataset]:
    """Build one dataset per recorded flow that the scenario knows how to label."""
    datasets = []
    for flow_id, series in sorted(recorder.plot_data.items()):
        port = recorder.destination_ports.get(flow_id, 0)
        if port == 0 and not series:
            continue
        style = scenario._style(port)
        if style is None:
            log.debug("skipping flow %d to port %d", flow_id, port)
            continue
        title, colour = style
        datasets.append(PlotDataset(title, colour, step_series(series, sim_duration)))
    return datasets


def render_gnuplot_script(
    filename: str, datasets: Iterable[PlotDataset], sim_duration: float
) -> str:
    """Return a gnuplot script that draws the datasets into ``filename``.png."""
    datasets = list(datasets)
    lines = [
        "set terminal pngcairo enhanced font 'arial,10' size 800,600",
        f'set output "{filename}.png"',
        'set title "Throughput vs Time"',
        'set xlabel "Time (s)"',
        'set ylabel "Throughput (Packets/sec)"',
        f"set xrange [0:{sim_duration:.6f}]",
        "set yrange [0:]",
    ]
    if datasets:
        specs = ", ".join(
            f"\"-\"  title \"{ds.title}\" with lines lw 2 lc rgb '{ds.color}'"
            for ds in datasets
        )
        lines.append(f"plot {specs}")
        for ds in datasets:
            lines.extend(f"{x:g} {y:g}" for x, y in ds.points)
            lines.append("e")
    return "\n".join(lines) + "\n"


def generate_throughput_plot(
    recorder: ThroughputRecorder,
    filename: str,
    scenario: Scenario,
    sim_duration: float = DEFAULT_SIM_DURATION,
) -> bool:
    """Write ``filename``.plt and run gnuplot on it; return True if the PNG was made."""
    log.info("generating throughput plot: %s", filename)
    script = render_gnuplot_script(
        filename, plot_datasets(recorder, scenario, sim_duration), sim_duration
    )
    plt_path = f"{filename}.plt"
    with open(plt_path, "w", encoding="utf-8") as handle:
        handle.write(script)

    try:
        result = subprocess.run(["gnuplot", plt_path], check=False)
        succeeded = result.returncode == 0
    except OSError:
        succeeded = False
    if not succeeded:
        print(
            "Failed to run gnuplot command. Check if gnuplot is installed and in PATH.",
            file=sys.stderr,
        )
        print(f"Plot file is: {plt_path}", file=sys.stderr)
        return False
    print(f"Generated plot: {filename}.png")
    return True