# diffq

Differentiated-services queueing in Python. A `DiffServ` queue holds a list of
traffic classes; each class owns a bounded FIFO and a set of filters that
decide which packets belong to it. Two schedulers are provided:

- **SPQ** (strict priority queueing): always serves the non-empty class with
  the lowest priority level; ties go to the lower index.
- **DRR** (deficit round robin): serves classes in turn, each earning a
  per-turn quantum of bytes it may spend on packets.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

## Packets and filters

`diffq.packet.Packet` carries an optional `Ipv4Header`, an optional
`TcpHeader` and a payload size. `Packet.size` is the payload plus 20 bytes for
each header present; `Packet.copy()` returns an independent copy.

Filter elements (`SourceIpAddress`, `DestIpAddress`, `DestPortFilter`) test one
property of a packet. A `Filter` matches when all of its elements match (an
empty filter matches everything), and a `TrafficClass` matches when any of its
filters match, or when it has none.

```python
from diffq.packet import Ipv4Header, TcpHeader, Packet
from diffq.filters import Filter, DestPortFilter, SourceIpAddress
from diffq.traffic_class import TrafficClass

packet = Packet(
    ipv4=Ipv4Header(source="10.1.1.1", destination="10.1.2.2", protocol=6),
    tcp=TcpHeader(source_port=49153, destination_port=10),
    payload_size=536,
)

web = Filter()
web.add_element(DestPortFilter(10))
web.add_element(SourceIpAddress("10.1.1.1"))

high = TrafficClass(priority_level=0, max_packets=100)
high.add_filter(web)
assert high.match(packet)
```

`TrafficClass.enqueue` returns `False` and drops the packet once
`max_packets` packets are queued; `dequeue` and `peek` return `None` when the
class is empty.

## The DiffServ queue

`DiffServ.enqueue` drops packets (returning `False`) once `max_size` packets
(default 100) are held in total, otherwise places the packet in the first
class that matches it, or in class 0 when none does. The base `schedule`
serves the first non-empty class; `SPQ` and `DRR` override it.

## Strict priority

A plain SPQ configuration file holds the number of queues on its first line
followed by one priority level per line:

```
2
0
1
```

```python
from diffq.spq import SPQ

spq = SPQ()
spq.load_config("spq.config")
spq.traffic_class(0).add_filter(web)
spq.enqueue(packet)
served = spq.dequeue()
```

`SPQ.load_cisco_config` reads a Cisco 3750-style configuration instead. It
needs `mls qos`, `priority-queue out`, `mls qos trust dscp` and at least one
`mls qos map dscp-queue <dscp>... to <queue>` line; `mls qos map dscp-priority
<dscp>... to <priority>` lines are also understood. Blank lines and lines
starting with `#` or `!` are ignored, and unknown commands are logged and
skipped. Such a configuration always yields four queues, queue 0 at priority
0. The parser can be used on its own through `parse_cisco_config(filename)`,
`CiscoParser.parse(filename)` or `CiscoParser.parse_lines(lines)`, each
returning the list of priority levels; malformed or incomplete input raises
`CiscoConfigError`.

## Deficit round robin

A DRR configuration file holds the number of queues followed by one positive
quantum (in bytes) per queue, separated by whitespace:

```
3
300
200
100
```

```python
from diffq.drr import DRR

drr = DRR()
drr.load_config("drr.config")
print(drr.quantums, drr.deficits)
```

Unreadable or invalid configuration files raise
`diffq.diffserv.ConfigError` (of which `CiscoConfigError` is a subclass).

## Throughput plots

`diffq.throughput` turns periodic per-flow receive counts into
packets-per-second step series. `ThroughputRecorder.record(now, flows)` takes
`FlowSample` values, `step_series` builds a step line, `plot_datasets` labels
the flows of an SPQ or DRR `Scenario`, `render_gnuplot_script` returns the
script text, and `generate_throughput_plot` writes `<filename>.plt` and, if
`gnuplot` is on the `PATH`, renders it to `<filename>.png`.

## Command line

```
diffq --mode=spq --config=spq.config
diffq --mode=spq --config=cisco-spq.config --cisco=true
diffq --mode=drr --config=drr.config
```

Without `--config`, SPQ and DRR modes write and use a default configuration
(`spq_default.conf` or `drr_default.conf`). Cisco mode requires a
configuration file. `--simTime` (default 40) and `--plotInterval` (default
0.5) set the run length and the sampling interval in seconds.

In SPQ mode a low-priority flow runs for the whole run and a high-priority
flow from 12 s to 20 s; in DRR mode three flows run throughout, bound to
classes 0, 1 and 2. The plot is written as `spq-throughput`,
`spq-cisco-throughput` or `drr-throughput`. The command exits with status 1
for an unknown mode or a configuration that cannot be loaded.

## What it does not do

The command does not simulate a network. Each flow is a sender that keeps a
fixed window of 536-byte segments in the queue, and the queue drains onto a
single 1 Mbit/s link; there is no TCP congestion control, no propagation
delay, no packet capture files and no flow-statistics export. Plots need an
external `gnuplot`; without it only the `.plt` script is written.