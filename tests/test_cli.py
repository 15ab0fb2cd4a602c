import logging
import re
import subprocess
from unittest import mock

import pytest

from diffq.cli import main, setup_drr, setup_spq, write_default_config_file
from diffq.diffserv import ConfigError
from diffq.packet import Ipv4Header, Packet, TcpHeader

CISCO_CONFIG = """! switch configuration
mls qos
interface GigabitEthernet1/0/1
 priority-queue out
 mls qos trust dscp
mls qos map dscp-queue 46 to 1
"""


def _packet(port):
    return Packet(
        ipv4=Ipv4Header("10.1.1.1", "10.1.2.2"),
        tcp=TcpHeader(50000, port),
        payload_size=100,
    )


def _datasets(path):
    lines = path.read_text().splitlines()
    plot_line = next(line for line in lines if line.startswith("plot "))
    titles = re.findall(r'title "([^"]+)"', plot_line)
    blocks = []
    current = []
    for line in lines[lines.index(plot_line) + 1:]:
        if line == "e":
            blocks.append(current)
            current = []
        else:
            x, y = map(float, line.split())
            current.append((x, y))
    return dict(zip(titles, blocks))


def _on_grid(x, interval=0.5):
    return abs(x / interval - round(x / interval)) < 1e-9


def _ok_run():
    patcher = mock.patch("diffq.throughput.subprocess.run")
    return patcher


def test_write_default_config_file_round_trip(tmp_path):
    target = tmp_path / "spq.conf"
    write_default_config_file(str(target), "2\n0\n1\n")
    assert target.read_text() == "2\n0\n1\n"


def test_write_default_config_file_logs_failure(tmp_path, caplog):
    target = tmp_path / "missing-dir" / "x.conf"
    with caplog.at_level(logging.ERROR, logger="diffq.cli"):
        write_default_config_file(str(target), "3\n")
    assert not target.exists()
    assert any(str(target) in record.getMessage() for record in caplog.records)


def test_setup_spq_from_standard_config(tmp_path):
    config = tmp_path / "spq.conf"
    config.write_text("2\n0\n1\n")
    spq = setup_spq(str(config), False, 9)
    assert [tc.priority_level for tc in spq.traffic_classes] == [0, 1]
    assert spq.classify(_packet(10)) == 0
    assert spq.classify(_packet(9)) == 1
    assert spq.config_file == str(config)


def test_setup_spq_serves_high_priority_first(tmp_path):
    config = tmp_path / "spq.conf"
    config.write_text("2\n0\n1\n")
    spq = setup_spq(str(config), False, 9)
    low = _packet(9)
    high = _packet(10)
    assert spq.enqueue(low)
    assert spq.enqueue(high)
    assert spq.dequeue() is high
    assert spq.dequeue() is low


def test_setup_spq_requires_config_file():
    with pytest.raises(ConfigError):
        setup_spq("", False, 9)


def test_setup_spq_requires_two_queues(tmp_path):
    config = tmp_path / "one.conf"
    config.write_text("1\n0\n")
    with pytest.raises(ConfigError):
        setup_spq(str(config), False, 9)


def test_setup_spq_from_cisco_config(tmp_path):
    config = tmp_path / "cisco.conf"
    config.write_text(CISCO_CONFIG)
    spq = setup_spq(str(config), True, 9)
    assert len(spq.traffic_classes) == 4
    assert spq.traffic_classes[0].priority_level == 0
    assert spq.cisco_config_file == str(config)
    assert spq.classify(_packet(10)) == 0


def test_setup_spq_cisco_without_file_has_no_queues():
    with pytest.raises(ConfigError):
        setup_spq("", True, 9)


def test_setup_drr_assigns_consecutive_ports(tmp_path):
    config = tmp_path / "drr.conf"
    config.write_text("3\n300\n200\n100\n")
    drr = setup_drr(str(config), 9)
    assert tuple(drr.quantums) == (300, 200, 100)
    assert [drr.classify(_packet(port)) for port in (9, 10, 11)] == [0, 1, 2]


def test_setup_drr_requires_three_queues(tmp_path):
    config = tmp_path / "drr.conf"
    config.write_text("2\n100\n100\n")
    with pytest.raises(ConfigError):
        setup_drr(str(config), 9)


def test_main_unknown_mode_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["--mode=wfq"]) == 1
    assert list(tmp_path.iterdir()) == []


def test_main_cisco_needs_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["--mode=spq", "--cisco=true"]) == 1
    assert not (tmp_path / "spq_default.conf").exists()


def test_main_bad_config_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "bad.conf").write_text("0\n")
    assert main(["--mode=drr", "--config=bad.conf"]) == 1


def test_main_spq_default_config_and_plot(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with _ok_run() as run:
        run.return_value = subprocess.CompletedProcess([], 0)
        assert main(["--mode=spq", "--simTime=2"]) == 0
        run.assert_called_once_with(["gnuplot", "spq-throughput.plt"], check=False)
    assert (tmp_path / "spq_default.conf").read_text() == "2\n0\n1\n"
    datasets = _datasets(tmp_path / "spq-throughput.plt")
    assert list(datasets) == ["Low Priority (Port 9)"]
    low = datasets["Low Priority (Port 9)"]
    assert low[0] == (0.0, 0.0)
    assert low[-1][0] == 2.0
    assert any(y > 0 for _, y in low)


def test_main_spq_high_priority_starves_low(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with _ok_run() as run:
        run.return_value = subprocess.CompletedProcess([], 0)
        assert main(["--mode", "spq", "--simTime", "20"]) == 0
    datasets = _datasets(tmp_path / "spq-throughput.plt")
    low = datasets["Low Priority (Port 9)"]
    high = datasets["High Priority (Port 10)"]
    assert all(y == 0 for x, y in low if 13.0 <= x <= 19.5)
    assert any(y > 0 for x, y in high if 13.0 <= x <= 19.5)
    assert all(y == 0 for x, y in high if 0.0 < x <= 12.0 and _on_grid(x))


def test_main_drr_shares_by_quantum(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with _ok_run() as run:
        run.return_value = subprocess.CompletedProcess([], 0)
        assert main(["--mode=drr", "--simTime=4"]) == 0
    assert (tmp_path / "drr_default.conf").read_text() == "3\n300\n200\n100\n"
    datasets = _datasets(tmp_path / "drr-throughput.plt")
    totals = {
        title: sum(y for x, y in points if x > 0 and _on_grid(x))
        for title, points in datasets.items()
    }
    assert totals["DRR W3 (Port 9)"] > totals["DRR W2 (Port 10)"] > totals["DRR W1 (Port 11)"]
    capacity = 1_000_000 / (576 * 8)
    per_bin = {}
    for points in datasets.values():
        for x, y in points:
            if 0 < x < 4.0 and _on_grid(x):
                per_bin[x] = per_bin.get(x, 0.0) + y
    assert per_bin
    assert all(total <= capacity + 2 for total in per_bin.values())


def test_main_cisco_plot_tag(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "cisco.conf").write_text(CISCO_CONFIG)
    with _ok_run() as run:
        run.return_value = subprocess.CompletedProcess([], 1)
        assert main(["--mode=spq", "--config=cisco.conf", "--cisco", "--simTime=1"]) == 0
    assert (tmp_path / "spq-cisco-throughput.plt").exists()
    assert not (tmp_path / "spq_default.conf").exists()