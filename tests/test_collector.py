from collections import namedtuple

import psutil

from pistats import collector
from pistats.collector import collect_snapshot

Mem = namedtuple("Mem", "total used available")
Swap = namedtuple("Swap", "total used")
Net = namedtuple("Net", "bytes_sent bytes_recv")
Part = namedtuple("Part", "device mountpoint")
Usage = namedtuple("Usage", "total used free")

MB = 1024 * 1024


def _fake_host(monkeypatch):
    counters = iter([Net(1000, 5000), Net(3000, 9000)])
    monkeypatch.setattr(psutil, "cpu_percent", lambda interval=None: 12.5)
    monkeypatch.setattr(psutil, "getloadavg", lambda: (0.5, 0.25, 0.125))
    monkeypatch.setattr(psutil, "virtual_memory", lambda: Mem(1024 * MB, 300 * MB + 5, 700 * MB))
    monkeypatch.setattr(psutil, "swap_memory", lambda: Swap(0, 0))
    monkeypatch.setattr(psutil, "net_io_counters", lambda: next(counters))
    monkeypatch.setattr(psutil, "disk_partitions", lambda all=False: [Part("/dev/root", "/")])
    monkeypatch.setattr(psutil, "disk_usage", lambda path: Usage(2048 * MB, 1024 * MB, 1024 * MB))
    monkeypatch.setattr(collector, "get_cpu_temp", lambda: 48.2)


def test_collect_snapshot(monkeypatch):
    _fake_host(monkeypatch)
    snap = collect_snapshot(0)
    assert snap.cpu.usage_percent == 12.5
    assert snap.cpu.load_avg_1 == 0.5
    assert snap.cpu.temperature_c == 48.2
    assert snap.memory.used_mb == 300
    assert snap.memory.total_mb == 1024
    assert snap.filesystems[0].mount_point == "/"
    assert snap.filesystems[0].used_mb == 1024
    assert snap.network.rx_total_bytes == 9000
    assert snap.network.tx_total_bytes == 3000
    assert snap.collection_time.tzinfo is not None


def test_failed_subsystems_are_absent(monkeypatch, caplog):
    _fake_host(monkeypatch)

    def fail(*args, **kwargs):
        raise OSError("not available")

    monkeypatch.setattr(psutil, "virtual_memory", fail)
    monkeypatch.setattr(psutil, "disk_partitions", fail)
    monkeypatch.setattr(psutil, "getloadavg", fail)
    snap = collect_snapshot(0)
    assert snap.memory is None
    assert snap.filesystems is None
    assert snap.cpu.load_avg_1 is None
    assert snap.cpu.usage_percent == 12.5
    assert "Error reading memory stats" in caplog.text


def test_unreadable_mount_is_skipped(monkeypatch):
    _fake_host(monkeypatch)
    monkeypatch.setattr(
        psutil, "disk_partitions",
        lambda all=False: [Part("/dev/root", "/"), Part("/dev/sda1", "/mnt/gone")],
    )

    def usage(path):
        if path == "/mnt/gone":
            raise PermissionError(path)
        return Usage(2048 * MB, 1024 * MB, 1024 * MB)

    monkeypatch.setattr(psutil, "disk_usage", usage)
    snap = collect_snapshot(0)
    assert [fs.mount_point for fs in snap.filesystems] == ["/"]
