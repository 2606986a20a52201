"""Read one snapshot of the host with psutil.

Every subsystem is read independently. A failure is logged and leaves that
part of the snapshot empty instead of failing the whole collection; the next
periodic sample is the retry.
"""
import logging
import socket
import time
from typing import List, Optional

import psutil

from .models import Snapshot, GeneralInfo, CpuInfo, MemoryInfo, FilesystemInfo, NetworkInfo, utcnow

logger = logging.getLogger(__name__)

MB = 1024 * 1024


def _to_mb(value: int) -> int:
    return int(value // MB)


def get_cpu_temp() -> Optional[float]:
    if not hasattr(psutil, "sensors_temperatures"):
        return None
    temps = psutil.sensors_temperatures()
    if "cpu_thermal" in temps:
        return float(temps["cpu_thermal"][0].current)
    for name in temps:
        if "core" in name or "cpu" in name or "k10temp" in name:
            return float(temps[name][0].current)
    return None


def collect_general() -> GeneralInfo:
    info = GeneralInfo()
    try:
        info.hostname = socket.gethostname()
    except OSError as e:
        logger.warning(f"Error reading hostname: {e}")
    try:
        info.uptime_seconds = int(time.time() - psutil.boot_time())
    except Exception as e:
        logger.warning(f"Error reading uptime: {e}")
    try:
        info.process_count = len(psutil.pids())
    except Exception as e:
        logger.warning(f"Error counting processes: {e}")
    return info


def collect_memory() -> Optional[MemoryInfo]:
    try:
        ram = psutil.virtual_memory()
    except Exception as e:
        logger.warning(f"Error reading memory stats: {e}")
        return None
    info = MemoryInfo(
        total_mb=_to_mb(ram.total),
        used_mb=_to_mb(ram.used),
        available_mb=_to_mb(ram.available),
    )
    try:
        swap = psutil.swap_memory()
        info.swap_total_mb = _to_mb(swap.total)
        info.swap_used_mb = _to_mb(swap.used)
    except Exception as e:
        logger.warning(f"Error reading swap stats: {e}")
    return info


def collect_filesystems() -> Optional[List[FilesystemInfo]]:
    try:
        partitions = psutil.disk_partitions(all=False)
    except Exception as e:
        logger.warning(f"Error listing mounted filesystems: {e}")
        return None
    result = []
    for part in partitions:
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError as e:
            logger.warning(f"Error reading usage of {part.mountpoint}: {e}")
            continue
        result.append(
            FilesystemInfo(
                mount_point=part.mountpoint,
                device=part.device,
                total_mb=_to_mb(usage.total),
                used_mb=_to_mb(usage.used),
                free_mb=_to_mb(usage.free),
            )
        )
    return result


def _net_counters():
    try:
        return psutil.net_io_counters()
    except Exception as e:
        logger.warning(f"Error reading network counters: {e}")
        return None


def collect_snapshot(sample_duration: float) -> Snapshot:
    """Collect a snapshot, blocking for about ``sample_duration`` seconds.

    CPU load and network throughput are both measured over that window.
    """
    before = _net_counters()
    started = time.monotonic()

    cpu = CpuInfo()
    try:
        cpu.usage_percent = float(psutil.cpu_percent(interval=sample_duration))
    except Exception as e:
        logger.warning(f"Error reading CPU usage: {e}")
        time.sleep(max(0.0, sample_duration - (time.monotonic() - started)))
    elapsed = time.monotonic() - started

    try:
        cpu.load_avg_1, cpu.load_avg_5, cpu.load_avg_15 = psutil.getloadavg()
    except Exception as e:
        logger.warning(f"Error reading load average: {e}")
    try:
        cpu.temperature_c = get_cpu_temp()
    except Exception as e:
        logger.warning(f"Error reading CPU temperature: {e}")

    network = NetworkInfo()
    after = _net_counters()
    if after is not None:
        network.rx_total_bytes = int(after.bytes_recv)
        network.tx_total_bytes = int(after.bytes_sent)
        if before is not None and elapsed > 0:
            network.rx_bytes_per_sec = max(0, after.bytes_recv - before.bytes_recv) / elapsed
            network.tx_bytes_per_sec = max(0, after.bytes_sent - before.bytes_sent) / elapsed

    return Snapshot(
        general=collect_general(),
        cpu=cpu,
        memory=collect_memory(),
        filesystems=collect_filesystems(),
        network=network,
        collection_time=utcnow(),
    )
