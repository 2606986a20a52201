"""Snapshot records produced by the collector and stored in the history.

Sub-records that the collector could not read are ``None`` on the snapshot;
individual counters inside a sub-record are ``None`` when only that counter
was unavailable.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional


@dataclass
class GeneralInfo:
    hostname: Optional[str] = None
    uptime_seconds: Optional[int] = None
    process_count: Optional[int] = None


@dataclass
class CpuInfo:
    usage_percent: Optional[float] = None
    load_avg_1: Optional[float] = None
    load_avg_5: Optional[float] = None
    load_avg_15: Optional[float] = None
    temperature_c: Optional[float] = None


@dataclass
class MemoryInfo:
    total_mb: Optional[int] = None
    used_mb: Optional[int] = None
    available_mb: Optional[int] = None
    swap_total_mb: Optional[int] = None
    swap_used_mb: Optional[int] = None


@dataclass
class FilesystemInfo:
    mount_point: str
    device: Optional[str] = None
    total_mb: Optional[int] = None
    used_mb: Optional[int] = None
    free_mb: Optional[int] = None


@dataclass
class NetworkInfo:
    rx_bytes_per_sec: Optional[float] = None
    tx_bytes_per_sec: Optional[float] = None
    rx_total_bytes: Optional[int] = None
    tx_total_bytes: Optional[int] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Snapshot:
    """One measurement of the host, or the average of a batch of them."""

    general: GeneralInfo = field(default_factory=GeneralInfo)
    cpu: CpuInfo = field(default_factory=CpuInfo)
    memory: Optional[MemoryInfo] = None
    filesystems: Optional[List[FilesystemInfo]] = None
    network: NetworkInfo = field(default_factory=NetworkInfo)
    collection_time: datetime = field(default_factory=utcnow)


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    data = asdict(snapshot)
    data["collection_time"] = snapshot.collection_time.isoformat()
    return data


def snapshot_from_dict(data: Dict[str, Any]) -> Snapshot:
    """Rebuild a Snapshot from :func:`snapshot_to_dict` output.

    Raises KeyError, TypeError or ValueError on malformed input.
    """
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")
    memory = data.get("memory")
    filesystems = data.get("filesystems")
    return Snapshot(
        general=GeneralInfo(**(data.get("general") or {})),
        cpu=CpuInfo(**(data.get("cpu") or {})),
        memory=MemoryInfo(**memory) if memory is not None else None,
        filesystems=[FilesystemInfo(**fs) for fs in filesystems]
        if filesystems is not None
        else None,
        network=NetworkInfo(**(data.get("network") or {})),
        collection_time=datetime.fromisoformat(data["collection_time"]),
    )
