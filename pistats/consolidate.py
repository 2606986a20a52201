"""Reduce a batch of raw snapshots to a single averaged snapshot."""
from dataclasses import fields
from typing import Any, List, Optional, Sequence

from .models import Snapshot, GeneralInfo, CpuInfo, MemoryInfo, FilesystemInfo, NetworkInfo


def _mean(values: List[Any]) -> Any:
    if not values:
        return None
    # Text fields (hostname, device) keep the newest value
    if isinstance(values[-1], str):
        return values[-1]
    avg = sum(values) / len(values)
    if all(isinstance(v, int) for v in values):
        # int() truncates toward zero, like the collector's byte -> MB conversion
        return int(avg)
    return avg


def _average_records(cls, records: Sequence[Optional[Any]], **fixed) -> Optional[Any]:
    present = [r for r in records if r is not None]
    if not present:
        return None
    values = dict(fixed)
    for f in fields(cls):
        if f.name in values:
            continue
        values[f.name] = _mean(
            [getattr(r, f.name) for r in present if getattr(r, f.name) is not None]
        )
    return cls(**values)


def _average_filesystems(batch: Sequence[Snapshot]) -> Optional[List[FilesystemInfo]]:
    lists = [s.filesystems for s in batch if s.filesystems is not None]
    if not lists:
        return None
    by_mount = {}
    for fs_list in lists:
        for fs in fs_list:
            by_mount.setdefault(fs.mount_point, []).append(fs)
    return [
        _average_records(FilesystemInfo, group, mount_point=mount)
        for mount, group in by_mount.items()
    ]


def consolidate(batch: Sequence[Snapshot]) -> Snapshot:
    """Average ``batch`` field by field.

    A field is averaged over the samples where it is present and is ``None``
    when no sample has it. The result carries the collection time of the
    last sample.
    """
    if not batch:
        raise ValueError("cannot consolidate an empty batch")

    return Snapshot(
        general=_average_records(GeneralInfo, [s.general for s in batch]) or GeneralInfo(),
        cpu=_average_records(CpuInfo, [s.cpu for s in batch]) or CpuInfo(),
        memory=_average_records(MemoryInfo, [s.memory for s in batch]),
        filesystems=_average_filesystems(batch),
        network=_average_records(NetworkInfo, [s.network for s in batch]) or NetworkInfo(),
        collection_time=batch[-1].collection_time,
    )
