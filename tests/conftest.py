"""Shared snapshot builders for the sysdash tests."""

from __future__ import annotations

from sysdash.metrics import (
    CPUMetrics,
    DiskMetrics,
    MemoryMetrics,
    PartitionMetrics,
    SystemMetrics,
)

GIB = 1024**3


def make_snapshot(
    per_core: tuple[float, ...] = (10.0, 55.0),
    used: int = 4 * GIB,
    total: int = 8 * GIB,
    partitions: tuple[PartitionMetrics, ...] | None = None,
    sampled_at: float = 1_700_000_000.0,
) -> SystemMetrics:
    if partitions is None:
        partitions = (
            PartitionMetrics("/dev/sda1", "/", "ext4", 20 * GIB, 100 * GIB, 80 * GIB),
        )
    return SystemMetrics(
        cpu=CPUMetrics(
            model_name="Test CPU @ 2.40GHz",
            frequency_mhz=2400.0,
            physical_cores=max(1, len(per_core) // 2),
            logical_cores=len(per_core),
            per_core_percent=per_core,
        ),
        memory=MemoryMetrics(used_bytes=used, total_bytes=total),
        disk=DiskMetrics(partitions=partitions),
        sampled_at=sampled_at,
    )
