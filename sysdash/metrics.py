"""Metric snapshots and the provider that fills them.

The provider makes three blocking queries (CPU, memory, disk). The CPU query
samples busy time over ``sample_seconds`` and therefore never returns sooner
than that. :func:`assemble_snapshot` runs the three queries in parallel and
merges them into one immutable :class:`SystemMetrics`.
"""

from __future__ import annotations

import logging
import platform
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import psutil

from sysdash.errors import ProviderError

logger = logging.getLogger(__name__)

_CPUINFO_PATH = "/proc/cpuinfo"


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CPUMetrics:
    model_name: str
    frequency_mhz: float
    physical_cores: int
    logical_cores: int
    per_core_percent: tuple[float, ...]  # one entry per logical core, 0-100


@dataclass(frozen=True)
class MemoryMetrics:
    used_bytes: int
    total_bytes: int


@dataclass(frozen=True)
class PartitionMetrics:
    device: str
    mount_point: str
    fs_type: str
    used_bytes: int
    total_bytes: int
    free_bytes: int


@dataclass(frozen=True)
class DiskMetrics:
    partitions: tuple[PartitionMetrics, ...] = ()


@dataclass(frozen=True)
class SystemMetrics:
    """Snapshot of all metrics for one refresh cycle."""

    cpu: CPUMetrics
    memory: MemoryMetrics
    disk: DiskMetrics
    sampled_at: float = 0.0


# ── Provider contract ──────────────────────────────────────────────────────


class MetricsProvider(ABC):
    """Source of raw host metrics.

    Each query either returns a fully built value or raises
    :class:`ProviderError`. Queries are independent and read-only, so they
    may run concurrently.
    """

    @abstractmethod
    def query_cpu(self) -> CPUMetrics:
        """Return CPU info and per-core usage. Blocks for the sampling window."""

    @abstractmethod
    def query_memory(self) -> MemoryMetrics:
        """Return virtual memory usage."""

    @abstractmethod
    def query_disk(self) -> DiskMetrics:
        """Return usage for mounted partitions, skipping unreadable ones."""


# ── psutil implementation ──────────────────────────────────────────────────


def _read_model_name(path: str = _CPUINFO_PATH) -> str:
    """CPU model from /proc/cpuinfo, falling back to platform.processor()."""
    try:
        with open(path) as f:
            for line in f:
                key, sep, value = line.partition(":")
                if sep and key.strip() == "model name":
                    return value.strip()
    except OSError:
        pass
    return platform.processor()


class PsutilProvider(MetricsProvider):
    """Reads metrics through psutil."""

    def __init__(self, sample_seconds: float = 1.0) -> None:
        self.sample_seconds = float(sample_seconds)
        self._model_name: str | None = None

    def query_cpu(self) -> CPUMetrics:
        try:
            if self._model_name is None:
                self._model_name = _read_model_name()
            freq = psutil.cpu_freq()
            logical = psutil.cpu_count(logical=True) or 0
            physical = psutil.cpu_count(logical=False) or 0
            percents = psutil.cpu_percent(interval=self.sample_seconds, percpu=True)
        except (psutil.Error, OSError, RuntimeError) as e:
            raise ProviderError(f"could not read CPU metrics: {e}") from e

        return CPUMetrics(
            model_name=self._model_name,
            frequency_mhz=float(freq.current) if freq is not None else 0.0,
            physical_cores=physical,
            logical_cores=logical,
            per_core_percent=tuple(float(p) for p in percents),
        )

    def query_memory(self) -> MemoryMetrics:
        try:
            vm = psutil.virtual_memory()
        except (psutil.Error, OSError, RuntimeError) as e:
            raise ProviderError(f"could not read memory metrics: {e}") from e
        return MemoryMetrics(used_bytes=int(vm.used), total_bytes=int(vm.total))

    def query_disk(self) -> DiskMetrics:
        try:
            parts = psutil.disk_partitions(all=False)
        except (psutil.Error, OSError, RuntimeError) as e:
            raise ProviderError(f"could not list disk partitions: {e}") from e

        found: list[PartitionMetrics] = []
        for part in parts:
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (psutil.Error, OSError) as e:
                # One unreadable mount must not blank the whole table
                logger.debug("skipping partition %s: %s", part.mountpoint, e)
                continue
            found.append(
                PartitionMetrics(
                    device=part.device,
                    mount_point=part.mountpoint,
                    fs_type=part.fstype,
                    used_bytes=int(usage.used),
                    total_bytes=int(usage.total),
                    free_bytes=int(usage.free),
                )
            )
        return DiskMetrics(partitions=tuple(found))


# ── Snapshot assembly ──────────────────────────────────────────────────────


def assemble_snapshot(provider: MetricsProvider) -> SystemMetrics:
    """Query CPU, memory and disk in parallel and merge them into one snapshot.

    Raises:
        ProviderError: If any of the three queries fails. No partial snapshot
            is ever returned.
    """
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix="sysdash-query") as ex:
        fut_cpu = ex.submit(provider.query_cpu)
        fut_mem = ex.submit(provider.query_memory)
        fut_disk = ex.submit(provider.query_disk)

        cpu = fut_cpu.result()
        memory = fut_mem.result()
        disk = fut_disk.result()

    return SystemMetrics(cpu=cpu, memory=memory, disk=disk, sampled_at=time.time())
