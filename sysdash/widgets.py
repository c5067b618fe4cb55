"""Presentation state kept alongside the current snapshot.

Core count and mounted partitions can change between refreshes on
hot-pluggable systems, so every snapshot is reconciled into the widget lists
before anything is drawn.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sysdash.metrics import MemoryMetrics, PartitionMetrics, SystemMetrics

DEFAULT_BAR_WIDTH = 40


@dataclass
class ProgressBar:
    """Fill state of one progress bar. ``fraction`` is stored unclamped."""

    width: int = DEFAULT_BAR_WIDTH
    fraction: float = 0.0

    def set_fraction(self, fraction: float) -> None:
        self.fraction = fraction


@dataclass(frozen=True)
class Column:
    title: str
    width: int


DISK_COLUMNS: tuple[Column, ...] = (
    Column("Device", 20),
    Column("Mount", 40),
    Column("FS type", 10),
    Column("Used", 10),
    Column("Total", 10),
    Column("Free", 10),
)


@dataclass
class DiskTable:
    columns: tuple[Column, ...] = DISK_COLUMNS
    rows: tuple[PartitionMetrics, ...] = ()
    height: int = 1  # visible lines, header included

    def set_rows(self, rows: tuple[PartitionMetrics, ...]) -> None:
        self.rows = tuple(rows)
        self.height = len(self.rows) + 1


def memory_fraction(memory: MemoryMetrics) -> float:
    """used/total, or 0.0 when the provider reports no memory at all."""
    if memory.total_bytes == 0:
        return 0.0
    return memory.used_bytes / memory.total_bytes


@dataclass
class DashboardState:
    """The current snapshot plus the widgets that display it."""

    snapshot: SystemMetrics
    bar_width: int = DEFAULT_BAR_WIDTH
    core_bars: list[ProgressBar] = field(default_factory=lambda: list[ProgressBar]())
    memory_bar: ProgressBar = field(init=False)
    disk_table: DiskTable = field(default_factory=DiskTable)

    def __post_init__(self) -> None:
        self.memory_bar = ProgressBar(self.bar_width)
        self.apply(self.snapshot)

    def apply(self, snapshot: SystemMetrics) -> None:
        """Reconcile widgets with *snapshot*, then make it the current one.

        Applying the same snapshot twice leaves the state unchanged.
        """
        percents = snapshot.cpu.per_core_percent
        if len(percents) != len(self.core_bars):
            self.core_bars = [ProgressBar(self.bar_width) for _ in percents]
        for bar, pct in zip(self.core_bars, percents):
            bar.set_fraction(pct / 100)

        self.memory_bar.set_fraction(memory_fraction(snapshot.memory))
        self.disk_table.set_rows(snapshot.disk.partitions)
        self.snapshot = snapshot

    def core_bar(self, index: int) -> ProgressBar:
        """Widget for core *index*; a blank one if the lists are out of step."""
        if 0 <= index < len(self.core_bars):
            return self.core_bars[index]
        return ProgressBar(self.bar_width)
