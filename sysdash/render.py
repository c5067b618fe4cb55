"""Turn a :class:`DashboardState` into a frame of styled text.

Nothing in here touches the terminal; the curses layer in
:mod:`sysdash.dashboard` maps each span's style name to a colour pair.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from sysdash.config import DEFAULT_CONFIG
from sysdash.metrics import PartitionMetrics
from sysdash.widgets import Column, DashboardState, DiskTable, ProgressBar

APP_NAME = "sysdash"
QUIT_HINT = "q: quit"
CPU_TITLE = "CPU Metrics"
MEM_TITLE = "Memory Metrics"
DISK_TITLE = "Disk Metrics"

# Shown above the status line when ``banner`` is on
BANNER = tuple(
    r"""
                     _           _
  ___ _   _ ___  __| | __ _ ___| |__
 / __| | | / __|/ _` |/ _` / __| '_ \
 \__ \ |_| \__ \ (_| | (_| \__ \ | | |
 |___/\__, |___/\__,_|\__,_|___/_| |_|
      |___/
""".strip("\n").splitlines()
)

# Style names carried by spans
S_TEXT = "text"
S_TITLE = "title"
S_HEADING = "heading"
S_BAR = "bar"
S_BORDER = "border"
S_DIM = "dim"


@dataclass(frozen=True)
class Theme:
    """Colours and glyphs, built once at startup."""

    title: str = "yellow"
    heading: str = "magenta"
    bar: str = "magenta"
    border: str = "white"
    dim: str = "white"
    bar_fill: str = "█"
    bar_empty: str = "░"
    banner: bool = True

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Theme:
        colors = {**DEFAULT_CONFIG["theme"], **config.get("theme", {})}
        return cls(
            **{role: str(color).lower() for role, color in colors.items()},
            banner=bool(config.get("banner", True)),
        )

    def color(self, style: str) -> str | None:
        """Colour name for a span style; None means the terminal default."""
        if style == S_TEXT:
            return None
        return getattr(self, style)


DEFAULT_THEME = Theme()


@dataclass(frozen=True)
class Span:
    text: str
    style: str = S_TEXT


Line = tuple[Span, ...]


@dataclass(frozen=True)
class Frame:
    lines: tuple[Line, ...]

    @property
    def text(self) -> str:
        return "\n".join("".join(span.text for span in line) for line in self.lines)


# ── Formatting helpers ─────────────────────────────────────────────────────


def format_size(size: int) -> str:
    """Two-tier size label: whole megabytes below 1024M, whole gigabytes above."""
    mb = size // (1024 * 1024)
    if mb >= 1024:
        return f"{mb // 1024}G"
    return f"{mb}M"


def _fit(text: str, width: int) -> str:
    """Pad or truncate *text* to exactly *width* cells."""
    if len(text) > width:
        return text[: width - 1] + "…"
    return text.ljust(width)


def progress_spans(bar: ProgressBar, theme: Theme) -> Line:
    """``█████░░░░░  50%`` for one bar; the drawn fill is clamped to [0, 1]."""
    fraction = max(0.0, min(1.0, bar.fraction))
    filled = int(round(bar.width * fraction))
    return (
        Span(theme.bar_fill * filled, S_BAR),
        Span(theme.bar_empty * (bar.width - filled), S_DIM),
        Span(f" {fraction * 100:3.0f}%"),
    )


def _section_header(title: str) -> list[Line]:
    return [
        (Span(title, S_HEADING),),
        (Span("#" * len(title), S_HEADING),),
    ]


# ── Sections ───────────────────────────────────────────────────────────────


def _title_block(state: DashboardState, theme: Theme) -> list[Line]:
    stamp = time.strftime("%H:%M:%S", time.localtime(state.snapshot.sampled_at))
    lines: list[Line] = []
    if theme.banner:
        lines += [(Span(row, S_TITLE),) for row in BANNER]
        lines.append(())
    return lines + [
        (
            Span(APP_NAME, S_TITLE),
            Span(" - system dashboard  ", S_TITLE),
            Span(f"[{stamp}]", S_DIM),
            Span("  "),
            Span(QUIT_HINT, S_DIM),
        ),
        (),
    ]


def _cpu_section(state: DashboardState, theme: Theme) -> list[Line]:
    cpu = state.snapshot.cpu
    lines = _section_header(CPU_TITLE)
    lines.append((Span(f"Model Name: {cpu.model_name}"),))
    lines.append((Span(f"Frequency: {cpu.frequency_mhz:.2f}MHz"),))
    lines.append(
        (Span(f"Total CPU: {cpu.physical_cores} physical ({cpu.logical_cores} logical)"),)
    )
    lines.append(())
    for i in range(len(cpu.per_core_percent)):
        bar = state.core_bar(i)
        lines.append((Span(f"CPU {i + 1:>2d}: ", S_DIM), *progress_spans(bar, theme)))
    return lines


def _memory_section(state: DashboardState, theme: Theme) -> list[Line]:
    mem = state.snapshot.memory
    lines = _section_header(MEM_TITLE)
    lines.append((Span(f"Used {mem.used_bytes} bytes (of {mem.total_bytes} bytes)"),))
    lines.append(())
    lines.append(progress_spans(state.memory_bar, theme))
    return lines


def _table_row(cells: list[str], columns: tuple[Column, ...], style: str) -> Line:
    text = "".join(f" {_fit(cell, col.width)} " for cell, col in zip(cells, columns))
    return (Span("│", S_BORDER), Span(text, style), Span("│", S_BORDER))


def _partition_cells(part: PartitionMetrics) -> list[str]:
    return [
        part.device,
        part.mount_point,
        part.fs_type,
        format_size(part.used_bytes),
        format_size(part.total_bytes),
        format_size(part.free_bytes),
    ]


def table_lines(table: DiskTable) -> list[Line]:
    """Bordered table: header plus at most ``height - 1`` rows."""
    inner = sum(col.width + 2 for col in table.columns)
    lines: list[Line] = [(Span("┌" + "─" * inner + "┐", S_BORDER),)]
    lines.append(_table_row([col.title for col in table.columns], table.columns, S_HEADING))
    for part in table.rows[: max(0, table.height - 1)]:
        lines.append(_table_row(_partition_cells(part), table.columns, S_TEXT))
    lines.append((Span("└" + "─" * inner + "┘", S_BORDER),))
    return lines


def _disk_section(state: DashboardState) -> list[Line]:
    return _section_header(DISK_TITLE) + table_lines(state.disk_table)


# ── Entry point ────────────────────────────────────────────────────────────


def render(state: DashboardState, theme: Theme = DEFAULT_THEME) -> Frame:
    """Build the full dashboard frame. Same state in, same frame out."""
    lines = _title_block(state, theme)
    lines += _cpu_section(state, theme)
    lines.append(())
    lines += _memory_section(state, theme)
    lines.append(())
    lines += _disk_section(state)
    return Frame(lines=tuple(lines))
