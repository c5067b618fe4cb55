"""Interactive terminal dashboard: live CPU, memory and disk usage.

A single dispatch loop on the main thread owns all state. Every change flows
through :meth:`DashboardApp.update` as one of a handful of events; snapshot
assembly runs on a worker so the quit keys stay responsive while the CPU
query is sampling.

Usage:
    uv run sysdash
    uv run sysdash --interval 0.5 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import enum
import logging
import sys
import time
from collections.abc import Callable, Iterator
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from functools import partial
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import Any

from sysdash.config import dump_default_config, load_config
from sysdash.errors import ProviderError, RenderSubsystemError
from sysdash.metrics import PsutilProvider, SystemMetrics, assemble_snapshot
from sysdash.render import (
    S_BAR,
    S_BORDER,
    S_DIM,
    S_HEADING,
    S_TITLE,
    Frame,
    Theme,
    render,
)
from sysdash.widgets import DashboardState

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────

KEY_CTRL_C = 3
QUIT_KEYS = frozenset({ord("q"), KEY_CTRL_C})

# Records kept back while curses owns the screen
_HELD_LOG_CAPACITY = 10_000

# Curses colour-pair IDs
C_TITLE = 1
C_HEADING = 2
C_BAR = 3
C_BORDER = 4
C_DIM = 5

_STYLE_PAIRS = {
    S_TITLE: C_TITLE,
    S_HEADING: C_HEADING,
    S_BAR: C_BAR,
    S_BORDER: C_BORDER,
    S_DIM: C_DIM,
}


# ── Events ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Tick:
    at: float


@dataclass(frozen=True)
class KeyPress:
    key: int


@dataclass(frozen=True)
class SnapshotReady:
    snapshot: SystemMetrics


@dataclass(frozen=True)
class AssemblyFailed:
    error: ProviderError


@dataclass(frozen=True)
class Terminate:
    pass


Event = Tick | KeyPress | SnapshotReady | AssemblyFailed | Terminate


# ── Input ──────────────────────────────────────────────────────────────────


class RunState(enum.Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


class InputHandler:
    """Running until a quit key arrives, then Terminated for good."""

    def __init__(self) -> None:
        self.state = RunState.RUNNING

    def handle_key(self, key: int) -> RunState:
        if key in QUIT_KEYS:
            self.terminate()
        return self.state

    def terminate(self) -> None:
        self.state = RunState.TERMINATED


# ── Scheduling ─────────────────────────────────────────────────────────────


class RefreshScheduler:
    """Fixed-period timer that never overlaps assemblies.

    ``poll`` emits a :class:`Tick` once the period has elapsed and nothing is
    in flight. After ``fire`` submits the work, later polls report the result
    as :class:`SnapshotReady` or :class:`AssemblyFailed` and re-arm the timer
    from the moment it landed.
    """

    def __init__(
        self,
        assemble: Callable[[], SystemMetrics],
        period: float,
        executor: Executor,
    ) -> None:
        self.period = float(period)
        self._assemble = assemble
        self._executor = executor
        self._pending: Future[SystemMetrics] | None = None
        self._next_fire = 0.0

    @property
    def in_flight(self) -> bool:
        return self._pending is not None

    def arm(self, now: float) -> None:
        self._next_fire = now + self.period

    def fire(self) -> None:
        if self._pending is None:
            self._pending = self._executor.submit(self._assemble)

    def poll(self, now: float) -> list[Event]:
        if self._pending is None:
            if now >= self._next_fire:
                return [Tick(now)]
            return []

        if not self._pending.done():
            return []

        future, self._pending = self._pending, None
        self.arm(now)
        try:
            snapshot = future.result()
        except ProviderError as e:
            return [AssemblyFailed(e)]
        return [SnapshotReady(snapshot)]

    def shutdown(self) -> None:
        """Stop accepting work; an assembly already running is abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)


# ── State transitions ──────────────────────────────────────────────────────


class DashboardApp:
    """Owns the dashboard state; the only place it is ever mutated."""

    def __init__(
        self,
        state: DashboardState,
        scheduler: RefreshScheduler,
        input_handler: InputHandler | None = None,
    ) -> None:
        self.state = state
        self.scheduler = scheduler
        self.input = input_handler or InputHandler()

    @property
    def running(self) -> bool:
        return self.input.state is RunState.RUNNING

    def update(self, event: Event) -> None:
        """Apply one event.

        Raises:
            ProviderError: On :class:`AssemblyFailed` while running. A failed
                refresh ends the dashboard; there is no retry. Results that
                land after a quit are discarded, failures included.
        """
        if isinstance(event, KeyPress):
            self.input.handle_key(event.key)
        elif isinstance(event, Terminate):
            self.input.terminate()
        elif isinstance(event, Tick):
            if self.running:
                self.scheduler.fire()
        elif isinstance(event, SnapshotReady):
            if self.running:
                self.state.apply(event.snapshot)
        elif isinstance(event, AssemblyFailed):
            if self.running:
                self.input.terminate()
                raise event.error


# ── Curses drawing ─────────────────────────────────────────────────────────


def _color_id(name: str) -> int:
    return int(getattr(curses, f"COLOR_{name.upper()}"))


def _init_colors(theme: Theme) -> dict[str, int]:
    """Set up one colour pair per style and return the attribute for each.

    Monochrome terminals get bold titles and headings only.
    """
    if not curses.has_colors():
        return {S_TITLE: curses.A_BOLD, S_HEADING: curses.A_BOLD}
    curses.start_color()
    curses.use_default_colors()
    attrs: dict[str, int] = {}
    for style, pair in _STYLE_PAIRS.items():
        color = theme.color(style)
        if color is None:
            continue
        curses.init_pair(pair, _color_id(color), -1)
        attrs[style] = curses.color_pair(pair)
    attrs[S_TITLE] |= curses.A_BOLD
    attrs[S_HEADING] |= curses.A_BOLD
    return attrs


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_frame(win: curses.window, frame: Frame, attrs: dict[str, int]) -> None:
    """Paint *frame* from the top-left corner, clipped to the window."""
    win.erase()
    max_y, max_x = win.getmaxyx()
    for y, line in enumerate(frame.lines[:max_y]):
        x = 0
        for span in line:
            room = max_x - 1 - x
            if room <= 0:
                break
            _safe(win, y, x, span.text[:room], attrs.get(span.style, curses.A_NORMAL))
            x += len(span.text)
    win.refresh()


# ── Main loop ──────────────────────────────────────────────────────────────


def _dashboard_loop(stdscr: curses.window, app: DashboardApp, theme: Theme) -> None:
    try:
        attrs = _init_colors(theme)
        curses.curs_set(0)
        curses.raw()
        stdscr.timeout(max(1, int(app.scheduler.period * 1000)))
    except curses.error as e:
        raise RenderSubsystemError(f"terminal setup failed: {e}") from e

    logger.info("dashboard started, refresh every %.3fs", app.scheduler.period)
    dirty = True
    try:
        while app.running:
            if dirty:
                _draw_frame(stdscr, render(app.state, theme), attrs)
                dirty = False

            try:
                key = stdscr.getch()
            except KeyboardInterrupt:
                app.update(Terminate())
                break

            if key == curses.KEY_RESIZE:
                stdscr.clear()
                dirty = True
            elif key != -1:
                app.update(KeyPress(key))

            for event in app.scheduler.poll(time.monotonic()):
                app.update(event)
                if isinstance(event, SnapshotReady):
                    dirty = True
    except curses.error as e:
        raise RenderSubsystemError(f"terminal drawing failed: {e}") from e
    logger.info("dashboard stopped")


# ── Logging ────────────────────────────────────────────────────────────────


def configure_logging(config: dict[str, Any]) -> logging.Handler:
    """Attach a single handler to the ``sysdash`` logger and return it."""
    log_file = config.get("log_file") or ""
    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(Path(log_file).expanduser(), encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s")
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("sysdash: %(levelname)s: %(message)s"))

    root = logging.getLogger("sysdash")
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.addHandler(handler)
    root.setLevel(str(config.get("log_level", "warning")).upper())
    root.propagate = False
    return handler


@contextmanager
def _held_logs(handler: logging.Handler) -> Iterator[None]:
    """Buffer records bound for *handler* and replay them on exit.

    Used while curses owns the terminal so stderr writes cannot land on the
    alternate screen.
    """
    root = logging.getLogger("sysdash")
    buffer = MemoryHandler(
        _HELD_LOG_CAPACITY, flushLevel=logging.CRITICAL + 1, target=handler
    )
    root.removeHandler(handler)
    root.addHandler(buffer)
    try:
        yield
    finally:
        root.removeHandler(buffer)
        buffer.close()
        root.addHandler(handler)


# ── CLI entry point ────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Live terminal dashboard for CPU, memory and disk usage.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between refreshes (default: 0.05, from config)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return 0

    config = load_config(args.config)
    if args.interval is not None:
        if args.interval <= 0:
            parser.error("--interval must be positive")
        config["interval"] = args.interval
    try:
        log_handler = configure_logging(config)
    except OSError as e:
        print(f"sysdash: cannot open log file {config['log_file']}: {e}", file=sys.stderr)
        return 1

    provider = PsutilProvider(sample_seconds=config["cpu_sample_seconds"])
    try:
        first = assemble_snapshot(provider)
    except ProviderError as e:
        logger.error("%s", e)
        return 1

    state = DashboardState(first, bar_width=config["bar_width"])
    theme = Theme.from_config(config)
    scheduler = RefreshScheduler(
        partial(assemble_snapshot, provider),
        config["interval"],
        ThreadPoolExecutor(max_workers=1, thread_name_prefix="sysdash-refresh"),
    )
    scheduler.arm(time.monotonic())
    app = DashboardApp(state, scheduler)

    try:
        # stderr records wait until curses has restored the terminal
        held = nullcontext() if config["log_file"] else _held_logs(log_handler)
        with held:
            curses.wrapper(_dashboard_loop, app, theme)
    except ProviderError as e:
        logger.error("%s", e)
        return 1
    except (RenderSubsystemError, curses.error) as e:
        print(f"sysdash: terminal error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
