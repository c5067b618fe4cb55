"""Configuration loading for sysdash.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sysdash/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 0.05,
    "cpu_sample_seconds": 1.0,
    "bar_width": 40,
    "log_level": "warning",
    "log_file": "",
    "banner": True,
    "theme": {
        "title": "yellow",
        "heading": "magenta",
        "bar": "magenta",
        "border": "white",
        "dim": "white",
    },
}

COLOR_NAMES = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

_DEFAULT_PATH = Path.home() / ".config" / "sysdash" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> list[str]:
    """Return a list of problems with *config*; empty when it is usable."""
    problems: list[str] = []

    for key in ("interval", "cpu_sample_seconds"):
        value = config.get(key)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            problems.append(f"{key} must be a positive number, got {value!r}")

    width = config.get("bar_width")
    if not isinstance(width, int) or isinstance(width, bool) or width < 10:
        problems.append(f"bar_width must be an integer >= 10, got {width!r}")

    level = config.get("log_level")
    if not isinstance(level, str) or level.lower() not in LOG_LEVELS:
        problems.append(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")

    if not isinstance(config.get("log_file"), str):
        problems.append(f"log_file must be a string, got {config.get('log_file')!r}")

    if not isinstance(config.get("banner"), bool):
        problems.append(f"banner must be true or false, got {config.get('banner')!r}")

    theme = config.get("theme")
    if not isinstance(theme, dict):
        problems.append("theme must be a table")
    else:
        for role, color in theme.items():
            if role not in DEFAULT_CONFIG["theme"]:
                problems.append(f"theme.{role} is not a known style")
            elif not isinstance(color, str) or color.lower() not in COLOR_NAMES:
                problems.append(f"theme.{role}: unknown colour {color!r}")

    return problems


def _checked(config: dict[str, Any], source: Path) -> dict[str, Any]:
    problems = validate_config(config)
    if problems:
        for problem in problems:
            print(f"sysdash: {source}: {problem}", file=sys.stderr)
        raise SystemExit(1)
    return config


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sysdash/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist, can't be parsed, or
                    holds invalid values.
    """
    if path is not None:
        if not path.is_file():
            print(f"sysdash: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sysdash: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _checked(_deep_merge(DEFAULT_CONFIG, user_config), path)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _checked(_deep_merge(DEFAULT_CONFIG, user_config), _DEFAULT_PATH)
        except tomllib.TOMLDecodeError:
            print(
                f"sysdash: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return _deep_merge(DEFAULT_CONFIG, {})


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# sysdash configuration",
        "# Place this file at ~/.config/sysdash/config.toml",
        "",
        "# Seconds between refreshes; CPU sampling usually dominates this.",
        f"interval = {DEFAULT_CONFIG['interval']}",
        f"cpu_sample_seconds = {DEFAULT_CONFIG['cpu_sample_seconds']}",
        f"bar_width = {DEFAULT_CONFIG['bar_width']}",
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
        f'log_file = "{DEFAULT_CONFIG["log_file"]}"',
        f"banner = {str(DEFAULT_CONFIG['banner']).lower()}",
        "",
        "[theme]",
    ]
    for role, color in DEFAULT_CONFIG["theme"].items():
        lines.append(f'{role} = "{color}"')

    return "\n".join(lines) + "\n"
