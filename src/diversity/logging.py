# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour and emoji support."""

from __future__ import annotations

import logging
import sys
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.text import Text

_CONSOLES: dict[tuple[bool, bool, bool], Console] = {}


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal.

    Returns:
        bool: ``True`` when ``sys.stdout`` reports TTY support, ``False`` otherwise.
    """

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def get_console(*, color: bool, emoji: bool) -> Console:
    """Return a Rich console configured for ``color`` and ``emoji`` preferences.

    Args:
        color: ``True`` when ANSI colour output should be enabled.
        emoji: ``True`` when Rich should render emoji glyphs.

    Returns:
        Console: Cached or newly constructed console matching the preferences.
    """

    tty = detect_tty()
    key = (color, emoji, tty)
    if key not in _CONSOLES:
        color_system: Literal["auto"] | None = "auto" if color and tty else None
        _CONSOLES[key] = Console(
            color_system=color_system,
            force_terminal=tty,
            no_color=not (color and tty),
            emoji=emoji,
            soft_wrap=True,
        )
    return _CONSOLES[key]


def emoji(symbol: str, enable: bool) -> str:
    """Return *symbol* when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


def _print_line(
    msg: str,
    *,
    style: str | None,
    use_emoji: bool,
    use_color: bool | None = None,
) -> None:
    color_enabled = detect_tty() if use_color is None else use_color
    console = get_console(color=color_enabled, emoji=use_emoji)
    text = Text(msg)
    if style and color_enabled:
        text.stylize(style)
    console.print(text)


def section(title: str, *, use_color: bool) -> None:
    """Render a section header to delineate console output blocks.

    Args:
        title: Section title displayed to the user.
        use_color: Flag indicating whether ANSI colour support is desired.
    """

    console = get_console(color=use_color, emoji=True)
    if use_color:
        console.print()
        console.print(Rule(title))
    else:
        console.print(f"\n--- {title} ---")


def info(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Emit an informational message."""

    _print_line(f"{emoji('ℹ️ ', use_emoji)}{msg}", style="cyan", use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Emit a success message."""

    _print_line(f"{emoji('✅ ', use_emoji)}{msg}", style="green", use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Emit a warning message."""

    _print_line(f"{emoji('⚠️ ', use_emoji)}{msg}", style="yellow", use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool = False, use_color: bool | None = None) -> None:
    """Emit an error message."""

    _print_line(f"{emoji('❌ ', use_emoji)}{msg}", style="red", use_emoji=use_emoji, use_color=use_color)


def configure_logging(level: int | str = logging.WARNING) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    Repeated calls only adjust the level; the handler is installed once.

    Args:
        level: Logging level name or number applied to the ``diversity`` logger.

    Returns:
        logging.Logger: The configured package logger.
    """

    logger = logging.getLogger("diversity")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True, soft_wrap=True),
            show_path=False,
            rich_tracebacks=False,
        )
        logger.addHandler(handler)
    return logger


__all__ = [
    "configure_logging",
    "detect_tty",
    "emoji",
    "fail",
    "get_console",
    "info",
    "ok",
    "section",
    "warn",
]
