"""
Menu theme — colours and text styles, built once at startup.

A Theme is immutable and passed to every render function; nothing in
the menu reads module-level style globals.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import click

# Palette
ACCENT = (124, 58, 237)     # violet
SUCCESS = (16, 185, 129)    # green
WARN = (245, 158, 11)       # amber
MUTED = (107, 114, 128)     # grey
ERROR = (239, 68, 68)       # red
TEXT = (229, 231, 235)
BLACK = (0, 0, 0)


@dataclass(frozen=True)
class Style:
    """A click.style() call frozen into a value."""

    fg: tuple[int, int, int] | str | None = None
    bg: tuple[int, int, int] | str | None = None
    bold: bool = False
    italic: bool = False
    pad: int = 0
    width: int = 0

    def render(self, text: str) -> str:
        if self.width:
            text = text.ljust(self.width)
        if self.pad:
            text = " " * self.pad + text + " " * self.pad
        if self.fg is None and self.bg is None and not (self.bold or self.italic):
            return text
        return click.style(
            text,
            fg=self.fg,
            bg=self.bg,
            bold=self.bold or None,
            italic=self.italic or None,
        )


PLAIN = Style()


@dataclass(frozen=True)
class Theme:
    """Every style the menu uses."""

    title: Style = PLAIN
    subtitle: Style = PLAIN
    selected: Style = PLAIN
    normal: Style = PLAIN
    check: Style = PLAIN
    uncheck: Style = PLAIN
    dry_run_badge: Style = PLAIN
    success: Style = PLAIN
    error: Style = PLAIN
    help: Style = PLAIN
    config_key: Style = Style(width=28)
    config_val: Style = PLAIN
    spinner: Style = PLAIN
    cursor: str = "▸ "
    checked_box: str = "☑"
    unchecked_box: str = "☐"

    @classmethod
    def default(cls) -> Theme:
        return cls(
            title=Style(fg=ACCENT, bold=True),
            subtitle=Style(fg=MUTED, italic=True),
            selected=Style(fg=ACCENT, bold=True),
            normal=Style(fg=TEXT),
            check=Style(fg=SUCCESS),
            uncheck=Style(fg=MUTED),
            dry_run_badge=Style(fg=BLACK, bg=WARN, bold=True, pad=1),
            success=Style(fg=SUCCESS, bold=True),
            error=Style(fg=ERROR, bold=True),
            help=Style(fg=MUTED),
            config_key=Style(fg=ACCENT, width=28),
            config_val=Style(fg=TEXT),
            spinner=Style(fg=ACCENT),
        )

    @classmethod
    def plain(cls) -> Theme:
        """No colours (NO_COLOR, dumb terminals, tests)."""
        return cls(cursor="> ", checked_box="[x]", unchecked_box="[ ]")

    @classmethod
    def from_env(cls) -> Theme:
        if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
            return cls.plain()
        return cls.default()
