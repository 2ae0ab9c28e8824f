"""
Weave CLI - styled output helpers built on Click.

    success(), error(), warning(), dim()
    section()   - section divider with title
    kv()        - key-value pair, aligned
    bullet()    - bulleted list item

Status output goes to stderr so that JSON and bundle output on stdout
stays pipeable. click.style handles NO_COLOR / non-tty terminals.
"""

from __future__ import annotations

import shutil

import click

_L_H = "\u2500"      # ─
_BULLET = "\u2022"   # •
_CHECK = "\u2713"    # ✓
_CROSS = "\u2717"    # ✗


def _tw() -> int:
    """Terminal width, clamped to a sane range."""
    return max(40, min(shutil.get_terminal_size((80, 24)).columns, 120))


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"), err=True)


def error(message: str) -> None:
    """Print error message in red."""
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    """Print warning message in yellow."""
    click.echo(click.style(message, fg="yellow"), err=True)


def dim(message: str) -> None:
    click.echo(click.style(message, dim=True), err=True)


def section(title: str, *, fg: str = "cyan") -> None:
    """
    Print a section header with a ruled line.

        ── Order ─────────────────────────────────
    """
    dashes = max(4, _tw() - len(title) - 6)
    line = f"{_L_H}{_L_H} {title} {_L_H * dashes}"
    click.echo(click.style(line, fg=fg, bold=True), err=True)


def kv(key: str, value: object, *, key_width: int = 16, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        Assets:         12
        Fingerprint:    3f2a…
    """
    prefix = " " * indent
    k = click.style(f"{key}:", fg="white")
    v = click.style(str(value), fg="cyan")
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{prefix}{k}{padding}{v}", err=True)


def bullet(text: str, *, indent: int = 2, fg: str = "white") -> None:
    """Print a bulleted list item."""
    prefix = " " * indent
    click.echo(f"{prefix}{click.style(_BULLET, fg='cyan')} {click.style(text, fg=fg)}", err=True)
