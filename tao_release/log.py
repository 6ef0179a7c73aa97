"""Console output for release runs.

Every step reports what it is doing and how it ended, so a long interactive
release stays readable in the terminal.
"""

from __future__ import annotations

import click


def title(msg: str) -> None:
    """Print the run title."""
    click.echo()
    click.echo("✨ " + click.style(msg, bold=True, underline=True) + " ✨")
    click.echo()


def doing(msg: str) -> None:
    click.secho(f"➡ {msg}", fg="bright_black")


def done(msg: str = "ok") -> None:
    click.secho(f" ✅ {msg}", fg="green")


def info(msg: str) -> None:
    click.secho(msg, fg="blue")


def warn(msg: str) -> None:
    click.secho(f"⚠ {msg}", fg="yellow")


def error(msg: str | BaseException) -> None:
    """Print an error to stderr."""
    click.secho(f"❎ {msg}", fg="red", err=True)
