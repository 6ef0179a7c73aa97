"""Questions asked to the person running the release.

Every prompt knows how to answer itself when the run is not interactive:
either with the ``unattended`` answer given by the caller, or by stopping
the release when no safe answer exists.
"""

from __future__ import annotations

import threading
import webbrowser
from typing import Any

import click

from .shell import fatal


class Prompter:
    """Ask questions on the terminal, or answer them unattended.

    Args:
        interactive: False never blocks on user input.
    """

    def __init__(self, interactive: bool = True) -> None:
        self.interactive = interactive

    def _unattended(self, message: str, unattended: Any) -> Any:
        if unattended is None:
            fatal(f"Unable to answer '{message}' in non interactive mode")
        return unattended

    def confirm(self, message: str, *, default: bool = False, unattended: bool | None = None) -> bool:
        """Ask a yes/no question.

        Raises:
            ReleaseAbort: In non interactive mode when ``unattended`` is None.
        """
        if not self.interactive:
            return self._unattended(message, unattended)
        return click.confirm(message, default=default)

    def text(
        self,
        message: str,
        *,
        default: str | None = None,
        unattended: str | None = None,
        hide_input: bool = False,
    ) -> str:
        if not self.interactive:
            return self._unattended(message, unattended if unattended is not None else default)
        return click.prompt(message, default=default, hide_input=hide_input).strip()

    def choice(
        self, message: str, choices: list[str], *, default: str | None = None, unattended: str | None = None
    ) -> str:
        """Pick one entry of a list."""
        if not self.interactive:
            return self._unattended(message, unattended if unattended is not None else default)
        return click.prompt(
            message,
            type=click.Choice(choices),
            default=default if default in choices else None,
            show_choices=True,
        )

    def open_later(self, url: str, delay: float = 2.0) -> threading.Timer | None:
        """Open ``url`` in the browser after ``delay`` seconds (interactive only)."""
        if not self.interactive:
            return None
        timer = threading.Timer(delay, webbrowser.open, args=(url,))
        timer.daemon = True
        timer.start()
        return timer
