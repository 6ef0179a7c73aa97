"""Exceptions shared across the release pipeline."""

from __future__ import annotations

CONFLICT_PREFIX = "CONFLICTS:"


class ReleaseAbort(Exception):
    """Stop the pipeline and report ``message``.

    Raised by release steps for user-declined confirmations and validation
    failures. Never caught by the steps themselves; the driver turns it into
    an exit code.
    """

    def __init__(self, message: str = "", exit_code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class MergeConflictError(RuntimeError):
    """A git merge stopped on conflicts.

    The message always starts with ``CONFLICTS:`` followed by the files git
    reported, so it can be told apart from any other git failure.
    """

    def __init__(self, files: list[str]) -> None:
        super().__init__(f"{CONFLICT_PREFIX} {', '.join(files)}")
        self.files = files


class CommandError(RuntimeError):
    """An external command (npm, grunt, php) exited with a non-zero code."""


class RunStateError(RuntimeError):
    """A release step broke the run state contract (order or immutability)."""
