"""Shell, git and gh utilities.

Provides simple wrappers around subprocess calls for running git, gh and
arbitrary commands inside an explicit working root, plus the ``fatal``
helper used by release steps to stop the pipeline.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import NoReturn

from .errors import ReleaseAbort


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--porcelain").
        cwd: Working root of the repository. Never relies on the process cwd
             when given.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., config lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
    )
    return result.stdout.strip()


def git_result(*args: str, cwd: Path | str | None = None) -> subprocess.CompletedProcess[str]:
    """Run a git command without raising, so callers can inspect the failure."""
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True)


def gh(*args: str, token: str | None = None, check: bool = True) -> str:
    """Run a gh CLI command and return stdout.

    The GitHub token of the release run is handed over through ``GH_TOKEN``
    so the user's own gh login is never needed nor modified.
    """
    env = None
    if token:
        env = {**os.environ, "GH_TOKEN": token}
    result = subprocess.run(
        ["gh", *args], capture_output=True, text=True, check=check, env=env
    )
    return result.stdout.strip()


def run(
    *args: str, cwd: Path | str | None = None, check: bool = True
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see build progress, etc.

    Args:
        *args: Command and arguments (e.g., "npm", "run", "build").
        cwd: Directory to run the command in.
        check: If True (default), raise on non-zero exit.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, cwd=cwd, check=check)


def fatal(msg: str, exit_code: int = 1) -> NoReturn:
    """Stop the release with a message.

    Raises ReleaseAbort; the driver prints the message and turns it into the
    process exit code.
    """
    raise ReleaseAbort(msg, exit_code=exit_code)
