"""Validation helpers for GitHub identifiers."""

from __future__ import annotations

import re

_TOKEN_RE = re.compile(r"[0-9A-Za-z_]{6,}")
_REPOSITORY_RE = re.compile(r"^[\w.-]+/[\w.-]+$")


def is_github_token(token: object) -> bool:
    return isinstance(token, str) and bool(_TOKEN_RE.search(token))


def validate_github_token(
    token: object,
    message: str = "The Github token is missing or not well formatted, we expect a long hexa string.",
) -> None:
    if not is_github_token(token):
        raise ValueError(message)


def validate_github_repository(
    repo_id: object,
    message: str = (
        "The Github repository identifier is missing or not well formatted, "
        "we expect the short version org-name/repo-name."
    ),
) -> None:
    if not isinstance(repo_id, str) or not _REPOSITORY_RE.match(repo_id):
        raise ValueError(message)


def validate_pr_number(
    number: object, message: str = "The given number is missing or not a valid Pull Request number"
) -> None:
    if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
        raise ValueError(message)
