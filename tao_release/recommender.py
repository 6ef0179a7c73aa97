"""Next version recommendation from conventional commits.

Reads the commits made since the last release, classifies them with the
conventional commits convention (``type(scope)!: subject``) and derives the
semver bump to apply:

- any breaking change → major
- otherwise any feature → minor
- otherwise → patch

Commits that do not follow the convention are counted as "unset"; they
still lead to a patch release.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .models import CommitStats, NextVersion, Recommendation
from .versions import get_version_from_tag, increment_version

if TYPE_CHECKING:
    from .git import GitClient

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()]*)\))?(?P<breaking>!)?: \S")
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)


def classify_commits(messages: list[str]) -> CommitStats:
    """Count features, fixes, breaking changes and unconventional commits."""
    stats = CommitStats(commits=len(messages))
    for message in messages:
        match = _HEADER_RE.match(message.strip())
        if not match:
            stats.unset += 1
            continue
        commit_type = match.group("type").lower()
        if match.group("breaking") or _BREAKING_FOOTER_RE.search(message):
            stats.breakings += 1
        if commit_type in ("feat", "feature"):
            stats.features += 1
        elif commit_type == "fix":
            stats.fix += 1
    return stats


def recommend(stats: CommitStats) -> Recommendation:
    """Turn commit statistics into a release type and a human readable reason."""
    if stats.breakings:
        release_type = "major"
    elif stats.features:
        release_type = "minor"
    else:
        release_type = "patch"
    noun = "BREAKING CHANGE" if stats.breakings == 1 else "BREAKING CHANGES"
    feature = "feature" if stats.features == 1 else "features"
    verb = "is" if stats.breakings == 1 else "are"
    reason = f"There {verb} {stats.breakings} {noun} and {stats.features} {feature}"
    return Recommendation(release_type=release_type, reason=reason, stats=stats)


class VersionRecommender:
    """Compute next versions from the history of a git repository."""

    def __init__(self, git_client: GitClient) -> None:
        self.git_client = git_client

    def get_next_version(
        self, last_version: str, subpath: str | None = None, since: str | None = None
    ) -> NextVersion:
        """Recommend the version following ``last_version``.

        Args:
            last_version: The version of the last release.
            subpath: Only count commits touching this path (monorepo members).
            since: Git ref of the last release; None reads the whole history.

        Returns:
            The recommended version and the recommendation it comes from.
        """
        messages = self.git_client.commits_since(since, subpath)
        recommendation = recommend(classify_commits(messages))
        version = increment_version(last_version, recommendation.release_type)
        return NextVersion(version=version, recommendation=recommendation)

    @staticmethod
    def get_version_from_tag(tag: str) -> str:
        return get_version_from_tag(tag)

    @staticmethod
    def increment_version(last_version: str, bump: str) -> str:
        return increment_version(last_version, bump)
