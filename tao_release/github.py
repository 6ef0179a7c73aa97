"""GitHub operations needed by a release, over the gh CLI.

Calls go through ``gh api`` authenticated with the token of the release run,
so the REST and GraphQL endpoints are reached without a dedicated HTTP
client.
"""

from __future__ import annotations

import json
import re
import subprocess
from typing import Any

from .models import PullRequestResult
from .shell import gh
from .validate import validate_github_repository, validate_github_token, validate_pr_number

TICKET_RE = re.compile(r"[A-Z]{2,}-\d{1,6}")
TRACKER_URL = "https://oat-sa.atlassian.net/browse"
# Keeps the search query under the GitHub length limit.
SHA_CHUNK_SIZE = 20

_SEARCH_QUERY = """
query($q: String!) {
  search(first: 100, query: $q, type: ISSUE) {
    nodes {
      ... on PullRequest {
        number
        title
        url
        branch: headRefName
        commit: mergeCommit { oid }
      }
    }
  }
}
"""

PR_BODY = """Please check :
 - [ ] the manifest (version {version} and dependencies)
 - [ ] the update script (from {previous_version} to {version})
 - [ ] CSS and JavaScript bundles
 - [ ] {subject_type} specials (nested dependencies, etc.)
"""


def format_release_note(pull_request: dict[str, Any]) -> str:
    """Format a merged pull request as a release note line.

    The change type and the ticket come from the branch name
    (e.g. "fix/TAO-6969-nasty-bug").

    Example:
        "- [fix] [TAO-6969](https://.../TAO-6969) Fix the bug ([PR #12](https://...))"
    """
    branch = pull_request.get("branch") or ""
    line = "-"
    if "/" in branch:
        line += f" [{branch.split('/')[0]}]"
    ticket = TICKET_RE.search(branch) or TICKET_RE.search(pull_request.get("title", ""))
    if ticket:
        line += f" [{ticket.group(0)}]({TRACKER_URL}/{ticket.group(0)})"
    line += f" {pull_request.get('title', '').strip()}"
    line += f" ([PR #{pull_request.get('number')}]({pull_request.get('url')}))"
    return line


class GithubClient:
    """Perform release operations on a GitHub repository.

    Args:
        token: GitHub token with "repo" rights.
        repository: Short repository id (org/repo).
    """

    def __init__(self, token: str, repository: str) -> None:
        validate_github_token(token)
        validate_github_repository(repository)
        self.token = token
        self.repository = repository

    def _api(self, *args: str, check: bool = True) -> Any:
        output = gh("api", *args, token=self.token, check=check)
        return json.loads(output) if output else None

    def verify_repository_access(self) -> bool:
        """Can the token read the repository?"""
        try:
            data = self._api(f"repos/{self.repository}")
        except subprocess.CalledProcessError:
            return False
        return bool(data and data.get("full_name"))

    def create_release_pull_request(
        self, head: str, base: str, version: str, previous_version: str, subject_type: str = "extension"
    ) -> PullRequestResult:
        """Open the release pull request from ``head`` to ``base``."""
        body = PR_BODY.format(
            version=version, previous_version=previous_version, subject_type=subject_type.capitalize()
        )
        data = self._api(
            "--method", "POST", f"repos/{self.repository}/pulls",
            "-f", f"title=Release {version}",
            "-f", f"head={head}",
            "-f", f"base={base}",
            "-f", f"body={body}",
        )
        if not data:
            return PullRequestResult()
        return PullRequestResult(
            state=data.get("state"),
            url=data.get("html_url"),
            api_url=data.get("url"),
            number=data.get("number"),
            id=data.get("id"),
            head_repo_full_name=((data.get("head") or {}).get("repo") or {}).get("full_name"),
        )

    def add_label(self, repo_full_name: str, number: int, labels: list[str]) -> None:
        validate_pr_number(number)
        args = ["--method", "POST", f"repos/{repo_full_name}/issues/{number}/labels"]
        for label in labels:
            args.extend(["-f", f"labels[]={label}"])
        self._api(*args)

    def merge_pull_request(self, number: int) -> None:
        validate_pr_number(number)
        self._api("--method", "PUT", f"repos/{self.repository}/pulls/{number}/merge")

    def create_release(self, tag: str, notes: str = "") -> None:
        self._api(
            "--method", "POST", f"repos/{self.repository}/releases",
            "-f", f"tag_name={tag}",
            "-f", f"name={tag}",
            "-f", f"body={notes}",
        )

    def get_commit_shas_for_pull_request(self, number: int) -> list[str]:
        validate_pr_number(number)
        pages = self._api(
            "--paginate", "--slurp", f"repos/{self.repository}/pulls/{number}/commits?per_page=100"
        )
        return [commit["sha"] for page in pages or [] for commit in page]

    def search_merged_pull_requests(self, query: str) -> list[dict[str, Any]]:
        """Search merged pull requests; returns number, title, url, branch, commit."""
        data = self._api("graphql", "-f", f"query={_SEARCH_QUERY}", "-f", f"q={query}")
        nodes = ((data or {}).get("data") or {}).get("search", {}).get("nodes", [])
        return [node for node in nodes if node]

    def extract_release_notes_from_release_pr(self, number: int) -> str:
        """Build markdown release notes from the pull requests merged in a release PR.

        Every commit of the release pull request is looked up among the merged
        pull requests of the repository; each pull request found gives one line.
        """
        shas = self.get_commit_shas_for_pull_request(number)
        found: dict[int, dict[str, Any]] = {}
        for start in range(0, len(shas), SHA_CHUNK_SIZE):
            chunk = shas[start : start + SHA_CHUNK_SIZE]
            query = f"repo:{self.repository} type:pr is:merged {' '.join(chunk)}"
            for pull_request in self.search_merged_pull_requests(query):
                if pull_request.get("number") != number:
                    found.setdefault(pull_request["number"], pull_request)
        return "\n".join(format_release_note(pr) for _, pr in sorted(found.items()))
