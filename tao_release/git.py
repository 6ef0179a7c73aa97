"""Git operations needed by a release, run inside an explicit working root."""

from __future__ import annotations

import re
from pathlib import Path

from .errors import MergeConflictError
from .shell import git, git_result

_REMOTE_URL_RE = re.compile(r"github\.com[:/](?P<name>[^/\s]+/[^/\s]+?)(?:\.git)?/?$")
_CONFLICT_RE = re.compile(r"^CONFLICT \([^)]*\): .* in (?P<file>.+)$", re.MULTILINE)
_COMMIT_SEPARATOR = "\x1e"


def repo_name_from_url(url: str) -> str:
    """Extract the short GitHub repository id (org/repo) from a remote URL.

    Examples:
        "git@github.com:oat-sa/tao-core.git" → "oat-sa/tao-core"
        "git+https://github.com/oat-sa/tao-core.git" → "oat-sa/tao-core"

    Raises:
        ValueError: If the URL does not point to a GitHub repository.
    """
    match = _REMOTE_URL_RE.search(url.strip())
    if not match:
        raise ValueError(f"Unable to extract a GitHub repository from '{url}'")
    return match.group("name")


class GitClient:
    """Perform release operations on a local git repository.

    Args:
        root: Working root of the repository; every command runs there.
        origin: Name of the remote to fetch from and push to.
    """

    def __init__(self, root: Path | str, origin: str = "origin") -> None:
        self.root = Path(root)
        self.origin = origin

    def _git(self, *args: str, check: bool = True) -> str:
        return git(*args, cwd=self.root, check=check)

    def list_branches(self) -> list[str]:
        """List local and remote-tracking branches (e.g. "remotes/origin/develop")."""
        branches: list[str] = []
        for line in self._git("branch", "--all", "--no-color").splitlines():
            name = line.lstrip("* ").split(" -> ")[0].strip()
            if name and not name.startswith("("):
                branches.append(name)
        return branches

    def list_local_branches(self) -> list[str]:
        return self._git("branch", "--format=%(refname:short)").splitlines()

    def has_branch(self, name: str) -> bool:
        return name in self.list_branches()

    def create_local_branch(self, name: str) -> None:
        self._git("checkout", "-b", name)

    def checkout(self, name: str) -> None:
        self._git("checkout", name)

    def push(self, branch: str) -> None:
        self._git("push", self.origin, branch)

    def delete_branch(self, name: str) -> None:
        """Delete a branch on the remote, then locally."""
        self._git("push", self.origin, name, "--delete")
        self._git("branch", "-D", name)

    def has_local_changes(self) -> bool:
        """Does the working tree hold uncommitted changes to tracked files?"""
        status = self._git("status", "--porcelain")
        return any(line and not line.startswith("??") for line in status.splitlines())

    def has_signing_key_configured(self) -> bool:
        return bool(self._git("config", "--get", "user.signingkey", check=False))

    def fetch_tags(self) -> None:
        self._git("fetch", self.origin, "--tags")

    def pull(self, branch: str) -> None:
        """Fetch, checkout the branch (tracking the remote one if needed), pull."""
        self._git("fetch", self.origin)
        if branch in self.list_local_branches():
            self._git("checkout", branch)
        else:
            self._git("checkout", "-b", branch, f"{self.origin}/{branch}")
        self._git("pull", self.origin, branch)

    def has_tag(self, name: str) -> bool:
        return bool(self._git("tag", "--list", name))

    def get_last_tag(self) -> str | None:
        """Most recent tag by version order, or None if the repository has none."""
        tags = self._git("tag", "--list", "--sort=-v:refname", check=False)
        return tags.splitlines()[0] if tags else None

    def create_and_push_tag(
        self, branch: str, name: str, comment: str = "", sign: bool = False
    ) -> None:
        """Create an annotated (or signed) tag on the tip of ``branch`` and push it."""
        self._git("checkout", branch)
        self._git("pull", self.origin, branch)
        self._git("tag", "-s" if sign else "-a", name, "-m", comment)
        self._git("push", self.origin, name)

    def diff_between(self, a: str, b: str) -> str:
        """Short diff statistics between two branches, empty when identical."""
        return self._git("diff", "--shortstat", f"{a}..{b}")

    def has_diff(self, a: str, b: str) -> bool:
        return bool(self.diff_between(a, b))

    def merge(self, branch: str, *options: str) -> None:
        """Merge ``branch`` into the current branch.

        Raises:
            MergeConflictError: If git stopped on conflicts.
            subprocess.CalledProcessError: On any other failure.
        """
        result = git_result("merge", *options, branch, cwd=self.root)
        if result.returncode == 0:
            return
        output = f"{result.stdout}\n{result.stderr}"
        if "CONFLICT" in output:
            files = [m.group("file").strip() for m in _CONFLICT_RE.finditer(output)]
            raise MergeConflictError(files or ["unknown files"])
        result.check_returncode()

    def abort_merge(self) -> None:
        self._git("merge", "--abort")

    def merge_as_pull_request(self, base: str, feature: str) -> None:
        """Merge ``feature`` into ``base`` with a merge commit and push ``base``."""
        self._git("checkout", base)
        self._git("pull", self.origin, base)
        self.merge(feature, "--no-ff")
        self.push(base)

    def merge_back(self, base: str, released: str) -> None:
        """Merge the released branch back into the base branch and push it."""
        self._git("checkout", base)
        self._git("pull", self.origin, base)
        self.merge(released)
        self.push(base)

    def commit_and_push(self, branch: str, message: str) -> list[str]:
        """Commit every change of the working tree and push it.

        Returns:
            The changed file paths; nothing is committed nor pushed when empty.
        """
        status = self._git("status", "--porcelain")
        changes = [line[2:].strip().split(" -> ")[-1] for line in status.splitlines() if line]
        if changes:
            self._git("add", "--all")
            self._git("commit", "-m", message)
            self.push(branch)
        return changes

    def get_repository_identifier(self) -> str:
        """The GitHub id (org/repo) of the remote."""
        return repo_name_from_url(self._git("remote", "get-url", self.origin))

    def prune_remote(self) -> None:
        self._git("remote", "prune", self.origin)

    def commits_since(self, ref: str | None, subpath: str | None = None) -> list[str]:
        """Messages of the non-merge commits after ``ref`` (all history if None)."""
        args = ["log", "--no-merges", f"--format=%B{_COMMIT_SEPARATOR}"]
        if ref:
            args.append(f"{ref}..HEAD")
        if subpath:
            args.extend(["--", subpath])
        output = self._git(*args)
        return [entry.strip() for entry in output.split(_COMMIT_SEPARATOR) if entry.strip()]
