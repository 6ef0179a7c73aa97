"""Tests for tao_release.git."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from tao_release.errors import MergeConflictError
from tao_release.git import GitClient, repo_name_from_url


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestRepoNameFromUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "git@github.com:oat-sa/tao-core.git",
            "https://github.com/oat-sa/tao-core.git",
            "https://github.com/oat-sa/tao-core",
            "git+https://github.com/oat-sa/tao-core.git",
            "ssh://git@github.com/oat-sa/tao-core.git",
        ],
    )
    def test_github_urls(self, url: str) -> None:
        assert repo_name_from_url(url) == "oat-sa/tao-core"

    def test_other_host_raises(self) -> None:
        with pytest.raises(ValueError, match="gitlab"):
            repo_name_from_url("https://gitlab.com/oat-sa/tao-core.git")


class TestGitClient:
    @patch("tao_release.git.git")
    def test_commands_run_in_root(self, mock_git: MagicMock, tmp_path: Path) -> None:
        GitClient(tmp_path).prune_remote()
        mock_git.assert_called_once_with("remote", "prune", "origin", cwd=tmp_path, check=True)

    @patch("tao_release.git.git")
    def test_list_branches(self, mock_git: MagicMock) -> None:
        mock_git.return_value = (
            "  develop\n"
            "* release-1.2.0\n"
            "  remotes/origin/HEAD -> origin/develop\n"
            "  remotes/origin/develop\n"
            "  remotes/origin/release-1.2.0"
        )
        branches = GitClient("/repo").list_branches()
        assert branches == [
            "develop",
            "release-1.2.0",
            "remotes/origin/HEAD",
            "remotes/origin/develop",
            "remotes/origin/release-1.2.0",
        ]

    @patch("tao_release.git.git")
    def test_has_local_changes_ignores_untracked(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "?? notes.txt"
        assert not GitClient("/repo").has_local_changes()
        mock_git.return_value = " M manifest.php\n?? notes.txt"
        assert GitClient("/repo").has_local_changes()

    @patch("tao_release.git.git")
    def test_get_last_tag(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "v1.10.0\nv1.9.0\nv1.2.0"
        assert GitClient("/repo").get_last_tag() == "v1.10.0"

    @patch("tao_release.git.git")
    def test_get_last_tag_without_tags(self, mock_git: MagicMock) -> None:
        mock_git.return_value = ""
        assert GitClient("/repo").get_last_tag() is None

    @patch("tao_release.git.git")
    def test_create_signed_tag(self, mock_git: MagicMock) -> None:
        GitClient("/repo").create_and_push_tag("master", "v1.2.4", "version 1.2.4", sign=True)
        assert call("tag", "-s", "v1.2.4", "-m", "version 1.2.4", cwd=Path("/repo"), check=True) in (
            mock_git.call_args_list
        )
        assert mock_git.call_args_list[-1] == call("push", "origin", "v1.2.4", cwd=Path("/repo"), check=True)

    @patch("tao_release.git.git")
    def test_commit_and_push(self, mock_git: MagicMock) -> None:
        mock_git.return_value = " M views/js/loader/taoQtiItem.min.js\nR  old.css -> views/css/new.css"
        changes = GitClient("/repo").commit_and_push("release-1.2.4", "bundle assets")
        assert changes == ["views/js/loader/taoQtiItem.min.js", "views/css/new.css"]
        commands = [c.args for c in mock_git.call_args_list]
        assert ("add", "--all") in commands
        assert ("commit", "-m", "bundle assets") in commands
        assert ("push", "origin", "release-1.2.4") in commands

    @patch("tao_release.git.git")
    def test_commit_and_push_nothing(self, mock_git: MagicMock) -> None:
        mock_git.return_value = ""
        assert GitClient("/repo").commit_and_push("release-1.2.4", "bundle assets") == []
        assert mock_git.call_count == 1

    @patch("tao_release.git.git")
    def test_commits_since(self, mock_git: MagicMock) -> None:
        mock_git.return_value = "feat: one\n\nbody\x1e\nfix: two\x1e\n"
        messages = GitClient("/repo").commits_since("v1.0.0", "packages/a")
        assert messages == ["feat: one\n\nbody", "fix: two"]
        assert mock_git.call_args.args == (
            "log", "--no-merges", "--format=%B\x1e", "v1.0.0..HEAD", "--", "packages/a",
        )

    @patch("tao_release.git.git")
    def test_commits_since_whole_history(self, mock_git: MagicMock) -> None:
        mock_git.return_value = ""
        assert GitClient("/repo").commits_since(None) == []
        assert mock_git.call_args.args == ("log", "--no-merges", "--format=%B\x1e")


class TestMerge:
    @patch("tao_release.git.git_result")
    def test_success(self, mock_result: MagicMock) -> None:
        mock_result.return_value = _completed()
        GitClient("/repo").merge("master")
        mock_result.assert_called_once_with("merge", "master", cwd=Path("/repo"))

    @patch("tao_release.git.git_result")
    def test_conflict(self, mock_result: MagicMock) -> None:
        mock_result.return_value = _completed(
            1,
            stdout=(
                "Auto-merging manifest.php\n"
                "CONFLICT (content): Merge conflict in manifest.php\n"
                "CONFLICT (content): Merge conflict in views/js/controller.js\n"
                "Automatic merge failed; fix conflicts and then commit the result."
            ),
        )
        with pytest.raises(MergeConflictError) as excinfo:
            GitClient("/repo").merge("master")
        assert str(excinfo.value).startswith("CONFLICTS:")
        assert excinfo.value.files == ["manifest.php", "views/js/controller.js"]

    @patch("tao_release.git.git_result")
    def test_other_failure(self, mock_result: MagicMock) -> None:
        mock_result.return_value = _completed(128, stderr="fatal: refusing to merge unrelated histories")
        with pytest.raises(subprocess.CalledProcessError):
            GitClient("/repo").merge("master")

    @patch("tao_release.git.git_result")
    @patch("tao_release.git.git")
    def test_merge_as_pull_request_uses_no_ff(self, mock_git: MagicMock, mock_result: MagicMock) -> None:
        mock_result.return_value = _completed()
        GitClient("/repo").merge_as_pull_request("master", "release-1.2.4")
        mock_result.assert_called_once_with("merge", "--no-ff", "release-1.2.4", cwd=Path("/repo"))
        assert mock_git.call_args_list[0] == call("checkout", "master", cwd=Path("/repo"), check=True)
        assert mock_git.call_args_list[-1] == call("push", "origin", "master", cwd=Path("/repo"), check=True)
