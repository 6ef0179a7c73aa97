"""Tests for tao_release.tao_instance."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tao_release.errors import CommandError
from tao_release.tao_instance import TaoInstance


def _completed(returncode: int = 0) -> subprocess.CompletedProcess[bytes]:
    return subprocess.CompletedProcess(args=[], returncode=returncode)


class TestInspection:
    def test_root_and_installed(self, tao_root: Path) -> None:
        instance = TaoInstance(tao_root)
        assert instance.is_root()
        assert instance.is_installed()

    def test_not_a_root(self, tmp_path: Path) -> None:
        assert not TaoInstance(tmp_path).is_root()
        assert not TaoInstance(tmp_path / "missing").is_root()

    def test_not_installed(self, tao_root: Path) -> None:
        (tao_root / "config" / "generis.conf.php").unlink()
        assert not TaoInstance(tao_root).is_installed()

    def test_get_extensions(self, tao_root: Path) -> None:
        assert TaoInstance(tao_root).get_extensions() == ["taoItems", "taoQtiItem"]

    def test_parse_manifest(self, tao_root: Path) -> None:
        instance = TaoInstance(tao_root)
        assert instance.parse_manifest("taoQtiItem") == {
            "name": "taoQtiItem",
            "label": "QTI item model",
            "version": "23.1.0",
        }
        assert instance.parse_manifest("taoItems") == {"name": "taoItems", "version": "10.2.0"}

    def test_get_repo_name(self, tao_root: Path) -> None:
        instance = TaoInstance(tao_root)
        assert instance.get_repo_name("taoQtiItem") == "oat-sa/extension-tao-itemqti"
        assert instance.get_repo_name("taoItems") is None


class TestBuildAssets:
    @patch("tao_release.tao_instance.run")
    def test_installs_grunt_then_bundles(self, mock_run: MagicMock, tao_root: Path) -> None:
        mock_run.return_value = _completed()
        build_dir = tao_root.resolve() / "tao" / "views" / "build"

        TaoInstance(tao_root).build_assets("taoQtiItem")

        assert [c.args for c in mock_run.call_args_list] == [
            ("npm", "install"),
            ("./node_modules/.bin/grunt", "taoqtiitemsass"),
            ("./node_modules/.bin/grunt", "taoqtiitembundle"),
        ]
        assert all(c.kwargs["cwd"] == build_dir for c in mock_run.call_args_list)

    @patch("tao_release.tao_instance.run")
    def test_skips_install_when_grunt_exists(self, mock_run: MagicMock, tao_root: Path) -> None:
        mock_run.return_value = _completed()
        grunt = tao_root / "tao" / "views" / "build" / "node_modules" / ".bin" / "grunt"
        grunt.parent.mkdir(parents=True)
        grunt.write_text("")

        TaoInstance(tao_root).build_assets("taoQtiItem")

        assert mock_run.call_count == 2

    @patch("tao_release.tao_instance.run")
    def test_failure_raises(self, mock_run: MagicMock, tao_root: Path) -> None:
        mock_run.return_value = _completed(3)
        with pytest.raises(CommandError, match="npm install failed"):
            TaoInstance(tao_root).build_assets("taoQtiItem")


class TestUpdateTranslations:
    @patch("tao_release.tao_instance.getpass.getuser", return_value="alice")
    @patch("tao_release.tao_instance.run")
    def test_runs_as_www_user(self, mock_run: MagicMock, _getuser: MagicMock, tao_root: Path) -> None:
        mock_run.return_value = _completed()
        TaoInstance(tao_root, www_user="www-data").update_translations("taoQtiItem")
        assert mock_run.call_args.args == (
            "sudo", "-u", "www-data", "php", "tao/scripts/taoTranslate.php", "-a=updateAll", "-e=taoQtiItem",
        )
        assert mock_run.call_args.kwargs["cwd"] == tao_root.resolve()

    @patch("tao_release.tao_instance.getpass.getuser", return_value="www-data")
    @patch("tao_release.tao_instance.run")
    def test_no_sudo_for_current_user(self, mock_run: MagicMock, _getuser: MagicMock, tao_root: Path) -> None:
        mock_run.return_value = _completed()
        TaoInstance(tao_root, www_user="www-data").update_translations("taoQtiItem")
        assert mock_run.call_args.args[0] == "php"
