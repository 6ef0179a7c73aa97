"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from tao_release.models import ReleaseOptions, Subject
from tao_release.prompts import Prompter
from tao_release.release import ReleaseOrchestrator
from tao_release.subjects.base import SubjectType


@pytest.fixture
def git_client() -> MagicMock:
    client = MagicMock()
    client.get_last_tag.return_value = "v1.2.3"
    client.has_local_changes.return_value = False
    return client


@pytest.fixture
def github_client() -> MagicMock:
    client = MagicMock()
    client.repository = "oat-sa/tao-core"
    return client


@pytest.fixture
def recommender() -> MagicMock:
    rec = MagicMock()
    rec.get_version_from_tag.side_effect = lambda tag: tag.lstrip("v")
    return rec


@pytest.fixture
def prompter() -> MagicMock:
    return MagicMock(spec=Prompter)


@pytest.fixture
def make_release(
    tmp_path: Path,
    git_client: MagicMock,
    github_client: MagicMock,
    recommender: MagicMock,
    prompter: MagicMock,
) -> Callable[..., ReleaseOrchestrator]:
    """Build an orchestrator wired to mocks, with its subject and clients set."""

    def factory(
        subject_type: SubjectType = SubjectType.PACKAGE, monorepo: bool = False, **options: Any
    ) -> ReleaseOrchestrator:
        release = ReleaseOrchestrator(
            ReleaseOptions(**options),
            subject_type,
            monorepo=monorepo,
            prompter=prompter,
            config_path=tmp_path / "config.json",
            scm_factory=MagicMock(return_value=git_client),
            hosting_factory=MagicMock(return_value=github_client),
            recommender_factory=MagicMock(return_value=recommender),
        )
        release.strategy = MagicMock()
        release.state.set_subject(Subject(name="my-package", path=tmp_path))
        release.git_client = git_client
        release.github_client = github_client
        release.recommender = recommender
        return release

    return factory


@pytest.fixture
def monorepo_root(tmp_path: Path) -> Path:
    """An npm monorepo with packages a → b → c (a depends on b, b on c)."""

    def write(path: Path, data: dict[str, Any]) -> None:
        path.mkdir(parents=True, exist_ok=True)
        (path / "package.json").write_text(json.dumps(data, indent=2) + "\n")

    write(
        tmp_path,
        {
            "name": "monorepo",
            "private": True,
            "workspaces": ["packages/*"],
            "repository": {"type": "git", "url": "git+https://github.com/oat-sa/monorepo.git"},
        },
    )
    write(
        tmp_path / "packages" / "a",
        {"name": "@oat-sa/a", "version": "1.0.0", "dependencies": {"@oat-sa/b": "^2.0.0", "lodash": "^4.0.0"}},
    )
    write(
        tmp_path / "packages" / "b",
        {"name": "@oat-sa/b", "version": "2.0.0", "devDependencies": {"@oat-sa/c": "~3.1.0"}},
    )
    write(tmp_path / "packages" / "c", {"name": "@oat-sa/c", "version": "3.1.0"})
    # Not a package: no package.json
    (tmp_path / "packages" / "docs").mkdir()
    return tmp_path


@pytest.fixture
def tao_root(tmp_path: Path) -> Path:
    """An installed TAO instance with the taoQtiItem and taoItems extensions."""
    root = tmp_path / "tao-instance"
    for directory in ("tao", "generis", "config", "taoQtiItem", "taoItems", "vendor"):
        (root / directory).mkdir(parents=True)
    (root / "index.php").write_text("<?php\n")
    (root / "config" / "generis.conf.php").write_text("<?php\n")
    (root / "taoQtiItem" / "manifest.php").write_text(
        "<?php\nreturn array(\n"
        "    'name' => 'taoQtiItem',\n"
        "    'label' => 'QTI item model',\n"
        "    'version' => '23.1.0',\n"
        "    'requires' => array('taoItems' => '>=10.0.0'),\n"
        ");\n"
    )
    (root / "taoQtiItem" / "composer.json").write_text(json.dumps({"name": "oat-sa/extension-tao-itemqti"}))
    (root / "taoItems" / "manifest.php").write_text("<?php\nreturn ['name' => \"taoItems\", 'version' => \"10.2.0\"];\n")
    return root
