"""Release of an npm package, or of every changed member of an npm monorepo."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .. import log
from ..deps import rewrite_descriptor
from ..git import repo_name_from_url
from ..models import MonorepoPackage, Subject, SubjectMetadata, WorkspaceMember
from ..npm import NpmClient
from ..shell import fatal
from .base import BuildStep, SubjectStrategy, SubjectType

REGISTRY_REMINDER = """
Before publishing, please be sure your npm account is configured and is a member of the appropriate organisation.
https://docs.npmjs.com/getting-started/setting-up-your-npm-user-account
https://www.npmjs.com/settings/oat-sa/packages
"""


def _repository_url(descriptor: dict[str, Any]) -> str | None:
    repository = descriptor.get("repository")
    if isinstance(repository, dict):
        return repository.get("url")
    return repository


def is_valid_descriptor(descriptor: dict[str, Any], monorepo: bool = False) -> bool:
    """A releasable package.json has a name, a version and a repository url.

    The root of a monorepo is not released itself, its version is optional.
    """
    if not descriptor.get("name") or not _repository_url(descriptor):
        return False
    return monorepo or bool(descriptor.get("version"))


class PackageStrategy(SubjectStrategy):
    """npm package found at the working root.

    Args:
        monorepo: The root holds npm workspaces, released member by member.
    """

    subject_type = SubjectType.PACKAGE

    def __init__(self, *args, monorepo: bool = False, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.monorepo = monorepo
        self.npm: NpmClient | None = None

    def select_target(self) -> Subject:
        root = Path(self.options.root or os.getcwd()).resolve()
        if not (root / "package.json").exists():
            fatal(f"No package.json found in {root}. Please run the command inside a npm package repo.")
        npm = NpmClient(root)
        descriptor = npm.read_descriptor()
        if not is_valid_descriptor(descriptor, self.monorepo):
            fatal(
                f"Invalid package.json found in {root}, "
                "it needs a name, a version and a repository url"
            )
        self.npm = npm
        return Subject(name=descriptor["name"], path=root)

    def get_metadata(self) -> SubjectMetadata:
        descriptor = self.npm.read_descriptor()
        try:
            repo_name = repo_name_from_url(_repository_url(descriptor) or "")
        except ValueError:
            repo_name = None
        return SubjectMetadata(
            name=descriptor.get("name"), version=descriptor.get("version"), repo_name=repo_name
        )

    def build_steps(self, releasing_branch: str) -> list[BuildStep]:
        return [
            BuildStep("install", "Installing dependencies", self.npm.install),
            BuildStep("build", "Building the package", self.npm.build),
        ]

    def update_version(self, version: str) -> None:
        self.npm.update_version(self.npm.root, version)

    def _confirm_publish(self) -> bool:
        """Checkout the released code and get the go-ahead for npm publish."""
        if not self.options.publish:
            log.info("Publication skipped")
            return False
        self.git_client.pull(self.options.release_branch)
        log.doing("Preparing for npm publish")
        log.info(REGISTRY_REMINDER)
        if not self.prompter.confirm(
            "Do you want to proceed with the 'npm publish' command?", default=False, unattended=True
        ):
            fatal("The package has been released but not published.")
        return True

    def publish(self) -> None:
        if not self._confirm_publish():
            return
        subject = self.state.require("subject")
        log.doing(f"Publishing package {subject.name} @ {self.state.require('version')}")
        self.npm.publish(self.options.registry)

    def monorepo_get_packages_list(self) -> list[WorkspaceMember]:
        return self.npm.list_monorepo_members()

    def monorepo_update_versions(self, packages: list[MonorepoPackage]) -> None:
        """Write the planned versions and align the internal dependency ranges.

        Every member is rewritten so unchanged ones also follow the new
        versions of their dependencies; the lock file is refreshed once.
        """
        versions = {p.package_name: p.version for p in packages if not p.no_changes}
        for package in packages:
            path = self.npm.root / package.package_path
            descriptor = self.npm.read_descriptor(path)
            rewrite_descriptor(descriptor, package.version, versions)
            self.npm.write_descriptor(path, descriptor)
        self.npm.update_lockfile()

    def monorepo_publish(self, packages: list[MonorepoPackage]) -> None:
        changed = [p for p in packages if not p.no_changes]
        if not changed:
            log.info("No package to publish")
            return
        if not self._confirm_publish():
            return
        for package in changed:
            log.doing(f"Publishing package {package.package_name} @ {package.version}")
        self.npm.publish_all([p.package_name for p in changed], self.options.registry)
