"""Release of a TAO extension living inside an installed TAO instance."""

from __future__ import annotations

import os

from .. import log
from ..models import Subject, SubjectMetadata
from ..shell import fatal
from ..tao_instance import TaoInstance
from .base import BuildStep, SubjectStrategy, SubjectType


class ExtensionStrategy(SubjectStrategy):
    subject_type = SubjectType.EXTENSION

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.instance: TaoInstance | None = None

    def select_tao_instance(self) -> TaoInstance:
        """Instance root from the options, otherwise asked (last one as default)."""
        root = self.options.path_to_tao
        if not root:
            root = self.prompter.text(
                "Path to the TAO instance : ",
                default=self.config.tao_root or os.getcwd(),
            )
        instance = TaoInstance(root, self.options.www_user)
        if not instance.is_root():
            fatal(
                f"{instance.root} is not a TAO instance, "
                "it must contain tao, generis, index.php and config"
            )
        if not instance.is_installed():
            fatal("It looks like the given TAO instance is not installed.")
        self.config.tao_root = str(instance.root)
        return instance

    def select_extension(self, instance: TaoInstance) -> str:
        extensions = instance.get_extensions()
        extension = self.options.extension_to_release
        if extension and extension not in extensions:
            fatal(f"Specified extension {extension} not found in {instance.root}")
        if not extension:
            if not extensions:
                fatal(f"No extension (directory with a manifest.php) found in {instance.root}")
            extension = self.prompter.choice(
                "Which extension you want to release ? ",
                extensions,
                default=self.config.extension,
            )
            # The remembered extension may come from another instance
            if extension not in extensions:
                fatal(f"Extension {extension} not found in {instance.root}")
        self.config.extension = extension
        return extension

    def select_target(self) -> Subject:
        self.instance = self.select_tao_instance()
        extension = self.select_extension(self.instance)
        return Subject(name=extension, path=self.instance.root / extension)

    def get_metadata(self) -> SubjectMetadata:
        name = self.state.require("subject").name
        manifest = self.instance.parse_manifest(name)
        return SubjectMetadata(
            name=manifest.get("name", name),
            version=manifest.get("version"),
            repo_name=self.instance.get_repo_name(name),
        )

    def build_steps(self, releasing_branch: str) -> list[BuildStep]:
        steps = [BuildStep("bundle_assets", "Bundling", lambda: self.bundle_assets(releasing_branch))]
        if self.options.update_translations or self.prompter.confirm(
            "Do you want to update translations?", default=False, unattended=False
        ):
            steps.append(
                BuildStep(
                    "update_translations",
                    "Translations update",
                    lambda: self.update_translations(releasing_branch),
                )
            )
        return steps

    def bundle_assets(self, releasing_branch: str) -> None:
        log.info("Asset build started, this may take a while")
        self.instance.build_assets(self.state.require("subject").name)
        self._commit(releasing_branch, "bundle assets")

    def update_translations(self, releasing_branch: str) -> None:
        log.info("Translations update started, this may take a while")
        self.instance.update_translations(self.state.require("subject").name)
        self._commit(releasing_branch, "update translations")

    def _commit(self, releasing_branch: str, message: str) -> None:
        changes = self.git_client.commit_and_push(releasing_branch, message)
        if changes:
            log.info(f"Commit : [{message} - {len(changes)} files]")
            for file in changes:
                log.info(f"  - {file}")
