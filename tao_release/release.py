"""Release orchestration.

ReleaseOrchestrator exposes one method per release step. The driver in
pipeline.py calls them in a fixed order; each step reads the run state left
by the previous ones, does one unit of work and records its result.

Conditions that must stop the release (declined confirmation, existing tag,
invalid version...) raise ReleaseAbort through ``fatal()``; any other error
propagates to the driver.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any

from . import log
from .config import load_config, write_config
from .errors import MergeConflictError, ReleaseAbort
from .git import GitClient
from .github import GithubClient
from .models import MonorepoPackage, PullRequest, ReleaseOptions, RunState, SubjectMetadata, UserConfig
from .prompts import Prompter
from .recommender import VersionRecommender
from .shell import fatal
from .subjects.base import SubjectType, create_strategy
from .validate import is_github_token
from .versions import increment_version, is_greater, is_valid_version

# Build steps whose failure is reported without stopping the release.
BEST_EFFORT_STEPS = frozenset({"bundle_assets", "update_translations"})

RELEASE_LABEL = "releases"
TROUBLESHOOTING_URL = "https://github.com/oat-sa/tao-extension-release#troubleshooting"
GITHUB_TOKEN_URL = "https://github.com/settings/tokens"


class ReleaseOrchestrator:
    """Run the steps of one release.

    Args:
        options: Options of the run.
        subject_type: Kind of subject released; selects the strategy.
        monorepo: Release the members of an npm monorepo.
        prompter: Defaults to a Prompter following ``options.interactive``.
        config_path: Location of the persisted configuration.
        scm_factory: Builds the git client from a root and a remote name.
        hosting_factory: Builds the GitHub client from a token and a repository id.
        recommender_factory: Builds the version recommender from the git client.
    """

    def __init__(
        self,
        options: ReleaseOptions,
        subject_type: SubjectType,
        *,
        monorepo: bool = False,
        prompter: Prompter | None = None,
        config_path: Path | None = None,
        scm_factory: Callable[..., Any] = GitClient,
        hosting_factory: Callable[..., Any] = GithubClient,
        recommender_factory: Callable[..., Any] = VersionRecommender,
    ) -> None:
        self.options = options
        self.subject_type = SubjectType(subject_type)
        self.state = RunState()
        self.prompter = prompter or Prompter(options.interactive)
        self.config_path = config_path
        self.config = UserConfig()
        self.scm_factory = scm_factory
        self.hosting_factory = hosting_factory
        self.recommender_factory = recommender_factory
        self.strategy = create_strategy(
            self.subject_type, options, self.state, self.prompter, self.config, monorepo=monorepo
        )
        self.git_client: Any = None
        self.github_client: Any = None
        self.recommender: Any = None
        # Tag the commit history is read from; None reads everything.
        self.history_ref: str | None = None

    @property
    def base_branch(self) -> str:
        return self.options.base_branch

    @property
    def release_branch(self) -> str:
        return self.options.release_branch

    # Configuration and credentials

    def load_config(self) -> None:
        """Load the persisted configuration and find a GitHub token."""
        self.config = load_config(self.config_path)
        self.strategy.config = self.config
        token = self.config.token or os.environ.get("GITHUB_TOKEN")
        if not token:
            if not self.options.interactive:
                fatal("A Github token is required: set GITHUB_TOKEN or run the release interactively.")
            self.prompter.open_later(GITHUB_TOKEN_URL)
            token = self.prompter.text('I need a Github token, with "repo" rights (check your browser) : ')
            if not is_github_token(token):
                fatal("The Github token is not well formatted, we expect a long hexa string.")
            self.config.token = token
            if self.options.write:
                write_config(self.config, self.config_path)
        self.state.set_token(token)

    def write_config(self) -> None:
        if self.options.write:
            write_config(self.config, self.config_path)

    def initialise_github_client(self) -> None:
        metadata = self.get_metadata()
        if not metadata.repo_name:
            fatal("Unable to find the github repository name")
        try:
            self.github_client = self.hosting_factory(self.state.require("token"), metadata.repo_name)
        except ValueError as err:
            fatal(str(err))

    def verify_credentials(self) -> None:
        log.doing("Checking the Github token")
        if not self.github_client.verify_repository_access():
            fatal(
                f"The Github token cannot access {self.github_client.repository}, "
                f"check it has the 'repo' rights ({GITHUB_TOKEN_URL})"
            )
        log.done()

    # Subject

    def select_target(self) -> None:
        subject = self.strategy.select_target()
        self.state.set_subject(subject)
        log.info(f"Releasing {self.subject_type.value} {subject.name} from {subject.path}")

    def get_metadata(self) -> SubjectMetadata:
        return self.strategy.get_metadata()

    def initialise_git_client(self) -> None:
        subject = self.state.require("subject")
        self.git_client = self.scm_factory(subject.path, self.options.origin)
        self.strategy.git_client = self.git_client
        self.recommender = self.recommender_factory(self.git_client)

    def verify_local_changes(self) -> None:
        subject = self.state.require("subject")
        log.doing(f"Checking {self.subject_type.value} status")
        if self.git_client.has_local_changes():
            fatal(
                f"The {self.subject_type.value} {subject.name} has local changes, "
                "please clean or stash them before releasing"
            )
        log.done(f"{subject.name} is clean")

    def sign_tags(self) -> None:
        self.state.set_sign_tags(self.git_client.has_signing_key_configured())

    def verify_branches(self) -> None:
        if not self.prompter.confirm(
            f"Can I checkout and pull {self.base_branch} and {self.release_branch}  ?",
            default=True,
            unattended=True,
        ):
            fatal(f"{self.base_branch} and {self.release_branch} must be up to date to release.")
        log.doing(f"Updating {self.state.require('subject').name}")
        self.git_client.pull(self.release_branch)
        self.git_client.pull(self.base_branch)
        log.done()

    # Versions

    def _find_last_version(self) -> str:
        last_tag = self.git_client.get_last_tag()
        self.history_ref = last_tag
        if self.options.release_tag:
            # Custom tags are not always semver, the metadata knows the version
            version = self.get_metadata().version
            if version:
                return self.recommender.get_version_from_tag(version)
            # Repositories carry no version file, only their tags
            log.warn("No version found in the metadata, the last tag is used")
        if not last_tag:
            log.warn("No tag found, the whole history is considered")
            return "0.0.0"
        try:
            return self.recommender.get_version_from_tag(last_tag)
        except ValueError as err:
            fatal(str(err))

    def _provided_version(self) -> str | None:
        if self.options.version_from_metadata:
            version = self.get_metadata().version
            if not version:
                fatal("Unable to find the version to release in the metadata")
            return version
        return self.options.release_version

    def extract_version(self) -> None:
        """Compute the last and next versions, the tag and the releasing branch."""
        last_version = self._find_last_version()
        release_version = self._provided_version()
        bump = self.options.version_bump

        if release_version:
            if not is_valid_version(release_version):
                fatal(f"The provided version {release_version} is not a valid semver version.")
            if not is_greater(release_version, last_version):
                fatal(f"The provided version is lesser than the latest version {last_version}.")
            log.info(f"Release version provided: {release_version}")
            version = release_version
        elif bump in ("patch", "minor", "major"):
            version = increment_version(last_version, bump)
            log.info(f"Last version found: {last_version}")
            log.info(f"Version after a {bump} bump: {version}")
        else:
            next_version = self.recommender.get_next_version(last_version, since=self.history_ref)
            recommendation = next_version.recommendation
            stats = recommendation.stats
            if stats.commits == 0:
                if not self.options.interactive:
                    fatal(f"There's nothing to release: no new commits since {last_version}.")
                if not self.prompter.confirm(
                    "There's no new commits, do you really want to release a new version?", default=False
                ):
                    fatal("Release cancelled, there's nothing new to release.")
            elif stats.unset > 0:
                if stats.unset == stats.commits:
                    message = (
                        "The commits are non conventional. A PATCH version will be applied "
                        "for the release. Do you want to continue?"
                    )
                else:
                    message = "There are some non conventional commits. Are you sure you want to continue?"
                if self.options.interactive:
                    if not self.prompter.confirm(message, default=True):
                        fatal("Release cancelled because of the non conventional commits.")
                else:
                    log.warn(f"{stats.unset} of {stats.commits} commits are non conventional")
            version = next_version.version
            log.info(f"Last version found: {last_version}")
            log.info(f"Recommended version from commits: {version}")
            log.info(f"Reason: {recommendation.reason}")

        self.state.set_versions(
            last_version=last_version,
            last_tag=self.history_ref or f"v{last_version}",
            version=version,
            tag=self.options.release_tag or f"v{version}",
            branch_prefix=self.options.branch_prefix,
        )

    def extract_monorepo_versions(self) -> None:
        """Plan the version of every monorepo member.

        Members without commits of their own are released with a patch bump
        when one of their dependencies changed. The changed set is computed
        before that pass, so the promotion does not cascade further.
        """
        log.doing("Computing the versions of the monorepo packages")
        bump = self.options.version_bump
        packages: list[MonorepoPackage] = []
        for member in self.strategy.monorepo_get_packages_list():
            package = MonorepoPackage(
                package_name=member.name,
                package_path=member.path,
                last_version=member.version,
                dependencies=member.dependencies,
            )
            if bump == "none":
                package.version = member.version
                package.no_changes = True
                package.reason = "no version bump requested"
            elif bump in ("patch", "minor", "major"):
                package.version = increment_version(member.version, bump)
                package.reason = f"{bump} version bump requested"
            else:
                next_version = self.recommender.get_next_version(
                    member.version, subpath=member.path, since=self.history_ref
                )
                if next_version.recommendation.stats.commits == 0:
                    package.version = member.version
                    package.no_changes = True
                    package.reason = "no changes"
                else:
                    package.version = next_version.version
                    package.reason = next_version.recommendation.reason
            packages.append(package)

        changed = {p.package_name for p in packages if not p.no_changes}
        for package in packages:
            if package.no_changes and bump != "none" and changed.intersection(package.dependencies):
                package.version = increment_version(package.last_version, "patch")
                package.no_changes = False
                package.reason = "dependency update"

        self.state.set_monorepo_packages(packages)
        for package in packages:
            if package.no_changes:
                log.info(f"  {package.package_name}: {package.last_version} ({package.reason})")
            else:
                log.info(
                    f"  {package.package_name}: {package.last_version} → {package.version} ({package.reason})"
                )
        if not changed:
            log.warn("None of the monorepo packages has changes")
        log.done()

    # Branches and tags

    def prune_remote_origin(self) -> None:
        log.doing(f"Pruning {self.options.origin}")
        self.git_client.prune_remote()
        log.done()

    def does_tag_exists(self) -> None:
        tag = self.state.require("tag")
        log.doing(f"Check if tag {tag} exists")
        self.git_client.fetch_tags()
        if self.git_client.has_tag(tag):
            fatal(f"The tag {tag} already exists")
        log.done()

    def does_releasing_branch_exists(self) -> None:
        remote_branch = f"remotes/{self.options.origin}/{self.state.require('releasing_branch')}"
        log.doing(f"Check if branch {remote_branch} exists")
        if self.git_client.has_branch(remote_branch):
            fatal(f"The remote branch {remote_branch} already exists.")
        log.done()

    def is_release_required(self) -> None:
        log.doing(f"Diff {self.base_branch}..{self.release_branch}")
        if not self.git_client.has_diff(self.base_branch, self.release_branch):
            if not self.prompter.confirm(
                f"It seems there is no changes between {self.base_branch} and {self.release_branch}. "
                "Do you want to release anyway?",
                default=False,
                unattended=False,
            ):
                fatal(f"There are no changes between {self.base_branch} and {self.release_branch} to release.")
        log.done()

    def confirm_release(self) -> None:
        subject = self.state.require("subject")
        version = self.state.require("version")
        if self.state.monorepo_packages is not None:
            for package in self.state.monorepo_packages:
                if not package.no_changes:
                    log.info(f"  {package.package_name}@{package.version}")
        if not self.prompter.confirm(
            f"Let's release version {subject.name}@{version} 🚀 ?", default=True, unattended=True
        ):
            fatal("Release cancelled.")

    def create_releasing_branch(self) -> None:
        branch = self.state.require("releasing_branch")
        log.doing("Create release branch")
        self.git_client.create_local_branch(branch)
        self.git_client.push(branch)
        log.done(f"{branch} created")

    def checkout_releasing_branch(self) -> None:
        self.git_client.checkout(self.state.require("releasing_branch"))

    # Build and version bump

    def build(self) -> None:
        """Run the build steps of the subject in order.

        A failing step named in BEST_EFFORT_STEPS is reported and skipped,
        any other failure stops the release.
        """
        for build_step in self.strategy.build_steps(self.state.require("releasing_branch")):
            log.doing(build_step.label)
            if build_step.name not in BEST_EFFORT_STEPS:
                build_step.run()
                log.done()
                continue
            try:
                build_step.run()
            except ReleaseAbort:
                raise
            except Exception as err:
                log.error(f"{build_step.label} failed: {err}. Continue.")
            else:
                log.done()

    def update_version(self) -> None:
        branch = self.state.require("releasing_branch")
        log.doing("Bump version")
        if self.state.monorepo_packages is not None:
            self.strategy.monorepo_update_versions(self.state.monorepo_packages)
        else:
            self.strategy.update_version(self.state.require("version"))
        self.git_client.commit_and_push(branch, "chore: bump version")
        log.done()

    # Merges

    def prompt_to_resolve_conflicts(self) -> bool:
        return self.prompter.confirm(
            f"Has the merge been completed manually? I need to push the branch to {self.options.origin}.",
            default=False,
        )

    def _recover_from_conflicts(self, branch: str, err: MergeConflictError, declined_message: str) -> None:
        """Let the user finish a conflicting merge on ``branch``, then push it."""
        if not self.options.interactive:
            fatal(f"Unable to merge into '{branch}', {err}. Please complete the merge manually.")
        log.warn("Please resolve the conflicts and complete the merge manually (including making the merge commit).")
        if not self.prompt_to_resolve_conflicts():
            self.git_client.abort_merge()
            fatal(declined_message)
        if self.git_client.has_local_changes():
            fatal(f"Cannot push changes because local branch '{branch}' still has changes to commit.")
        self.git_client.push(branch)

    def merge_with_release_branch(self) -> None:
        """Bring the release branch into the releasing branch."""
        branch = self.state.require("releasing_branch")
        log.doing(f"Merging '{self.release_branch}' into '{branch}'.")
        self.git_client.pull(self.release_branch)
        self.checkout_releasing_branch()
        try:
            self.git_client.merge(self.release_branch)
        except MergeConflictError as err:
            self._recover_from_conflicts(
                branch, err, f"The merge of '{self.release_branch}' into '{branch}' has been aborted."
            )
        log.done(f"'{self.release_branch}' merged into '{branch}'.")

    def merge_back(self) -> None:
        log.doing(f"Merging back {self.release_branch} into {self.base_branch}")
        try:
            self.git_client.merge_back(self.base_branch, self.release_branch)
        except MergeConflictError as err:
            log.error(
                f"There were conflicts preventing the merge of {self.release_branch} back into {self.base_branch}."
            )
            self._recover_from_conflicts(
                self.base_branch, err, f"Not able to bring {self.base_branch} up to date. Please fix it manually."
            )
        log.done()

    # Pull request and GitHub release

    def create_pull_request(self) -> None:
        log.doing("Create the pull request")
        try:
            result = self.github_client.create_release_pull_request(
                self.state.require("releasing_branch"),
                self.release_branch,
                self.state.require("version"),
                self.state.require("last_version"),
                self.subject_type.value,
            )
        except subprocess.CalledProcessError as err:
            # GitHub answers 422 when the PR exists or the branch is not ahead
            fatal(
                "Unable to create the release pull request\n"
                f"{(err.stderr or err.stdout or str(err)).strip()}\n"
                f"See {TROUBLESHOOTING_URL}"
            )
        if result.state != "open" or result.number is None:
            fatal(
                "Unable to create the release pull request\n"
                f"{result.model_dump_json(indent=2)}\n"
                f"See {TROUBLESHOOTING_URL}"
            )
        pull_request = PullRequest(
            url=result.url,
            api_url=result.api_url,
            number=result.number,
            id=result.id,
            full_name=result.head_repo_full_name,
        )
        self.state.set_pull_request(pull_request)
        self.github_client.add_label(pull_request.full_name, pull_request.number, [RELEASE_LABEL])
        log.info(f"{pull_request.url} created")
        log.done()

    def extract_release_notes(self) -> None:
        pull_request = self.state.pull_request
        if pull_request is None:
            log.warn("No release pull request, the release notes are skipped.")
            return
        log.doing("Extract release notes")
        try:
            notes = self.github_client.extract_release_notes_from_release_pr(pull_request.number)
        except Exception as err:
            log.error(f"{err}")
            notes = ""
        if notes:
            log.info(notes)
            log.done()
        else:
            log.error("Unable to create the release notes. Continue.")
        self.state.set_release_notes(notes or "")

    def merge_pull_request(self) -> None:
        pull_request = self.state.require("pull_request")
        self.prompter.open_later(pull_request.url)
        if not self.prompter.confirm(
            "Please review the release PR (you can make the last changes now). Can I merge it now ?",
            default=False,
            unattended=True,
        ):
            fatal(f"The release pull request {pull_request.url} has not been merged.")
        log.doing("Merging the pull request")
        self.git_client.merge_as_pull_request(self.release_branch, self.state.require("releasing_branch"))
        log.done("PR merged")

    def create_release_tag(self) -> None:
        tag = self.state.require("tag")
        log.doing(f"Add and push tag {tag}")
        self.git_client.create_and_push_tag(
            self.release_branch,
            tag,
            comment=f"version {self.state.require('version')}",
            sign=self.state.sign_tags_enabled,
        )
        log.done()

    def create_github_release(self) -> None:
        version = self.state.require("version")
        log.doing(f"Creating github release {version}")
        comment = self.options.release_comment
        if comment is None:
            comment = self.prompter.text("Any comment on the release ?", default="", unattended="")
        notes = self.state.pull_request.notes if self.state.pull_request else ""
        self.github_client.create_release(
            self.state.require("tag"), f"{comment}\n\n**Release notes :**\n{notes}"
        )
        log.done()

    # Cleanup and publication

    def remove_releasing_branch(self) -> None:
        log.doing("Clean up the place")
        self.git_client.delete_branch(self.state.require("releasing_branch"))
        log.done()

    def publish(self) -> None:
        if self.state.monorepo_packages is not None:
            self.strategy.monorepo_publish(self.state.monorepo_packages)
        else:
            self.strategy.publish()
