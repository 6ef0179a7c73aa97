"""Data models for tao-release.

These Pydantic models represent the options of a release run, the state
accumulated while its steps execute, and the results exchanged with the
git, GitHub and npm collaborators.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import RunStateError
from .versions import is_greater, parse_version

BumpType = Literal["patch", "minor", "major", "none"]


class ReleaseOptions(BaseModel):
    """Parameters of a release run, as given on the command line.

    Attributes:
        base_branch: Branch the release is cut from.
        branch_prefix: Prefix of the temporary releasing branch.
        origin: Name of the git remote.
        release_branch: Branch receiving the release pull request.
        release_version: Explicit version to release, overrides commit history.
        release_comment: Comment prepended to the GitHub release notes.
        interactive: False never waits on a prompt.
        write: False never rewrites the persisted configuration.
        path_to_tao: Root of the TAO instance (extension releases).
        extension_to_release: Name of the extension (extension releases).
        www_user: System user running the TAO php scripts.
        update_translations: Regenerate translations without asking.
        release_tag: Custom tag; the last version then comes from the
                     subject metadata since previous tags may not be semver.
        version_bump: Fixed bump applied instead of the commit recommendation.
        publish: False skips publishing to the registry.
        registry: npm registry to publish to.
        root: Working root for package and repository subjects.
        version_from_metadata: Release the version found in the subject
                               metadata (legacy flow).
    """

    base_branch: str = "develop"
    branch_prefix: str = "release"
    origin: str = "origin"
    release_branch: str = "master"
    release_version: str | None = None
    release_comment: str | None = None
    interactive: bool = True
    write: bool = True
    path_to_tao: str | None = None
    extension_to_release: str | None = None
    www_user: str = "www-data"
    update_translations: bool = False
    release_tag: str | None = None
    version_bump: BumpType | None = None
    publish: bool = True
    registry: str | None = None
    root: str | None = None
    version_from_metadata: bool = False


class Subject(BaseModel):
    """What is being released: an extension, a package or a repository."""

    name: str
    path: Path


class SubjectMetadata(BaseModel):
    """Metadata read from the subject (manifest, package.json or git remote)."""

    name: str | None = None
    repo_name: str | None = None
    version: str | None = None


class PullRequest(BaseModel):
    """Identity of the release pull request."""

    url: str
    api_url: str
    number: int
    id: int
    full_name: str
    notes: str = ""


class PullRequestResult(BaseModel):
    """What the hosting platform answered to a pull request creation."""

    state: str | None = None
    url: str | None = None
    api_url: str | None = None
    number: int | None = None
    id: int | None = None
    head_repo_full_name: str | None = None


class CommitStats(BaseModel):
    """Conventional commit counts since the last release."""

    commits: int = 0
    unset: int = 0
    features: int = 0
    fix: int = 0
    breakings: int = 0


class Recommendation(BaseModel):
    release_type: Literal["patch", "minor", "major"]
    reason: str
    stats: CommitStats = Field(default_factory=CommitStats)


class NextVersion(BaseModel):
    version: str
    recommendation: Recommendation


class WorkspaceMember(BaseModel):
    """A package found in an npm monorepo.

    Attributes:
        name: Package name from its package.json.
        path: Path relative to the monorepo root.
        version: Current version from its package.json.
        dependencies: Names of the other members it depends on.
    """

    name: str
    path: str
    version: str
    dependencies: list[str] = Field(default_factory=list)


class MonorepoPackage(BaseModel):
    """Version plan for one monorepo member."""

    package_name: str
    package_path: str
    last_version: str
    version: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    no_changes: bool = False
    reason: str = ""


class UserConfig(BaseModel):
    """Persisted per-user configuration.

    Only the token is required by the release; the other fields remember the
    choices of the previous run to offer them as prompt defaults.
    """

    model_config = ConfigDict(extra="allow")

    token: str | None = None
    tao_root: str | None = None
    extension: str | None = None


_SET_ONCE = ("subject", "last_version", "last_tag", "version", "tag", "releasing_branch")


class RunState(BaseModel):
    """State accumulated by a release run.

    Owned by the orchestrator and shared by reference with the subject
    strategy. Fields are only written through the ``set_*`` accessors, which
    keep the version and naming invariants; identity fields can be set once.
    """

    token: str | None = None
    subject: Subject | None = None
    last_version: str | None = None
    last_tag: str | None = None
    version: str | None = None
    tag: str | None = None
    releasing_branch: str | None = None
    pull_request: PullRequest | None = None
    sign_tags_enabled: bool = False
    monorepo_packages: list[MonorepoPackage] | None = None

    def require(self, field: str) -> Any:
        """Return ``field``, failing when an earlier step did not set it."""
        value = getattr(self, field)
        if value is None:
            raise RunStateError(f"'{field}' is not available yet, check the step order")
        return value

    def _set_once(self, field: str, value: Any) -> None:
        if field in _SET_ONCE and getattr(self, field) is not None:
            raise RunStateError(f"'{field}' is already set to {getattr(self, field)!r}")
        setattr(self, field, value)

    def set_token(self, token: str) -> None:
        self.token = token

    def set_subject(self, subject: Subject) -> None:
        self._set_once("subject", subject)

    def set_versions(
        self, *, last_version: str, last_tag: str, version: str, tag: str, branch_prefix: str
    ) -> None:
        """Record the last and next versions, and derive the releasing branch.

        Raises:
            RunStateError: If a version is already set or ``version`` is not
                           strictly greater than ``last_version``.
        """
        if not is_greater(version, last_version):
            raise RunStateError(f"Version {version} must be greater than {last_version}")
        self._set_once("last_version", last_version)
        self._set_once("last_tag", last_tag)
        self._set_once("version", version)
        self._set_once("tag", tag)
        self._set_once("releasing_branch", f"{branch_prefix}-{version}")

    def set_pull_request(self, pull_request: PullRequest) -> None:
        if self.pull_request is not None:
            raise RunStateError("The release pull request is already set")
        self.pull_request = pull_request

    def set_release_notes(self, notes: str) -> None:
        self.require("pull_request").notes = notes

    def set_sign_tags(self, enabled: bool) -> None:
        self.sign_tags_enabled = enabled

    def set_monorepo_packages(self, packages: list[MonorepoPackage]) -> None:
        for package in packages:
            if package.version is None or parse_version(package.version) < parse_version(
                package.last_version
            ):
                raise RunStateError(
                    f"{package.package_name}: version {package.version} is lower "
                    f"than {package.last_version}"
                )
        self.monorepo_packages = packages
