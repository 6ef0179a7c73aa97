"""What varies between the kinds of subjects a release can target.

The orchestrator runs the same steps for every subject; it only delegates
target selection, metadata, build, version bump and publication to the
strategy bound at construction time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

from ..models import MonorepoPackage, ReleaseOptions, RunState, Subject, SubjectMetadata, UserConfig, WorkspaceMember

if TYPE_CHECKING:
    from ..git import GitClient
    from ..prompts import Prompter


class SubjectType(str, Enum):
    EXTENSION = "extension"
    PACKAGE = "package"
    REPOSITORY = "repository"


class BuildStep(NamedTuple):
    """One build action; ``name`` is looked up to decide failure handling."""

    name: str
    label: str
    run: Callable[[], None]


class SubjectStrategy(ABC):
    """Subject specific part of a release.

    Args:
        options: Options of the release run.
        state: Run state owned by the orchestrator, shared by reference.
        prompter: Questions to the person running the release.
        config: Persisted configuration, updated with the selected target.
    """

    subject_type: SubjectType

    def __init__(
        self,
        options: ReleaseOptions,
        state: RunState,
        prompter: Prompter,
        config: UserConfig | None = None,
    ) -> None:
        self.options = options
        self.state = state
        self.prompter = prompter
        self.config = config or UserConfig()
        self.git_client: GitClient | None = None

    @abstractmethod
    def select_target(self) -> Subject:
        """Find what to release and where its working root is."""

    @abstractmethod
    def get_metadata(self) -> SubjectMetadata:
        """Name, repository id and current version of the subject."""

    def build_steps(self, releasing_branch: str) -> list[BuildStep]:
        return []

    def update_version(self, version: str) -> None:
        """Write ``version`` in the subject files; nothing to do by default."""

    def publish(self) -> None:
        """Send the released artifact to its registry; nothing to do by default."""

    def monorepo_get_packages_list(self) -> list[WorkspaceMember]:
        raise NotImplementedError(f"{self.subject_type.value} releases have no monorepo mode")

    def monorepo_update_versions(self, packages: list[MonorepoPackage]) -> None:
        raise NotImplementedError(f"{self.subject_type.value} releases have no monorepo mode")

    def monorepo_publish(self, packages: list[MonorepoPackage]) -> None:
        raise NotImplementedError(f"{self.subject_type.value} releases have no monorepo mode")


def create_strategy(
    subject_type: SubjectType,
    options: ReleaseOptions,
    state: RunState,
    prompter: Prompter,
    config: UserConfig | None = None,
    *,
    monorepo: bool = False,
) -> SubjectStrategy:
    """Build the strategy of ``subject_type``."""
    from .extension import ExtensionStrategy
    from .package import PackageStrategy
    from .repository import RepositoryStrategy

    if subject_type == SubjectType.EXTENSION:
        return ExtensionStrategy(options, state, prompter, config)
    elif subject_type == SubjectType.PACKAGE:
        return PackageStrategy(options, state, prompter, config, monorepo=monorepo)
    elif subject_type == SubjectType.REPOSITORY:
        return RepositoryStrategy(options, state, prompter, config)
    raise ValueError(f"Unknown subject type: {subject_type}")
