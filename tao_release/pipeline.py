"""Release pipeline driver.

Each release command is a fixed sequence of ReleaseOrchestrator steps:

1. Load the configuration and select the subject
2. Check the GitHub credentials and the local repository
3. Compute the version, check the tag and the releasing branch are free
4. Create the releasing branch, build, bump the version
5. Open the release pull request, extract the notes, merge it
6. Tag, create the GitHub release, merge back, clean up, publish

A step stops the run by raising ReleaseAbort; its exit code is returned.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from . import log
from .errors import ReleaseAbort
from .release import ReleaseOrchestrator

Step = Callable[[ReleaseOrchestrator], None]

R = ReleaseOrchestrator

_PREPARE: tuple[Step, ...] = (
    R.load_config,
    R.select_target,
    R.initialise_github_client,
    R.verify_credentials,
    R.write_config,
    R.initialise_git_client,
    R.verify_local_changes,
    R.sign_tags,
    R.verify_branches,
    R.extract_version,
)

_BRANCH: tuple[Step, ...] = (
    R.prune_remote_origin,
    R.does_tag_exists,
    R.does_releasing_branch_exists,
    R.is_release_required,
    R.confirm_release,
    R.create_releasing_branch,
)

_RELEASE: tuple[Step, ...] = (
    R.update_version,
    R.merge_with_release_branch,
    R.create_pull_request,
    R.extract_release_notes,
    R.merge_pull_request,
    R.create_release_tag,
    R.create_github_release,
    R.merge_back,
    R.remove_releasing_branch,
)

EXTENSION_STEPS: tuple[Step, ...] = _PREPARE + _BRANCH + (R.build,) + _RELEASE
NPM_STEPS: tuple[Step, ...] = _PREPARE + _BRANCH + (R.build,) + _RELEASE + (R.publish,)
# Monorepo members are published without a build step
MONOREPO_STEPS: tuple[Step, ...] = (
    _PREPARE + (R.extract_monorepo_versions,) + _BRANCH + _RELEASE + (R.publish,)
)
REPOSITORY_STEPS: tuple[Step, ...] = _PREPARE + _BRANCH + _RELEASE
LEGACY_STEPS: tuple[Step, ...] = EXTENSION_STEPS


def run_release(release: ReleaseOrchestrator, steps: Sequence[Step], title: str) -> int:
    """Run ``steps`` in order and return the process exit code.

    Returns:
        0 once the last step is done, the abort code when a step stopped the
        release, 1 on any unexpected error.
    """
    log.title(title)
    try:
        for step in steps:
            step(release)
    except ReleaseAbort as abort:
        log.error(abort.message or "Release aborted.")
        return abort.exit_code
    except Exception as err:
        log.error(f"An error occurred: {err}")
        return 1
    log.done("Good job!")
    return 0
