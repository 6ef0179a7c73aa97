"""CLI entry point for tao-release."""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from importlib.metadata import version as pkg_version
from typing import Any

import click

from . import log
from .models import ReleaseOptions
from .pipeline import (
    EXTENSION_STEPS,
    LEGACY_STEPS,
    MONOREPO_STEPS,
    NPM_STEPS,
    REPOSITORY_STEPS,
    Step,
    run_release,
)
from .release import ReleaseOrchestrator
from .subjects.base import SubjectType
from .versions import BUMP_TYPES

__version__ = pkg_version("tao-release")


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every release command."""
    options = [
        click.option("-d", "--debug", is_flag=True, help="Output extra debugging."),
        click.option("--base-branch", default="develop", show_default=True, help="The source branch for the release."),
        click.option(
            "--branch-prefix",
            default="release",
            show_default=True,
            help="The prefix of the branch created for releasing.",
        ),
        click.option("--origin", default="origin", show_default=True, help="The name of the remote repo."),
        click.option(
            "--release-branch", default="master", show_default=True, help="The target branch for the release PR."
        ),
        click.option("--release-version", help="Version to release, instead of the recommended one."),
        click.option("--release-comment", help="Comment to add to the GitHub release."),
        click.option(
            "--interactive/--no-interactive",
            default=True,
            show_default=True,
            help="Ask for confirmations; --no-interactive never waits on a prompt.",
        ),
        click.option(
            "--write/--no-write",
            default=True,
            show_default=True,
            help="Save the configuration (GitHub token, last choices).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def extension_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--path-to-tao", help="Path to the local TAO instance."),
        click.option("--extension-to-release", help="camelCase name of the extension to release."),
        click.option("--www-user", default="www-data", show_default=True, help="The user who runs php commands."),
        click.option("--update-translations", is_flag=True, help="Update the translations without asking."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def package_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--root", type=click.Path(exists=True, file_okay=False), help="Root of the repository to release."),
        click.option("--release-tag", help="Custom tag name; the last version is then read from the metadata."),
        click.option(
            "--version-bump",
            type=click.Choice(BUMP_TYPES),
            help="Apply this bump instead of the one recommended from the commits.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def publish_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--registry", help="npm registry to publish to.")(func)
    return click.option(
        "--publish/--no-publish", default=True, show_default=True, help="Publish to the npm registry."
    )(func)


def _release(
    ctx: click.Context,
    subject_type: SubjectType,
    steps: Sequence[Step],
    title: str,
    *,
    monorepo: bool = False,
    **params: Any,
) -> None:
    debug = params.pop("debug", False)
    # A prompt needs a terminal
    params["interactive"] = params.get("interactive", True) and sys.stdin.isatty()
    options = ReleaseOptions(**params)
    if debug:
        log.info(options.model_dump_json(indent=2))
    release = ReleaseOrchestrator(options, subject_type, monorepo=monorepo)
    ctx.exit(run_release(release, steps, title))


@click.group()
@click.version_option(__version__)
def cli() -> None:
    """Release TAO extensions, npm packages and repositories."""


@cli.command("extension-release")
@common_options
@extension_options
@click.pass_context
def extension_release(ctx: click.Context, **params: Any) -> None:
    """Release a TAO extension."""
    _release(ctx, SubjectType.EXTENSION, EXTENSION_STEPS, "TAO Extension Release", **params)


@cli.command("npm-release")
@common_options
@package_options
@publish_options
@click.pass_context
def npm_release(ctx: click.Context, **params: Any) -> None:
    """Release an npm package."""
    _release(ctx, SubjectType.PACKAGE, NPM_STEPS, "Release npm package", **params)


@cli.command("npm-release-monorepo")
@common_options
@package_options
@publish_options
@click.pass_context
def npm_release_monorepo(ctx: click.Context, **params: Any) -> None:
    """Release the changed packages of an npm monorepo."""
    _release(
        ctx, SubjectType.PACKAGE, MONOREPO_STEPS, "Release npm packages in monorepo", monorepo=True, **params
    )


@cli.command("repository-release")
@common_options
@package_options
@click.pass_context
def repository_release(ctx: click.Context, **params: Any) -> None:
    """Release a repository: tag and GitHub release only."""
    _release(ctx, SubjectType.REPOSITORY, REPOSITORY_STEPS, "Repository Release", **params)


@cli.command("legacy-release")
@common_options
@extension_options
@click.pass_context
def legacy_release(ctx: click.Context, **params: Any) -> None:
    """Release a TAO extension at the version written in its manifest."""
    params["version_from_metadata"] = True
    _release(ctx, SubjectType.EXTENSION, LEGACY_STEPS, "TAO Extension Release (manifest version)", **params)
