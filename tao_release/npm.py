"""npm operations needed by a release, run inside an explicit working root.

Also discovers the members of an npm monorepo from the ``workspaces`` field
of the root package.json (or the ``packages`` field of lerna.json).
"""

from __future__ import annotations

import glob
import json
from pathlib import Path
from typing import Any

from .errors import CommandError
from .graph import topo_sort
from .models import WorkspaceMember
from .shell import run

DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")


def read_descriptor(path: Path | str) -> dict[str, Any]:
    """Load the package.json found in ``path``."""
    return json.loads((Path(path) / "package.json").read_text())


def write_descriptor(path: Path | str, data: dict[str, Any]) -> None:
    """Save a package.json in ``path`` keeping npm's 2-space formatting."""
    (Path(path) / "package.json").write_text(json.dumps(data, indent=2) + "\n")


def get_workspace_globs(root: Path) -> list[str]:
    """Member glob patterns of a monorepo (e.g., "packages/*").

    Supports both ``"workspaces": [...]`` and
    ``"workspaces": {"packages": [...]}`` in package.json, then lerna.json.
    """
    workspaces = read_descriptor(root).get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if workspaces:
        return list(workspaces)
    lerna = root / "lerna.json"
    if lerna.exists():
        return list(json.loads(lerna.read_text()).get("packages", []))
    return []


class NpmClient:
    """Run npm commands for the package (or monorepo) found at ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def npm(self, *args: str, cwd: Path | str | None = None) -> None:
        """Run an npm command, streaming its output.

        Raises:
            CommandError: If npm exits with a non-zero code.
        """
        result = run("npm", *args, cwd=cwd or self.root, check=False)
        if result.returncode != 0:
            raise CommandError(f"npm {' '.join(args)} failed with code {result.returncode}")

    def install(self) -> None:
        self.npm("ci")

    def build(self) -> None:
        self.npm("run", "build")

    def publish(self, registry: str | None = None) -> None:
        args = ["publish"]
        if registry:
            args.extend(["--registry", registry])
        self.npm(*args)

    def read_descriptor(self, path: Path | str | None = None) -> dict[str, Any]:
        return read_descriptor(path or self.root)

    def write_descriptor(self, path: Path | str, data: dict[str, Any]) -> None:
        write_descriptor(path, data)

    def update_version(self, path: Path | str, version: str) -> None:
        """Set the version of package.json and package-lock.json in ``path``."""
        self.npm("version", version, "--no-git-tag-version", "--allow-same-version", cwd=path)

    def update_lockfile(self) -> None:
        self.npm("install", "--package-lock-only", "--ignore-scripts")

    def list_monorepo_members(self) -> list[WorkspaceMember]:
        """Discover the monorepo members and the dependencies between them.

        Returns:
            Members in dependency order (dependencies first).

        Raises:
            CommandError: If no member is found.
        """
        member_dirs: list[Path] = []
        for pattern in get_workspace_globs(self.root):
            for match in sorted(glob.glob(str(self.root / pattern))):
                p = Path(match)
                if (p / "package.json").exists():
                    member_dirs.append(p)

        if not member_dirs:
            raise CommandError(f"No workspace packages found in {self.root}")

        # First pass: collect basic info from each package
        members: dict[str, WorkspaceMember] = {}
        raw_deps: dict[str, set[str]] = {}
        for d in member_dirs:
            data = read_descriptor(d)
            name = data.get("name", d.name)
            members[name] = WorkspaceMember(
                name=name,
                path=d.relative_to(self.root).as_posix(),
                version=data.get("version", "0.0.0"),
            )
            raw_deps[name] = {dep for field in DEPENDENCY_FIELDS for dep in data.get(field, {})}

        # Second pass: keep internal dependencies only
        for name, deps in raw_deps.items():
            members[name].dependencies = sorted(dep for dep in deps if dep in members and dep != name)

        return [members[name] for name in topo_sort({n: m.dependencies for n, m in members.items()})]

    def publish_all(self, names: list[str], registry: str | None = None) -> None:
        """Publish the given monorepo members."""
        for name in names:
            args = ["publish", "--workspace", name]
            if registry:
                args.extend(["--registry", registry])
            self.npm(*args)
