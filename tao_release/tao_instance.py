"""Inspection and maintenance of a TAO instance.

A TAO instance is a directory holding ``tao``, ``generis``, ``index.php``
and ``config``; each extension is a child directory with a
``manifest.php``. Assets are bundled with the grunt setup shipped in
``tao/views/build``.
"""

from __future__ import annotations

import getpass
import json
import re
from pathlib import Path

from .errors import CommandError
from .shell import run

ROOT_MARKERS = ("tao", "generis", "index.php", "config")
_MANIFEST_ENTRY_RE = r"""['"]{key}['"]\s*=>\s*['"](?P<value>[^'"]*)['"]"""


def parse_manifest(path: Path) -> dict[str, str]:
    """Read the name and version declared by an extension manifest.php.

    Only the top level string entries needed by a release are extracted.
    """
    content = path.read_text()
    manifest: dict[str, str] = {}
    for key in ("name", "label", "version"):
        match = re.search(_MANIFEST_ENTRY_RE.format(key=key), content)
        if match:
            manifest[key] = match.group("value")
    return manifest


class TaoInstance:
    """A TAO installation found at ``root``.

    Args:
        root: Root directory of the instance.
        www_user: System user owning the web server files.
    """

    def __init__(self, root: Path | str, www_user: str = "www-data") -> None:
        self.root = Path(root).resolve()
        self.www_user = www_user

    def is_root(self) -> bool:
        if not self.root.is_dir():
            return False
        return all((self.root / marker).exists() for marker in ROOT_MARKERS)

    def is_installed(self) -> bool:
        return (self.root / "config" / "generis.conf.php").exists()

    def is_extension(self, name: str) -> bool:
        return (self.root / name / "manifest.php").is_file()

    def get_extensions(self) -> list[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_dir() and self.is_extension(p.name))

    def parse_manifest(self, extension: str) -> dict[str, str]:
        return parse_manifest(self.root / extension / "manifest.php")

    def get_repo_name(self, extension: str) -> str | None:
        """The repository id declared as the composer package name."""
        composer = self.root / extension / "composer.json"
        if not composer.exists():
            return None
        return json.loads(composer.read_text()).get("name")

    def build_assets(self, extension: str) -> None:
        """Bundle the SASS and JavaScript assets of an extension.

        Installs the build tooling first when grunt is not available yet.

        Raises:
            CommandError: If a build command fails.
        """
        build_dir = self.root / "tao" / "views" / "build"
        grunt = build_dir / "node_modules" / ".bin" / "grunt"
        if not grunt.exists():
            self._run(["npm", "install"], build_dir)
        for task in ("sass", "bundle"):
            self._run(["./node_modules/.bin/grunt", f"{extension.lower()}{task}"], build_dir)

    def update_translations(self, extension: str) -> None:
        """Regenerate the translation files of an extension as the web server user.

        Raises:
            CommandError: If the translation script fails.
        """
        command = ["php", "tao/scripts/taoTranslate.php", "-a=updateAll", f"-e={extension}"]
        if self.www_user and self.www_user != getpass.getuser():
            command = ["sudo", "-u", self.www_user, *command]
        self._run(command, self.root)

    def _run(self, command: list[str], cwd: Path) -> None:
        result = run(*command, cwd=cwd, check=False)
        if result.returncode != 0:
            raise CommandError(f"{' '.join(command)} failed with code {result.returncode}")
