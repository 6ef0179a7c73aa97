"""Dependency handling utilities.

Rewrites the package.json of monorepo members so their internal
dependencies follow the versions computed for the release.
"""

from __future__ import annotations

import re
from typing import Any

from .npm import DEPENDENCY_FIELDS

_RANGE_RE = re.compile(r"^(?P<prefix>\^|~|>=|>|=)?\s*\d")


def bump_range(range_str: str, version: str) -> str:
    """Move a dependency range to a new version, keeping its operator.

    Ranges that are not a simple version (workspace:, *, file:, ...) are
    kept as is.

    Examples:
        bump_range("^1.2.0", "1.3.0") → "^1.3.0"
        bump_range("~1.2.0", "1.2.1") → "~1.2.1"
        bump_range("1.2.0", "2.0.0") → "2.0.0"
        bump_range("*", "2.0.0") → "*"
    """
    match = _RANGE_RE.match(range_str.strip())
    if not match:
        return range_str
    return f"{match.group('prefix') or ''}{version}"


def rewrite_descriptor(
    data: dict[str, Any], new_version: str, internal_dep_versions: dict[str, str]
) -> dict[str, Any]:
    """Update a package's version and the ranges of its internal dependencies.

    Internal deps are rewritten in all dependency fields
    (dependencies, devDependencies, peerDependencies, optionalDependencies).
    The descriptor is modified in place and returned.

    Args:
        data: Parsed package.json.
        new_version: New version string to set.
        internal_dep_versions: Map of package name → version for internal deps.
    """
    data["version"] = new_version
    for field in DEPENDENCY_FIELDS:
        deps = data.get(field)
        if not isinstance(deps, dict):
            continue
        for name, range_str in deps.items():
            if name in internal_dep_versions:
                deps[name] = bump_range(str(range_str), internal_dep_versions[name])
    return data
