"""Version parsing, coercion and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete versions (e.g., "1.0" → "1.0.0") and for
release tags that are not strict semver (e.g., "v3.2.5.8" → "3.2.5").
"""

from __future__ import annotations

import re

import semver

BUMP_TYPES = ("patch", "minor", "major", "none")

_TAG_RE = re.compile(r"^[vV=]?\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Strict semver strings (including prerelease and build metadata) are
    parsed as is. Incomplete versions are padded with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    """
    if semver.Version.is_valid(version_str):
        return semver.Version.parse(version_str)
    parts = version_str.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def is_valid_version(version_str: str) -> bool:
    """Is the string a strict semver version (e.g., "1.2.3" or "2.0.0-beta.1")?"""
    return semver.Version.is_valid(version_str)


def is_greater(version_str: str, other_str: str) -> bool:
    """Is version_str strictly greater than other_str under semver ordering?"""
    return parse_version(version_str) > parse_version(other_str)


def get_version_from_tag(tag: str) -> str:
    """Coerce a release tag into a 3-component semver version.

    Extra numeric segments and prerelease suffixes are dropped, missing
    components are zero-filled, a leading "v" is ignored.

    Examples:
        "v1.2.3" → "1.2.3"
        "3.2.5.8" → "3.2.5"
        "4.12.13-8" → "4.12.13"
        "v2.1" → "2.1.0"

    Raises:
        ValueError: If the tag does not start with a version number.
    """
    match = _TAG_RE.match(tag.strip())
    if not match:
        raise ValueError(f"Unable to retrieve a version from the tag '{tag}'")
    major, minor, patch = (int(part or 0) for part in match.groups())
    return str(semver.Version(major, minor, patch))


def increment_version(version_str: str, bump: str) -> str:
    """Apply a fixed bump to a version and return it as a string.

    "none" returns the version unchanged.

    Examples:
        increment_version("1.2.3", "patch") → "1.2.4"
        increment_version("1.2.3", "minor") → "1.3.0"
        increment_version("1.2.3", "major") → "2.0.0"

    Raises:
        ValueError: On an unknown bump type.
    """
    version = parse_version(version_str)
    if bump == "none":
        return str(version)
    if bump == "patch":
        return str(version.bump_patch())
    if bump == "minor":
        return str(version.bump_minor())
    if bump == "major":
        return str(version.bump_major())
    raise ValueError(f"Unknown bump type '{bump}', expected one of {', '.join(BUMP_TYPES)}")
