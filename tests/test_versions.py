"""Tests for tao_release.versions."""

from __future__ import annotations

import pytest

from tao_release.versions import (
    get_version_from_tag,
    increment_version,
    is_greater,
    is_valid_version,
    parse_version,
)


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_two_part_version(self) -> None:
        v = parse_version("1.2")
        assert (v.major, v.minor, v.patch) == (1, 2, 0)

    def test_single_part_version(self) -> None:
        v = parse_version("5")
        assert (v.major, v.minor, v.patch) == (5, 0, 0)

    def test_prerelease_is_kept(self) -> None:
        assert parse_version("2.0.0-beta.1").prerelease == "beta.1"


class TestIsGreater:
    def test_greater(self) -> None:
        assert is_greater("1.2.4", "1.2.3")

    def test_equal_is_not_greater(self) -> None:
        assert not is_greater("1.2.3", "1.2.3")

    def test_lower(self) -> None:
        assert not is_greater("1.0.0", "1.2.3")

    def test_prerelease_is_lower_than_release(self) -> None:
        assert not is_greater("2.0.0-rc.1", "2.0.0")
        assert is_greater("2.0.0-rc.1", "1.9.9")


class TestIsValidVersion:
    def test_valid(self) -> None:
        assert is_valid_version("1.2.3")
        assert is_valid_version("1.2.3-alpha.1")

    def test_invalid(self) -> None:
        assert not is_valid_version("1.2")
        assert not is_valid_version("v1.2.3")
        assert not is_valid_version("latest")


class TestGetVersionFromTag:
    @pytest.mark.parametrize(
        ("tag", "expected"),
        [
            ("v1.2.3", "1.2.3"),
            ("1.2.3", "1.2.3"),
            ("3.2.5.8", "3.2.5"),
            ("4.12.13-8", "4.12.13"),
            ("v2.1", "2.1.0"),
            ("7", "7.0.0"),
        ],
    )
    def test_coercion(self, tag: str, expected: str) -> None:
        assert get_version_from_tag(tag) == expected

    @pytest.mark.parametrize("tag", ["3.2.5.8", "4.12.13-8", "v2.1"])
    def test_coercion_is_idempotent(self, tag: str) -> None:
        once = get_version_from_tag(tag)
        assert get_version_from_tag(once) == once
        assert is_valid_version(once)

    def test_not_a_version_raises(self) -> None:
        with pytest.raises(ValueError, match="release-candidate"):
            get_version_from_tag("release-candidate")


class TestIncrementVersion:
    def test_patch(self) -> None:
        assert increment_version("1.2.3", "patch") == "1.2.4"

    def test_minor(self) -> None:
        assert increment_version("1.2.3", "minor") == "1.3.0"

    def test_major(self) -> None:
        assert increment_version("1.2.3", "major") == "2.0.0"

    def test_none_keeps_version(self) -> None:
        assert increment_version("1.2.3", "none") == "1.2.3"

    @pytest.mark.parametrize("bump", ["patch", "minor", "major"])
    @pytest.mark.parametrize("version", ["0.0.0", "1.2.3", "9.99.999"])
    def test_bump_is_greater_and_pure(self, version: str, bump: str) -> None:
        bumped = increment_version(version, bump)
        assert is_greater(bumped, version)
        assert increment_version(version, bump) == bumped

    def test_unknown_bump_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown bump type"):
            increment_version("1.2.3", "huge")
