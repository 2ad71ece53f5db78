"""Tests for semantic versions and npm-style ranges."""

from __future__ import annotations

import pytest

from trustgate.registry.semver import (
    Version,
    VersionRange,
    is_valid_version,
    max_satisfying,
    parse_version,
)


class TestParseVersion:
    """Tests for parse_version and ordering."""

    def test_parse_plain(self) -> None:
        assert parse_version("1.2.3") == Version(1, 2, 3)

    def test_parse_prerelease_and_build(self) -> None:
        v = parse_version("v2.0.0-beta.1+sha.abc")
        assert v == Version(2, 0, 0, ("beta", "1"))
        assert str(v) == "2.0.0-beta.1"

    @pytest.mark.parametrize("text", ["1.2", "latest", "01.2.3", "1.2.3.4", ""])
    def test_invalid(self, text: str) -> None:
        assert not is_valid_version(text)
        with pytest.raises(ValueError):
            parse_version(text)

    def test_ordering(self) -> None:
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
            "1.0.1",
            "1.10.0",
            "2.0.0",
        ]
        parsed = [parse_version(v) for v in ordered]
        assert sorted(reversed(parsed)) == parsed


class TestVersionRange:
    """Range satisfaction for the supported grammar."""

    @pytest.mark.parametrize(
        ("range_text", "version", "expected"),
        [
            ("^1.2.0", "1.9.9", True),
            ("^1.2.0", "2.0.0", False),
            ("^1.2.0", "1.1.9", False),
            ("^0.2.3", "0.2.9", True),
            ("^0.2.3", "0.3.0", False),
            ("^0.0.3", "0.0.4", False),
            ("~1.2.3", "1.2.9", True),
            ("~1.2.3", "1.3.0", False),
            ("~1", "1.9.0", True),
            ("1.x", "1.4.2", True),
            ("1.x", "2.0.0", False),
            ("1.2", "1.2.7", True),
            ("*", "9.9.9", True),
            ("", "0.0.1", True),
            (">=1.0.0 <2", "1.5.0", True),
            (">=1.0.0 <2", "2.0.0", False),
            ("> 1.2", "1.3.0", True),
            ("> 1.2", "1.2.9", False),
            ("<=1.2", "1.2.99", True),
            ("1.2.3 - 2.3", "2.3.9", True),
            ("1.2.3 - 2.3.4", "2.3.5", False),
            ("<1.0.0 || >=3.0.0", "0.9.0", True),
            ("<1.0.0 || >=3.0.0", "2.0.0", False),
            ("=1.0.0", "1.0.0", True),
        ],
    )
    def test_satisfies(self, range_text: str, version: str, expected: bool) -> None:
        assert VersionRange(range_text).satisfies(version) is expected

    def test_prerelease_needs_same_tuple_comparator(self) -> None:
        assert VersionRange(">=1.0.0-beta.1").satisfies("1.0.0-beta.2")
        assert not VersionRange(">=1.0.0-beta.1").satisfies("1.1.0-beta.1")
        assert not VersionRange("^1.0.0").satisfies("1.2.0-rc.1")

    def test_invalid_range_fails_at_construction(self) -> None:
        with pytest.raises(ValueError):
            VersionRange("not-a-range")


class TestMaxSatisfying:
    """Tests for max_satisfying."""

    VERSIONS = ["1.0.0", "1.2.0", "1.10.0", "2.0.0-rc.1", "2.0.0", "3.0.0", "3.1.0"]

    def test_highest_match(self) -> None:
        assert max_satisfying(self.VERSIONS, "^1.0.0") == "1.10.0"
        assert max_satisfying(self.VERSIONS, "^3.0.0") == "3.1.0"
        assert max_satisfying(self.VERSIONS, "*") == "3.1.0"

    def test_no_match(self) -> None:
        assert max_satisfying(self.VERSIONS, "^9.0.0") is None

    def test_ignores_non_semver_keys(self) -> None:
        assert max_satisfying(["garbage", "1.0.0"], "*") == "1.0.0"

    def test_bad_range_raises(self) -> None:
        with pytest.raises(ValueError):
            max_satisfying(self.VERSIONS, "^^nope")
