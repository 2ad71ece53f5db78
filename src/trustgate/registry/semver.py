"""Semantic versions and npm-style version ranges.

Parses versions and range specifiers the way the npm registry client does,
so that a requested specifier such as ``^1.2.0`` can be resolved to the one
concrete version that will actually be installed.

Supported range syntax:

- Primitive comparators: ``<``, ``<=``, ``>``, ``>=``, ``=`` and bare versions.
- X-ranges: ``*``, ``x``, ``1.x``, ``1.2.*`` and partial versions (``1.2``).
- Tilde (``~1.2.3``, ``~1.2``, ``~1``) and caret (``^1.2.3``, ``^0.2``).
- Hyphen ranges: ``1.2.3 - 2.3.4``.
- Conjunction by whitespace and alternatives by ``||``.

Prerelease versions only satisfy a comparator set when one of its
comparators names a prerelease on the same ``major.minor.patch`` tuple.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

# ---------------------------------------------------------------------------
# Version parsing and ordering
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^[v=]?\s*(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*])"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+[0-9A-Za-z\-.]+)?"
    r")?)?$"
)

_HYPHEN_RE = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")
_OP_SPACE_RE = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")
_COMPARATOR_RE = re.compile(r"^(?P<op><=|>=|<|>|=|~>|~|\^)?(?P<ver>.*)$")

_WILDCARDS = frozenset({"x", "X", "*"})


@dataclass(frozen=True)
class Version:
    """A parsed semantic version.

    Ordering follows SemVer 2.0.0 precedence: build metadata is ignored and a
    prerelease sorts below the associated normal version.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()

    @property
    def release(self) -> tuple[int, int, int]:
        return self.major, self.minor, self.patch

    def _key(self) -> tuple:
        pre = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __lt__(self, other: Version) -> bool:
        return self._key() < other._key()

    def __le__(self, other: Version) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: Version) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: Version) -> bool:
        return self._key() >= other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


def parse_version(version: str) -> Version:
    """Parse a full semantic version string.

    Raises:
        ValueError: If the string is not a valid semantic version.
    """
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
    return Version(int(m.group("major")), int(m.group("minor")), int(m.group("patch")), pre)


def is_valid_version(version: str) -> bool:
    """Return True if ``version`` is a full semantic version."""
    try:
        parse_version(version)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Range desugaring
# ---------------------------------------------------------------------------

Comparator = tuple[str, Version]

# "<0.0.0-0" is satisfied by nothing.
_MATCH_NONE: list[Comparator] = [("<", Version(0, 0, 0, ("0",)))]


def _upper(major: int, minor: int = 0, patch: int = 0) -> Version:
    return Version(major, minor, patch, ("0",))


def _parse_partial(text: str) -> tuple[int | None, int | None, int | None, tuple[str, ...]]:
    m = _PARTIAL_RE.match(text)
    if not m:
        raise ValueError(f"Invalid version in range: {text!r}")
    parts: list[int | None] = []
    for group in ("major", "minor", "patch"):
        value = m.group(group)
        if value is None or value in _WILDCARDS or (parts and parts[-1] is None):
            parts.append(None)
        else:
            parts.append(int(value))
    pre = tuple(m.group("pre").split(".")) if m.group("pre") and parts[2] is not None else ()
    return parts[0], parts[1], parts[2], pre


def _desugar(op: str, text: str) -> list[Comparator]:
    if text == "":
        text = "*"
    major, minor, patch, pre = _parse_partial(text)

    if op in ("", "="):
        if major is None:
            return []
        if minor is None:
            return [(">=", Version(major, 0, 0)), ("<", _upper(major + 1))]
        if patch is None:
            return [(">=", Version(major, minor, 0)), ("<", _upper(major, minor + 1))]
        return [("=", Version(major, minor, patch, pre))]

    if op in ("~", "~>"):
        if major is None:
            return []
        if minor is None:
            return [(">=", Version(major, 0, 0)), ("<", _upper(major + 1))]
        low = Version(major, minor, patch or 0, pre)
        return [(">=", low), ("<", _upper(major, minor + 1))]

    if op == "^":
        if major is None:
            return []
        if minor is None:
            return [(">=", Version(major, 0, 0)), ("<", _upper(major + 1))]
        if patch is None:
            low = Version(major, minor, 0)
            if major == 0:
                return [(">=", low), ("<", _upper(0, minor + 1))]
            return [(">=", low), ("<", _upper(major + 1))]
        low = Version(major, minor, patch, pre)
        if major > 0:
            return [(">=", low), ("<", _upper(major + 1))]
        if minor > 0:
            return [(">=", low), ("<", _upper(0, minor + 1))]
        return [(">=", low), ("<", _upper(0, 0, patch + 1))]

    # Primitive comparators with possibly partial versions.
    if major is None:
        return list(_MATCH_NONE) if op in ("<", ">") else []
    if patch is not None:
        return [(op, Version(major, minor or 0, patch, pre))]
    if op == ">":
        if minor is None:
            return [(">=", Version(major + 1, 0, 0))]
        return [(">=", Version(major, minor + 1, 0))]
    if op == ">=":
        return [(">=", Version(major, minor or 0, 0))]
    if op == "<":
        return [("<", _upper(major, minor or 0))]
    # "<="
    if minor is None:
        return [("<", _upper(major + 1))]
    return [("<", _upper(major, minor + 1))]


def _desugar_hyphen(low: str, high: str) -> list[Comparator]:
    comparators: list[Comparator] = []
    l_major, l_minor, l_patch, l_pre = _parse_partial(low)
    if l_major is not None:
        comparators.append((">=", Version(l_major, l_minor or 0, l_patch or 0, l_pre)))
    h_major, h_minor, h_patch, h_pre = _parse_partial(high)
    if h_major is not None:
        if h_minor is None:
            comparators.append(("<", _upper(h_major + 1)))
        elif h_patch is None:
            comparators.append(("<", _upper(h_major, h_minor + 1)))
        else:
            comparators.append(("<=", Version(h_major, h_minor, h_patch, h_pre)))
    return comparators


def _parse_set(text: str) -> list[Comparator]:
    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        return _desugar_hyphen(hyphen.group("low"), hyphen.group("high"))

    comparators: list[Comparator] = []
    for token in _OP_SPACE_RE.sub(r"\1", text.strip()).split():
        m = _COMPARATOR_RE.match(token)
        assert m is not None
        comparators.extend(_desugar(m.group("op") or "", m.group("ver")))
    return comparators


def _compare(op: str, version: Version, target: Version) -> bool:
    if op == "=":
        return version == target
    if op == "<":
        return version < target
    if op == "<=":
        return version <= target
    if op == ">":
        return version > target
    if op == ">=":
        return version >= target
    raise ValueError(f"Unknown operator: {op!r}")  # pragma: no cover


def _set_satisfies(comparators: list[Comparator], version: Version) -> bool:
    if not all(_compare(op, version, target) for op, target in comparators):
        return False
    if not version.prerelease:
        return True
    return any(
        target.prerelease and target.release == version.release
        for _, target in comparators
    )


# ---------------------------------------------------------------------------
# VersionRange
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionRange:
    """An npm-style version range such as ``^1.2.0 || >=3.0.0 <4``.

    Attributes:
        raw: The range as written by the user.
    """

    raw: str

    def __post_init__(self) -> None:
        # Validate eagerly so that a bad specifier fails at construction.
        self._sets()

    def _sets(self) -> list[list[Comparator]]:
        return [_parse_set(part) for part in self.raw.split("||")]

    def satisfies(self, version: str | Version) -> bool:
        """Check whether ``version`` is within this range.

        Raises:
            ValueError: If ``version`` is a string that is not valid semver.
        """
        parsed = parse_version(version) if isinstance(version, str) else version
        return any(_set_satisfies(s, parsed) for s in self._sets())

    def __repr__(self) -> str:
        return f"VersionRange({self.raw!r})"


def max_satisfying(versions: Iterable[str], range_text: str) -> str | None:
    """Return the highest version in ``versions`` that satisfies ``range_text``.

    Keys that are not valid semantic versions are ignored.

    Args:
        versions: Candidate version strings (e.g. the keys of a packument's
            ``versions`` mapping).
        range_text: npm-style range.

    Returns:
        The matching version string as it appeared in ``versions``, or None.

    Raises:
        ValueError: If ``range_text`` cannot be parsed.
    """
    version_range = VersionRange(range_text)
    sets = version_range._sets()
    best: tuple[Version, str] | None = None
    for text in versions:
        try:
            parsed = parse_version(text)
        except ValueError:
            continue
        if not any(_set_satisfies(s, parsed) for s in sets):
            continue
        if best is None or parsed > best[0]:
            best = (parsed, text)
    return best[1] if best else None
