"""
Semantic versions and npm ranges, evaluated with ``node-semver``.

Versions follow semver 2.0.0 precedence: ``1.0.0-0 < 1.0.0-alpha <
1.0.0``, build metadata ignored. Ranges take the full npm grammar
(caret, tilde, x-ranges, hyphen ranges, ``||``) with npm's prerelease
rule: a prerelease only matches a range naming a prerelease of the same
``MAJOR.MINOR.PATCH``.

A :class:`VersionRange` may combine several npm ranges; a version
satisfies it only when it satisfies every one of them.
"""

import functools
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

import nodesemver

from .errors import InvalidRangeError, InvalidVersionError

# Strict parsing; npm's loose mode accepts malformed versions.
LOOSE = False

VersionLike = Union[str, nodesemver.SemVer]


@functools.lru_cache(maxsize=1024)
def parse_version(text: str) -> nodesemver.SemVer:
    """
    Parse a concrete ``MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]`` version.

    Raises:
        InvalidVersionError: If ``text`` is not a complete version
    """
    if not isinstance(text, str):
        raise InvalidVersionError(repr(text))

    try:
        return nodesemver.make_semver(text.strip(), LOOSE)
    except ValueError as exc:
        raise InvalidVersionError(text) from exc


def _coerce(version: VersionLike) -> nodesemver.SemVer:
    return parse_version(version) if isinstance(version, str) else version


def compare(a: VersionLike, b: VersionLike) -> int:
    """Three-way comparison of two concrete versions."""
    return nodesemver.compare(_coerce(a), _coerce(b), LOOSE)


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Sort version strings ascending by semver precedence."""
    return sorted(versions, key=functools.cmp_to_key(compare))


@functools.lru_cache(maxsize=4096)
def _satisfies(version: str, range_: str) -> bool:
    return nodesemver.satisfies(version, range_, LOOSE)


@dataclass(frozen=True)
class VersionRange:
    """
    Conjunction of npm ranges.

    Parsed from one range string; :meth:`intersect` adds more.
    """

    ranges: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "VersionRange":
        """
        Parse an npm range.

        Raises:
            InvalidRangeError: If ``text`` is not a valid range
        """
        if not isinstance(text, str):
            raise InvalidRangeError(repr(text), "not a string")
        if nodesemver.valid_range(text, LOOSE) is None:
            raise InvalidRangeError(text)
        return cls(ranges=(text.strip(),))

    def satisfied_by(self, version: VersionLike) -> bool:
        text = version if isinstance(version, str) else version.version
        parse_version(text)
        return all(_satisfies(text.strip(), range_) for range_ in self.ranges)

    def intersect(self, other: "VersionRange") -> "VersionRange":
        """Range satisfied exactly by versions satisfying both ranges."""
        ranges = self.ranges + tuple(r for r in other.ranges if r not in self.ranges)
        return VersionRange(ranges=ranges)

    def __str__(self) -> str:
        if len(self.ranges) == 1:
            return self.ranges[0]
        return " && ".join(f"({r})" for r in self.ranges)


def satisfies(version: VersionLike, range_: Union[str, VersionRange]) -> bool:
    """Check whether a concrete version satisfies a range."""
    if not isinstance(range_, VersionRange):
        range_ = VersionRange.parse(range_)
    return range_.satisfied_by(version)
