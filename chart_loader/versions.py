"""Resolution of requested chart versions against a repository index.

A requested version is either an exact semantic version, which is used as is,
or a constraint expression in the style accepted by Helm, e.g. `^1.2.0`,
`~1.2`, `>=1.0 <2.0`, `1.2 - 1.4.5` or `1.x || 2.x`. An empty constraint or
`latest` selects the highest stable version.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging
import re

from semver import Version

from .archive import join_url
from .exceptions import (
    ChartNotFoundError,
    NoMatchingVersionError,
    NoURLForVersionError,
)
from .manifest import Index, IndexEntry

__all__ = [
    "is_valid_version",
    "resolve_semver",
    "resolve_version",
    "resolve_index_version",
    "tarball_url",
]

_LOGGER = logging.getLogger(__name__)

LATEST = "latest"

_WILDCARDS = {"*", "x", "X"}
_OPERATOR_SPACING = re.compile(r"(>=|<=|=>|=<|!=|~>|>|<|=|~|\^)\s+")
_HYPHEN_RANGE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_COMPARATOR = re.compile(r"^(>=|<=|=>|=<|!=|~>|>|<|=|~|\^)?v?(.+)$")
_PARTIAL = re.compile(
    r"^(\*|x|X|\d+)(?:\.(\*|x|X|\d+))?(?:\.(\*|x|X|\d+))?"
    r"(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)

Predicate = Callable[[Version], bool]


def is_valid_version(version: str | None) -> bool:
    """Return True if the string is an exact semantic version."""
    if not version:
        return False
    return Version.is_valid(version)


def _parse_version(value: str) -> Version | None:
    """Parse a published version, tolerating a `v` prefix and partial versions."""
    value = value.strip()
    if value.startswith("v"):
        value = value[1:]
    try:
        return Version.parse(value, optional_minor_and_patch=True)
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True)
class _Partial:
    """A possibly incomplete version from a constraint, e.g. `1.2` or `1.x`."""

    major: int | None
    minor: int | None
    patch: int | None
    prerelease: str | None

    @classmethod
    def parse(cls, value: str) -> "_Partial":
        if not (match := _PARTIAL.match(value)):
            raise ValueError(f"Invalid version in constraint: {value!r}")
        numbers: list[int | None] = []
        for part in match.group(1, 2, 3):
            if part is None or part in _WILDCARDS or (numbers and numbers[-1] is None):
                numbers.append(None)
            else:
                numbers.append(int(part))
        return cls(numbers[0], numbers[1], numbers[2], match.group(4))

    @property
    def is_full(self) -> bool:
        return self.patch is not None

    @property
    def floor(self) -> Version:
        """Lowest version described."""
        return Version(
            self.major or 0, self.minor or 0, self.patch or 0, self.prerelease
        )

    @property
    def ceiling(self) -> Version | None:
        """Exclusive upper bound of a partial version, None for exact versions."""
        if self.major is None:
            return None
        if self.minor is None:
            return Version(self.major + 1)
        if self.patch is None:
            return Version(self.major, self.minor + 1)
        return None


def _equals(partial: _Partial) -> Predicate:
    if partial.major is None:
        return lambda v: True
    if partial.is_full:
        return lambda v: v == partial.floor
    floor, ceiling = partial.floor, partial.ceiling
    return lambda v: floor <= v < ceiling  # type: ignore[operator]


def _tilde(partial: _Partial) -> Predicate:
    if partial.major is None:
        return lambda v: True
    floor = partial.floor
    if partial.minor is None:
        ceiling = Version(partial.major + 1)
    else:
        ceiling = Version(partial.major, partial.minor + 1)
    return lambda v: floor <= v < ceiling


def _caret(partial: _Partial) -> Predicate:
    if partial.major is None:
        return lambda v: True
    floor = partial.floor
    if partial.major > 0 or partial.minor is None:
        ceiling = Version(partial.major + 1)
    elif partial.minor > 0 or partial.patch is None:
        ceiling = Version(0, partial.minor + 1)
    else:
        ceiling = Version(0, 0, partial.patch + 1)
    return lambda v: floor <= v < ceiling


def _comparator(expr: str) -> Predicate:
    """Build a predicate for a single comparator such as `>=1.2` or `^1.0.0`."""
    if not (match := _COMPARATOR.match(expr)):
        raise ValueError(f"Invalid constraint: {expr!r}")
    op, partial = match.group(1) or "=", _Partial.parse(match.group(2))
    floor, ceiling = partial.floor, partial.ceiling
    if op == "=":
        return _equals(partial)
    if op == "!=":
        matches = _equals(partial)
        return lambda v: not matches(v)
    if op in ("~", "~>"):
        return _tilde(partial)
    if op == "^":
        return _caret(partial)
    if op in (">=", "=>"):
        return lambda v: v >= floor
    if op == "<":
        return lambda v: v < floor
    if op == ">":
        if partial.major is None:
            return lambda v: False
        if ceiling is None:
            return lambda v: v > floor
        return lambda v: v >= ceiling
    # <= and =<
    if partial.major is None:
        return lambda v: True
    if ceiling is None:
        return lambda v: v <= floor
    return lambda v: v < ceiling


@dataclass(frozen=True)
class _Alternative:
    """A set of comparators that must all match."""

    predicates: tuple[Predicate, ...]
    allows_prerelease: bool

    def matches(self, version: Version) -> bool:
        if version.prerelease and not self.allows_prerelease:
            return False
        return all(predicate(version) for predicate in self.predicates)


def _parse_alternative(expr: str) -> _Alternative:
    if hyphen := _HYPHEN_RANGE.match(expr):
        low, high = _Partial.parse(hyphen.group(1)), _Partial.parse(hyphen.group(2))
        upper = (
            _comparator(f"<={hyphen.group(2)}")
            if high.is_full
            else _comparator(f"<{high.ceiling}")
        )
        return _Alternative(
            (_comparator(f">={hyphen.group(1)}"), upper),
            bool(low.prerelease or high.prerelease),
        )
    expr = _OPERATOR_SPACING.sub(r"\1", expr.strip())
    terms = [term for term in re.split(r"[,\s]+", expr) if term]
    if not terms:
        terms = ["*"]
    predicates = []
    allows_prerelease = False
    for term in terms:
        predicates.append(_comparator(term))
        allows_prerelease |= "-" in term
    return _Alternative(tuple(predicates), allows_prerelease)


def resolve_semver(constraint: str, versions: Iterable[str]) -> str:
    """Return the highest version satisfying the constraint."""
    if not constraint or constraint.strip() == LATEST:
        constraint = "*"
    try:
        alternatives = [_parse_alternative(expr) for expr in constraint.split("||")]
    except ValueError as err:
        _LOGGER.debug("Unable to parse version constraint %r: %s", constraint, err)
        raise NoMatchingVersionError(constraint) from err

    best: tuple[Version, str] | None = None
    for value in versions:
        if (parsed := _parse_version(value)) is None:
            _LOGGER.debug("Ignoring unparsable version %r", value)
            continue
        if not any(alt.matches(parsed) for alt in alternatives):
            continue
        if best is None or parsed > best[0]:
            best = (parsed, value)
    if best is None:
        raise NoMatchingVersionError(constraint)
    return best[1]


def resolve_version(entries: list[IndexEntry], version: str) -> str:
    """Resolve a requested version against the published entries of a chart."""
    if is_valid_version(version):
        return version
    return resolve_semver(version, [entry.version for entry in entries])


def resolve_index_version(index: Index, repo: str, chart: str, version: str) -> str:
    """Resolve a requested version of a chart listed in a repository index."""
    if (entries := index.entries.get(chart)) is None:
        raise ChartNotFoundError(repo, chart)
    try:
        resolved = resolve_version(entries, version)
    except NoMatchingVersionError as err:
        raise NoMatchingVersionError(version, chart) from err
    _LOGGER.debug("Resolved %s version %r to %s", chart, version, resolved)
    return resolved


def tarball_url(index: Index, repo: str, chart: str, version: str) -> str:
    """Return the archive URL of a chart version listed in the index."""
    if (entries := index.entries.get(chart)) is None:
        raise ChartNotFoundError(repo, chart)
    for entry in entries:
        if entry.version != version:
            continue
        if not entry.urls:
            raise NoURLForVersionError(repo, chart, version)
        return join_url(repo, entry.urls[0])
    raise NoMatchingVersionError(version, chart)
