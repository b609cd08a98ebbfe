# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Version parsing and requirement matching for component dependencies.

Requirement strings follow the conventions used in ``diversity.json`` files:

* ``*`` or an empty string accepts every version.
* ``1.2.3`` accepts exactly that version, ``1.2`` and ``1`` accept any version
  sharing those leading segments.
* ``>=1.2``, ``>1.2``, ``<=2``, ``<2``, ``=1.0``, ``==1.0`` and ``!=1.0`` are
  plain comparisons; several clauses may be joined with commas.
* ``~>1.2`` is the pessimistic operator (``>=1.2, <2``) and ``~1.2.3`` the
  npm tilde (``>=1.2.3, <1.3``).
* ``^X.Y.Z`` is the caret range: below ``0.1.0`` only the exact version is
  accepted, below ``1.0.0`` the minor series ``X.Y`` is accepted, otherwise
  the major series ``X`` starting at ``X.Y``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Final

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .errors import InvalidRequirement

_CLAUSE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\s*(~>|>=|<=|==|!=|=|>|<|\^|~)?\s*(.*?)\s*$")
_NON_NUMERIC: Final[re.Pattern[str]] = re.compile(r"[^\d.]")
_WILDCARDS: Final[frozenset[str]] = frozenset({"*", "x", "X"})
_ANY: Final[str] = "*"
_MINOR_FLOOR: Final[Version] = Version("0.1.0")
_MAJOR_FLOOR: Final[Version] = Version("1.0.0")
_EXACT_SEGMENTS: Final[int] = 3


def parse_version(text: str | Version) -> Version:
    """Return ``text`` parsed as a :class:`~packaging.version.Version`.

    Args:
        text: Version string or an already parsed version.

    Returns:
        Version: Parsed version instance.

    Raises:
        InvalidVersion: If ``text`` is not a valid version string.
    """

    if isinstance(text, Version):
        return text
    return Version(str(text).strip())


def coerce_version(text: str) -> Version | None:
    """Return ``text`` parsed as a version, or ``None`` when malformed."""

    try:
        return parse_version(text)
    except InvalidVersion:
        return None


def _bump(version: Version) -> str:
    """Return the exclusive upper bound used by the pessimistic operator."""

    segments = list(version.release)
    if len(segments) > 1:
        segments = segments[:-1]
    segments[-1] += 1
    return ".".join(str(segment) for segment in segments)


def _caret_clauses(body: str, raw: str) -> list[str]:
    try:
        version = Version(body)
    except InvalidVersion:
        stripped = _NON_NUMERIC.sub("", body).strip(".")
        try:
            version = Version(stripped)
        except InvalidVersion as exc:
            raise InvalidRequirement(raw) from exc
    if version < _MINOR_FLOOR:
        return [f"=={version}"]
    major, minor = (list(version.release) + [0, 0])[:2]
    if version < _MAJOR_FLOOR:
        return [f">={version}", f"<{major}.{minor + 1}"]
    return [f">={major}.{minor}", f"<{major + 1}"]


def _bare_clauses(body: str) -> list[str]:
    segments = body.split(".")
    if any(segment in _WILDCARDS for segment in segments):
        prefix = segments[: next(index for index, segment in enumerate(segments) if segment in _WILDCARDS)]
        return [f"=={'.'.join(prefix)}.*"] if prefix else []
    version = Version(body)
    if len(version.release) >= _EXACT_SEGMENTS or version.pre or version.dev or version.post:
        return [f"=={version}"]
    return [f"=={version}.*"]


def _clause_to_specifiers(clause: str, raw: str) -> list[str]:
    match = _CLAUSE_PATTERN.match(clause)
    if match is None:  # pragma: no cover - the pattern accepts every string
        raise InvalidRequirement(raw)
    operator, body = match.group(1), match.group(2)
    if not body or body == _ANY:
        if operator in (None, ">=", "^", "~", "~>"):
            return []
        raise InvalidRequirement(raw)
    if operator == "^":
        return _caret_clauses(body, raw)
    try:
        if operator is None:
            return _bare_clauses(body)
        version = Version(body)
    except InvalidVersion as exc:
        raise InvalidRequirement(raw) from exc
    if operator in ("~>", "~"):
        if operator == "~" and len(version.release) < _EXACT_SEGMENTS:
            return [f">={version}", f"<{_bump(Version(f'{version}.0'))}"]
        return [f">={version}", f"<{_bump(version)}"]
    if operator == "=":
        return [f"=={version}"]
    return [f"{operator}{version}"]


@dataclass(frozen=True, slots=True)
class VersionRequirement:
    """Predicate over versions parsed from a requirement string.

    Attributes:
        raw: Requirement as written by the component author.
        specifier: Normalised :class:`SpecifierSet`; empty when every version matches.
    """

    raw: str
    specifier: SpecifierSet = field(compare=False)

    @classmethod
    def parse(cls, requirement: str | None) -> VersionRequirement:
        """Parse ``requirement`` into a :class:`VersionRequirement`.

        Args:
            requirement: Requirement string; ``None`` or ``*`` accept every version.

        Returns:
            VersionRequirement: Parsed requirement.

        Raises:
            InvalidRequirement: If the requirement cannot be parsed.
        """

        raw = "" if requirement is None else str(requirement).strip()
        specifiers: list[str] = []
        for clause in raw.split(","):
            if clause.strip():
                specifiers.extend(_clause_to_specifiers(clause, raw))
        try:
            specifier = SpecifierSet(",".join(specifiers), prereleases=True)
        except InvalidSpecifier as exc:
            raise InvalidRequirement(raw) from exc
        return cls(raw=raw or _ANY, specifier=specifier)

    @classmethod
    def any(cls) -> VersionRequirement:
        """Return a requirement accepting every version."""

        return cls(raw=_ANY, specifier=SpecifierSet("", prereleases=True))

    @classmethod
    def exact(cls, version: Version | str) -> VersionRequirement:
        """Return a requirement accepting exactly ``version``."""

        parsed = parse_version(version)
        return cls(raw=f"={parsed}", specifier=SpecifierSet(f"=={parsed}", prereleases=True))

    @property
    def normalized(self) -> str:
        """Return the normalised specifier string (``*`` when unconstrained)."""

        text = str(self.specifier)
        return text or _ANY

    @property
    def is_any(self) -> bool:
        """Return ``True`` when the requirement accepts every version."""

        return not len(self.specifier)

    def satisfied_by(self, version: Version | str) -> bool:
        """Return ``True`` when ``version`` satisfies the requirement.

        Args:
            version: Candidate version.

        Returns:
            bool: Whether the candidate is accepted.
        """

        try:
            candidate = parse_version(version)
        except InvalidVersion:
            return False
        return self.specifier.contains(candidate, prereleases=True)

    def filter(self, versions: Iterable[Version]) -> list[Version]:
        """Return ``versions`` satisfying the requirement, newest first."""

        return sorted((version for version in versions if self.satisfied_by(version)), reverse=True)

    def best_match(self, versions: Iterable[Version]) -> Version | None:
        """Return the highest version in ``versions`` satisfying the requirement."""

        matches = self.filter(versions)
        return matches[0] if matches else None

    def __str__(self) -> str:
        return self.raw


RequirementLike = VersionRequirement | Version | str | None


def as_requirement(value: RequirementLike) -> VersionRequirement:
    """Coerce ``value`` into a :class:`VersionRequirement`.

    A :class:`Version` instance matches only itself, strings are parsed and
    ``None`` accepts every version.

    Args:
        value: Requirement-like value supplied by a caller.

    Returns:
        VersionRequirement: Normalised requirement.

    Raises:
        InvalidRequirement: If ``value`` is a malformed string.
    """

    if isinstance(value, VersionRequirement):
        return value
    if isinstance(value, Version):
        return VersionRequirement.exact(value)
    return VersionRequirement.parse(value)


__all__ = [
    "RequirementLike",
    "VersionRequirement",
    "as_requirement",
    "coerce_version",
    "parse_version",
]
