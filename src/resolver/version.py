"""
Synology Update Checker - Version Keys
Parses and totally orders DSM/BSM and package version identifiers.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import Optional

logger = logging.getLogger(__name__)


class Ordering(Enum):
    """Result of comparing two version keys."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


@total_ordering
@dataclass(frozen=True)
class VersionKey:
    """
    Normalized version identifier.

    A valid key is the 5-tuple (major, minor, micro, build, smallfix).
    An invalid key carries no fields and sorts below every valid key.
    The raw text is kept for display only and takes no part in equality.
    """
    fields: Optional[tuple] = None
    raw: str = field(default="", compare=False)

    @property
    def is_valid(self) -> bool:
        return self.fields is not None

    @property
    def major(self) -> int:
        return self.fields[0] if self.fields else 0

    def _sort_key(self) -> tuple:
        if self.fields is None:
            return (0,)
        return (1,) + self.fields

    def __lt__(self, other):
        if not isinstance(other, VersionKey):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return self.raw or normalize_key(self)


INVALID = VersionKey(None, "")


def _parse_int(part: str) -> Optional[int]:
    if not part or not part.isdigit():
        return None
    return int(part)


def parse(version: Optional[str]) -> VersionKey:
    """
    Parse a version string into a VersionKey.

    Handles formats like:
    - 7.2.1-69057-5     (DSM with smallfix)
    - 10.11.11-1551     (smallfix omitted, treated as 0)
    - 2.1-0123          (micro omitted)
    - v1.2.3

    Malformed input returns INVALID instead of raising.
    """
    if version is None:
        return INVALID

    text = version.strip()
    if text.lower().startswith("v"):
        text = text[1:]
    if not text:
        return INVALID

    release, _, rest = text.partition("-")
    release_parts = release.split(".")
    extra_parts = rest.split("-") if rest else []

    if len(release_parts) > 3 or len(extra_parts) > 2:
        logger.debug(f"Too many version fields in {version!r}")
        return VersionKey(None, version)

    numbers = []
    for part in release_parts + extra_parts:
        value = _parse_int(part)
        if value is None:
            logger.debug(f"Non-numeric version field {part!r} in {version!r}")
            return VersionKey(None, version)
        numbers.append(value)

    release_numbers = numbers[:len(release_parts)]
    release_numbers += [0] * (3 - len(release_numbers))
    extra_numbers = numbers[len(release_parts):]
    extra_numbers += [0] * (2 - len(extra_numbers))

    return VersionKey(tuple(release_numbers + extra_numbers), version.strip())


def compare(a: VersionKey, b: VersionKey) -> Ordering:
    """Compare two keys field by field, invalid keys first."""
    if a < b:
        return Ordering.LESS
    if b < a:
        return Ordering.GREATER
    return Ordering.EQUAL


def normalize_key(key: VersionKey) -> str:
    if not key.is_valid:
        return "invalid"
    major, minor, micro, build, smallfix = key.fields
    return f"{major}.{minor}.{micro}-{build}-{smallfix}"


def normalize(version: Optional[str]) -> str:
    """
    Re-serialize a version string in canonical form.

    normalize("10.11.11-1551") == "10.11.11-1551-0", and applying
    normalize to its own output returns it unchanged.
    """
    return normalize_key(parse(version))


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Returns:
        1 if v1 > v2, -1 if v1 < v2, 0 if equal
    """
    return compare(parse(v1), parse(v2)).value


def is_newer(new_version: VersionKey, current_version: VersionKey) -> bool:
    """Check if new_version is a valid key strictly newer than current_version."""
    return new_version.is_valid and new_version > current_version
