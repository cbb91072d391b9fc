"""Centralised version and naming information for the signage player.

Runtime code and the packaging metadata read the version from here so the
strings are not duplicated across the codebase.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


APP_NAME: str = "DaySignage"
APP_EXE_NAME: str = "day-signage"
APP_VERSION: str = "1.0.0"
APP_DESCRIPTION: str = "Day-aware crossfading signage player for images and short video clips."
APP_ORGANIZATION: str = "DaySignage"


@dataclass(frozen=True)
class VersionInfo:
    major: int
    minor: int
    patch: int

    def to_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)


def parse_version(version_str: str = APP_VERSION) -> VersionInfo:
    """Parse a ``MAJOR.MINOR.PATCH`` version string.

    Missing parts count as 0; anything unparsable gives ``0.0.0``.
    """
    try:
        parts = [int(p) for p in str(version_str).split(".")[:3]]
    except ValueError:
        return VersionInfo(0, 0, 0)
    while len(parts) < 3:
        parts.append(0)
    return VersionInfo(parts[0], parts[1], parts[2])


__all__ = [
    "APP_NAME",
    "APP_EXE_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "APP_ORGANIZATION",
    "VersionInfo",
    "parse_version",
]
