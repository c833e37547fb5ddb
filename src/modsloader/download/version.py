"""
Version Comparison for the mods-loader Download Subsystem

Mod artifacts carry plain dotted numeric versions ("1.2", "1.2.0.5").
Versions are compared segment by segment after padding the shorter one with
trailing zeros, so "1.2" equals "1.2.0" and "1.10" sorts above "1.9".
"""

import re
from itertools import zip_longest
from typing import Optional, Tuple

from modsloader.exceptions import VersionError

_DOTTED_NUMERIC_RX = re.compile(r"^\d+(?:\.\d+)*$")


def parse_version_segments(version: Optional[str]) -> Tuple[int, ...]:
    """
    Split a dotted numeric version into integer segments.

    An empty or missing version yields an empty tuple, which compares equal to
    any all-zero version and below everything else.

    Raises:
        VersionError: If any segment is not a non-negative integer.
    """
    if version is None:
        return ()
    trimmed = version.strip()
    if not trimmed:
        return ()
    if not _DOTTED_NUMERIC_RX.match(trimmed):
        raise VersionError("Version is not dotted numeric", version=version)
    return tuple(int(part) for part in trimmed.split("."))


def compare_versions(version1: Optional[str], version2: Optional[str]) -> int:
    """
    Compare two dotted numeric version strings.

    Args:
        version1: First version string to compare
        version2: Second version string to compare

    Returns:
        int: 1 if version1 > version2, 0 if equal, -1 if version1 < version2

    Raises:
        VersionError: If either version has a non-numeric segment.
    """
    parts1 = parse_version_segments(version1)
    parts2 = parse_version_segments(version2)

    for a, b in zip_longest(parts1, parts2, fillvalue=0):
        if a > b:
            return 1
        if a < b:
            return -1
    return 0
