"""Package and database file formats, and pacman-compatible version comparison."""

from __future__ import annotations

import re

PACKAGE_GLOB = "-*.pkg.tar*"
"""A glob that should only find package files."""

PACKAGE_REGEX = r"^([a-zA-Z.0-9_+-]+)-(\d.*-\d+)-(.*)\.pkg\.tar\..*$"
"""Matches most well-named package files.

Group 1 is the name, group 2 the version-release and group 3 the arch.
"""

PACKAGE_EXTENSIONS = (
    "pkg.tar",
    "pkg.tar.zst",
    "pkg.tar.xz",
    "pkg.tar.gz",
    "pkg.tar.bz2",
)

DATABASE_EXTENSIONS = (
    "db.tar",
    "db.tar.zst",
    "db.tar.xz",
    "db.tar.gz",
    "db.tar.bz2",
)

_EPOCH = re.compile(r"^([0-9]*):")
_RELEASE = re.compile(r"-([0-9]*)$")
_SEPARATORS = re.compile(r"[._+]")
_SECTION = re.compile(r"[0-9]+|.[a-z]*", re.DOTALL)


def has_database_format(filename: str) -> bool:
    """Return True if filename has a supported repository database extension."""
    return any(filename.endswith("." + ext) for ext in DATABASE_EXTENSIONS)


def has_package_format(filename: str) -> bool:
    """Return True if filename has a supported package file extension."""
    return any(filename.endswith("." + ext) for ext in PACKAGE_EXTENSIONS)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _to_int(digits: str) -> int:
    return int(digits) if digits else 0


def _split_evr(version: str) -> tuple[int, str, int]:
    """Split ``[epoch:]version[-release]``; a missing release is -1."""
    epoch, start = 0, 0
    m = _EPOCH.match(version)
    if m:
        epoch = _to_int(m.group(1))
        start = m.end()

    release, end = -1, len(version)
    m = _RELEASE.search(version)
    if m:
        release = _to_int(m.group(1))
        end = m.start()

    return epoch, version[start:end], release


def _compare_part(p1: str, p2: str) -> int:
    if p1 == p2:
        return 0

    t1 = _SECTION.findall(p1)
    t2 = _SECTION.findall(p2)
    for s1, s2 in zip(t1, t2):
        num1 = s1[0].isascii() and s1[0].isdigit()
        num2 = s2[0].isascii() and s2[0].isdigit()
        if num1 != num2:
            return 1 if num1 else -1
        c = _cmp(int(s1), int(s2)) if num1 else _cmp(s1, s2)
        if c:
            return c

    # The part that is longer is considered less mature, e.g. 1.0rc1 < 1.0.
    k = min(len(t1), len(t2))
    rest1 = sum(len(s) for s in t1[k:])
    rest2 = sum(len(s) for s in t2[k:])
    return _cmp(rest2, rest1)


def _compare_versions(v1: str, v2: str) -> int:
    parts1 = [p for p in _SEPARATORS.split(v1) if p]
    parts2 = [p for p in _SEPARATORS.split(v2) if p]
    for a, b in zip(parts1, parts2):
        c = _compare_part(a, b)
        if c:
            return c
    return _cmp(len(parts1), len(parts2))


def vercmp(a: str, b: str) -> int:
    """Compare two version strings like pacman's vercmp.

    Returns -1 if a < b, 0 if they are equal and 1 if a > b. The release
    is only compared when both versions carry one.
    """
    if a == b:
        return 0
    if a == "":
        return -1
    if b == "":
        return 1

    e1, v1, r1 = _split_evr(a.lower())
    e2, v2, r2 = _split_evr(b.lower())

    if e1 != e2:
        return _cmp(e1, e2)

    c = _compare_versions(v1, v2)
    if c == 0 and r1 != r2:
        if r1 < 0 or r2 < 0:
            return 0
        return _cmp(r1, r2)
    return c