"""The package data type and version ordering helpers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, Protocol

from repoctl.alpm import vercmp


class AnyPackage(Protocol):
    """Anything that can present itself as a package."""

    def pkg(self) -> "Package | None": ...

    def pkg_name(self) -> str: ...

    def pkg_version(self) -> str: ...

    def pkg_depends(self) -> list[str]: ...

    def pkg_make_depends(self) -> list[str]: ...


class PackageOrigin(enum.IntEnum):
    """Where a package's information was read from."""

    UNKNOWN = 0
    FILE = 1
    DATABASE = 2
    LOCAL = 3
    AUR = 4


@dataclass(eq=False)
class Package:
    """All information about a pacman package, including its filename."""

    filename: str = ""
    origin: PackageOrigin = PackageOrigin.UNKNOWN

    name: str = ""
    version: str = ""
    description: str = ""
    base: str = ""
    url: str = ""
    build_date: datetime | None = None
    packager: str = ""
    size: int = 0
    arch: str = ""
    license: str = ""
    backups: list[str] = field(default_factory=list)
    replaces: list[str] = field(default_factory=list)
    provides: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=list)
    depends: list[str] = field(default_factory=list)
    optional_depends: list[str] = field(default_factory=list)
    make_depends: list[str] = field(default_factory=list)
    check_depends: list[str] = field(default_factory=list)
    make_options: list[str] = field(default_factory=list)

    _SCALARS = (
        "filename", "origin", "name", "version", "description", "base",
        "url", "build_date", "packager", "size", "arch", "license",
    )
    _SETS = (
        "backups", "replaces", "provides", "conflicts", "groups", "depends",
        "optional_depends", "make_depends", "check_depends", "make_options",
    )

    def pkg(self) -> Package:
        return self

    def pkg_name(self) -> str:
        return self.name

    def pkg_version(self) -> str:
        return self.version

    def pkg_depends(self) -> list[str]:
        return self.depends

    def pkg_make_depends(self) -> list[str]:
        return self.make_depends

    def equals(self, other: Package) -> bool:
        """Compare all fields; list fields are compared as sets."""
        if self is other:
            return True
        if any(getattr(self, f) != getattr(other, f) for f in self._SCALARS):
            return False
        return all(set(getattr(self, f)) == set(getattr(other, f)) for f in self._SETS)

    def older(self, alt: Package | None) -> bool:
        """Return True if this version is older than alt's; False if alt is None."""
        if alt is None:
            return False
        return vercmp(self.version, alt.version) == -1

    def newer(self, alt: Package | None) -> bool:
        """Return True if this version is newer than alt's; True if alt is None."""
        if alt is None:
            return True
        return vercmp(self.version, alt.version) == 1


def pkg_older(a: AnyPackage, b: AnyPackage | None) -> bool:
    """Return True if a's version is older than b's; False if b is None."""
    if b is None:
        return False
    return vercmp(a.pkg_version(), b.pkg_version()) == -1


def pkg_newer(a: AnyPackage, b: AnyPackage | None) -> bool:
    """Return True if a's version is newer than b's; True if b is None."""
    if b is None:
        return True
    return vercmp(a.pkg_version(), b.pkg_version()) == 1


def _compare(a: AnyPackage, b: AnyPackage) -> int:
    if a.pkg_name() != b.pkg_name():
        return -1 if a.pkg_name() < b.pkg_name() else 1
    return vercmp(a.pkg_version(), b.pkg_version())


def sort_packages(pkgs: Iterable[AnyPackage], reverse: bool = False) -> list:
    """Return packages ordered by name, then by version."""
    return sorted(pkgs, key=cmp_to_key(_compare), reverse=reverse)


def packages_by_name(pkgs: Iterable[Package]) -> dict[str, Package]:
    """Map package names to packages; later packages win."""
    return {p.name: p for p in pkgs}