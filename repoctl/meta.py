"""Packages as seen across the filesystem, the database and the AUR."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from repoctl import aur
from repoctl.alpm import has_database_format, vercmp
from repoctl.aur import AurPackage
from repoctl.database import read_database
from repoctl.package import Package, sort_packages
from repoctl.readdir import ErrorHandler, read_dir
from repoctl.readpkg import PackageReadError


class MultipleDatabaseError(Exception):
    """Raised when a directory holds more than one repository database."""

    def __init__(self, message: str = "multiple database files found"):
        super().__init__(message)


@dataclass(eq=False)
class MetaPackage:
    """One package name with its files, database entry and AUR information.

    ``files`` is sorted so that the newest version comes first.
    """

    name: str
    files: list[Package] = field(default_factory=list)
    database: Package | None = None
    aur: AurPackage | None = None

    def pkg(self) -> Package | None:
        """Return the newest file, or the database entry if there are no files."""
        if not self.files:
            return self.database
        return self.files[0]

    def pkg_name(self) -> str:
        return self.name

    def pkg_version(self) -> str:
        return self.version()

    def pkg_depends(self) -> list[str]:
        p = self.pkg()
        return p.depends if p is not None else []

    def pkg_make_depends(self) -> list[str]:
        p = self.pkg()
        return p.make_depends if p is not None else []

    def version(self) -> str:
        """Return the version of the newest available package, or ""."""
        p = self.pkg()
        return p.version if p is not None else ""

    def version_registered(self) -> str:
        """Return the version registered in the database, or ""."""
        return self.database.version if self.database is not None else ""

    def is_synced(self) -> bool:
        if self.has_pending():
            return False
        return self.has_upgrade()

    def has_obsolete(self) -> bool:
        """Return True if there are obsolete files to be removed."""
        return len(self.files) > 1

    def has_pending(self) -> bool:
        """Return True if filesystem or database changes are pending."""
        if self.database is None or len(self.files) != 1:
            return True
        p = self.files[0]
        if p.filename != self.database.filename:
            return True
        return vercmp(p.version, self.database.version) != 0

    def has_files(self) -> bool:
        return bool(self.files)

    def is_registered(self) -> bool:
        """Return True if the database entry refers to one of the files."""
        if self.database is None:
            return False
        return any(p.filename == self.database.filename for p in self.files)

    def has_update(self) -> bool:
        """Return True if a newer file has not been added to the database."""
        if not self.files:
            return False
        return not self.is_registered() or self.files[0].newer(self.database)

    def has_upgrade(self) -> bool:
        """Return True if the AUR has a newer version than file or database."""
        if self.aur is None:
            return False
        return vercmp(self.aur.version, self.version()) > 0

    def obsolete(self) -> list[Package]:
        """Return all files but the newest."""
        return self.files[1:] if self.has_obsolete() else []


def read_meta(
    dirpath: str, dbpath: str = "", on_error: ErrorHandler | None = None
) -> list[MetaPackage]:
    """Read the packages in dirpath together with the database at dbpath.

    An empty dbpath reads no database; an unreadable database is passed to
    on_error (if given) and otherwise ignored. The result is sorted by name.
    """
    metas: dict[str, MetaPackage] = {}
    if dbpath:
        try:
            db_pkgs = read_database(dbpath)
        except PackageReadError as exc:
            if on_error is not None:
                on_error(exc)
        else:
            for p in db_pkgs:
                metas[p.name] = MetaPackage(p.name, database=p)

    for p in read_dir(dirpath, dbpath, on_error):
        metas.setdefault(p.name, MetaPackage(p.name)).files.append(p)

    for mp in metas.values():
        mp.files = sort_packages(mp.files, reverse=True)
    return sorted(metas.values(), key=lambda mp: mp.name)


def read_repo(dirpath: str, on_error: ErrorHandler | None = None) -> list[MetaPackage]:
    """Find the database in dirpath and read the repository there.

    Raises MultipleDatabaseError if there is more than one database.
    """
    dirpath = os.path.normpath(dirpath)
    dbpath = ""
    try:
        with os.scandir(dirpath) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        if on_error is None:
            raise
        on_error(exc)
        entries = []

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            continue
        if has_database_format(entry.name):
            if dbpath:
                raise MultipleDatabaseError()
            dbpath = entry.path

    return read_meta(dirpath, dbpath, on_error)


def read_aur(pkgs: list[MetaPackage]) -> list[str]:
    """Fill in the AUR information of each package.

    Returns the names that the AUR does not know; other errors are raised.
    """
    missing: list[str] = []
    try:
        found = aur.read_all(p.name for p in pkgs)
    except aur.NotFoundError as exc:
        found = exc.packages
        missing = exc.names
    by_name = {ap.name: ap for ap in found}
    for p in pkgs:
        p.aur = by_name.get(p.name)
    return missing