"""The repository description and reading the packages in it."""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Callable, Iterable

from repoctl import aur
from repoctl import database as _database
from repoctl import readdir as _readdir
from repoctl.aur import AurPackage
from repoctl.config import Configuration
from repoctl.errors import (
    InvalidFileError,
    NotExistsError,
    ProfileInvalidError,
    RepoDirMissingError,
    RepoDirRelativeError,
)
from repoctl.meta import MetaPackage
from repoctl.meta import read_meta as _read_meta
from repoctl.package import Package
from repoctl.pkgutil import Filter, filter_packages, name_filter
from repoctl.readdir import ErrorHandler
from repoctl.readpkg import PackageReadError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedPkg:
    """A package file and, if present, its signature file."""

    pkg_file: str
    sig_file: str = ""

    @classmethod
    def from_path(cls, path: str) -> SignedPkg:
        """Describe the package at path; raise NotExistsError if it is missing."""
        if not os.path.isfile(path):
            raise NotExistsError(path)
        sig = path + ".sig"
        return cls(path, sig if os.path.isfile(sig) else "")

    def path_set(self) -> str:
        """Return the package path, in brace form if a signature is present."""
        if self.has_signature():
            return self.pkg_file + "{,.sig}"
        return self.pkg_file

    def name_set(self) -> str:
        """Return the base name form of path_set()."""
        return posixpath.basename(self.path_set())

    def has_signature(self) -> bool:
        return self.sig_file != ""

    def apply(self, f: Callable[[str, bool], object]) -> None:
        """Call f on the package path, then on the signature path if there is one."""
        f(self.pkg_file, False)
        if self.has_signature():
            f(self.sig_file, True)


@dataclass
class RepoBase:
    """A repository: a directory of package files and a database in it."""

    directory: str
    database: str
    require_signature: bool = False
    backup: bool = False
    backup_dir: str = "backup"
    ignore_aur: list[str] = field(default_factory=list)
    add_parameters: list[str] = field(default_factory=list)
    remove_parameters: list[str] = field(default_factory=list)

    @classmethod
    def from_path(cls, repo: str):
        """Return a repository for the database at repo, or None if repo is relative."""
        if not posixpath.isabs(repo):
            return None
        return cls(directory=posixpath.dirname(repo), database=posixpath.basename(repo))

    @classmethod
    def from_conf(cls, conf: Configuration):
        """Return a repository described by the selected profile of conf."""
        p, _ = conf.select_profile()
        if p is None:
            raise ProfileInvalidError()
        r = cls.from_path(p.repository)
        if r is None:
            raise RepoDirRelativeError()
        r.backup = p.backup
        r.backup_dir = p.backup_dir
        r.ignore_aur = p.ignore_aur
        r.add_parameters = p.add_parameters
        r.remove_parameters = p.remove_parameters
        r.require_signature = p.require_signature
        return r

    def name(self) -> str:
        """Return the repository name: the database name up to the first period."""
        return posixpath.basename(self.database).partition(".")[0]

    def database_path(self) -> str:
        """Return the full path to the database."""
        return posixpath.normpath(posixpath.join(self.directory, self.database))

    def ignore_filter(self) -> Filter:
        """Return a filter that drops packages ignored for AUR tasks."""
        return ~name_filter(self.ignore_aur)

    def ignore_set(self) -> set[str]:
        """Return the names of packages ignored for AUR tasks."""
        return set(self.ignore_aur)

    def assert_setup(self) -> None:
        """Raise unless the repository directory is absolute and exists."""
        if not posixpath.isabs(self.directory):
            raise RepoDirRelativeError()
        if not os.path.exists(self.directory):
            raise RepoDirMissingError()
        if not os.path.isdir(self.directory):
            raise InvalidFileError(self.directory, want_dir=True)

    def setup(self) -> None:
        """Create the repository directory if it is missing."""
        try:
            self.assert_setup()
        except RepoDirMissingError:
            os.makedirs(self.directory, exist_ok=True)

    def read_database(self) -> list[Package]:
        """Read the repository database; a missing database gives no packages."""
        dbpath = self.database_path()
        if not os.path.isfile(dbpath):
            return []
        pkgs = _database.read_database(dbpath)
        self.make_abs(pkgs)
        return pkgs

    def read_dir(self, on_error: ErrorHandler | None = None) -> list[Package]:
        """Read all packages in the repository directory."""
        pkgs = _readdir.read_dir(self.directory, self.database_path(), on_error)
        self.make_abs(pkgs)
        return pkgs

    def read_names(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[Package]:
        """Read the package files with the given names; all of them if none are given."""
        names = list(pkgnames)
        if not names:
            return self.read_dir(on_error)
        pkgs = _readdir.read_names(self.directory, names, on_error)
        self.make_abs(pkgs)
        return pkgs

    def read_meta(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[MetaPackage]:
        """Read meta packages with the given names; all of them if none are given."""
        pkgs = _read_meta(self.directory, self.database_path(), on_error)
        names = list(pkgnames)
        if not names:
            return pkgs
        return filter_packages(pkgs, name_filter(names))

    def only_names(self, on_error: ErrorHandler | None = None) -> list[str]:
        """Return every package name in database or directory, sorted."""
        try:
            db_pkgs = self.read_database()
        except (OSError, PackageReadError) as exc:
            if on_error is None:
                raise
            on_error(exc)
            db_pkgs = []
        file_pkgs = self.read_dir(on_error)
        return sorted({p.name for p in db_pkgs} | {p.name for p in file_pkgs})

    def read_aur(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[AurPackage]:
        """Read the given names from the AUR; all repository names if none are given."""
        names = list(pkgnames)
        if not names:
            names = self.only_names(on_error)
        return aur.read_all(names)

    def make_abs(self, pkgs: Iterable[Package]) -> None:
        """Set every package filename to its path inside the repository directory."""
        for p in pkgs:
            path = posixpath.join(self.directory, posixpath.basename(p.filename))
            if p.filename != path:
                log.debug("Note: package filename data incorrect: %s", p.filename)
            p.filename = path