"""Managing a repository: finding, listing, adding and removing packages."""

from __future__ import annotations

import filecmp
import functools
import logging
import os
import posixpath
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import requests

from repoctl.alpm import vercmp
from repoctl.aur import AurPackage
from repoctl.database import is_database_locked
from repoctl.errors import NotExistsError, RepoError
from repoctl.meta import MetaPackage
from repoctl.meta import read_aur as _read_meta_aur
from repoctl.package import Package
from repoctl.pkgutil import (
    filter_packages,
    newer_filter,
    newest_filter,
    pkg_filename,
    pkg_name,
)
from repoctl.readdir import ErrorHandler, read_files
from repoctl.readpkg import PackageReadError
from repoctl.repobase import RepoBase, SignedPkg

log = logging.getLogger(__name__)

SYSTEM_REPO_ADD = "/usr/bin/repo-add"
SYSTEM_REPO_REMOVE = "/usr/bin/repo-remove"

Key = Callable[[Any], str]
Transfer = Callable[[str, str], None]


class CommandError(RepoError):
    """Raised when an external command fails; ``output`` holds what it printed."""

    def __init__(self, command: str, output: str = ""):
        self.command = command
        self.output = output
        super().__init__(f"command exited with non-zero return code: {command}")


@dataclass
class Upgrade:
    """An upgrade available on the AUR for a package in the repository."""

    old: Package | None
    new: AurPackage

    def name(self) -> str:
        return self.new.name

    def base(self) -> str:
        return self.new.package_base

    def download_url(self) -> str:
        return self.new.download_url()

    def versions(self) -> tuple[str, str]:
        """Return the old and the new version; the old one is "" if unknown."""
        if self.old is None:
            return "", self.new.version
        return self.old.version, self.new.version

    def __str__(self) -> str:
        old, new = self.versions()
        if not old:
            return f"{self.name()}: {new}"
        return f"{self.name()}: {old} -> {new}"


def _handle(on_error: ErrorHandler | None, exc: Exception) -> None:
    if on_error is None:
        raise exc
    on_error(exc)


def _compare(a, b) -> int:
    an, bn = a.pkg_name(), b.pkg_name()
    if an != bn:
        return -1 if an < bn else 1
    return vercmp(a.pkg_version(), b.pkg_version())


def list_packages(pkgs: Iterable, key: Key | None = None) -> list[str]:
    """Sort pkgs by name and version, map them with key and drop empty and repeated strings."""
    key = key or pkg_name
    result: list[str] = []
    for p in sorted(pkgs, key=functools.cmp_to_key(_compare)):
        s = key(p)
        if s and (not result or result[-1] != s):
            result.append(s)
    return result


def _same_file(src: str, dst: str) -> bool:
    try:
        return os.path.samefile(src, dst)
    except OSError:
        return False


def _copy_lazy(src: str, dst: str) -> None:
    if _same_file(src, dst):
        return
    if os.path.isfile(dst) and filecmp.cmp(src, dst, shallow=False):
        return
    shutil.copy2(src, dst)


def _move_lazy(src: str, dst: str) -> None:
    if _same_file(src, dst):
        return
    if os.path.isfile(dst) and filecmp.cmp(src, dst, shallow=False):
        os.remove(src)
        return
    shutil.move(src, dst)


def _link(src: str, dst: str) -> None:
    try:
        os.link(src, dst)
    except OSError:
        _copy_lazy(src, dst)


@dataclass
class Repo(RepoBase):
    """A repository with operations on its files and database."""

    repo_add: str = SYSTEM_REPO_ADD
    repo_remove: str = SYSTEM_REPO_REMOVE

    # ------------------------------------------------------------ find

    def exists(self, pkg) -> bool:
        """Return whether the file of the package exists."""
        filename = pkg.pkg().filename
        return bool(filename) and os.path.isfile(filename)

    def find_upgrades(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[Upgrade]:
        """Return the AUR upgrades for the given packages, or for all if none are given."""
        names = list(pkgnames)
        pkgs = self.read_meta(names, on_error)
        if not names and self.ignore_aur:
            pkgs = filter_packages(pkgs, self.ignore_filter())
        missing = _read_meta_aur(pkgs)
        if missing:
            log.debug("Not found on AUR: %s", ", ".join(missing))
        return [Upgrade(p.pkg(), p.aur) for p in pkgs if p.has_upgrade()]

    def find_newest(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[Package]:
        """Return the newest package files for the given names, or for all names."""
        names = list(pkgnames)
        pkgs = self.read_dir(on_error) if not names else self.read_names(names, on_error)
        return filter_packages(pkgs, newest_filter(pkgs))

    def find_similar(
        self, pkgfiles: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[Package]:
        """Return the other package files in the repository with the same names."""
        files = list(pkgfiles)
        if not files:
            return []
        pkgs = read_files(files, on_error)
        similar = self.read_names([p.name for p in pkgs], on_error)
        given = {p.filename for p in pkgs}
        return [p for p in similar if p.filename not in given]

    def find_updates(
        self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None
    ) -> list[Package]:
        """Return package files newer than their existing database entries."""
        pkgs = self.find_newest(pkgnames, on_error)
        dbpkgs = filter_packages(self.read_database(), self.exists)
        return filter_packages(pkgs, newer_filter(dbpkgs))

    def find_missing(self) -> list[Package]:
        """Return the database entries whose files do not exist."""
        return [p for p in self.read_database() if not self.exists(p)]

    # ------------------------------------------------------------ list

    def list_database(self, key: Key | None = None) -> list[str]:
        return list_packages(self.read_database(), key)

    def list_directory(
        self, key: Key | None = None, on_error: ErrorHandler | None = None
    ) -> list[str]:
        return list_packages(self.read_dir(on_error), key)

    def list_meta(
        self,
        aur: bool = False,
        key: Key | None = None,
        on_error: ErrorHandler | None = None,
    ) -> list[str]:
        """List the meta packages, filling in AUR information if aur is set."""
        pkgs: list[MetaPackage] = self.read_meta((), on_error)
        if aur:
            log.debug("Querying AUR for packages ...")
            try:
                _read_meta_aur(pkgs)
            except (requests.RequestException, ValueError) as exc:
                log.debug("Error: %s", exc)
        return list_packages(pkgs, key)

    # ------------------------------------------------------------ actions

    def link(self, pkgfiles: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Hard link (or else copy) the files into the repository and add them."""
        self._add(list(pkgfiles), _link, "Linking", on_error)

    def copy(self, pkgfiles: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Copy the files into the repository if needed and add them."""
        self._add(list(pkgfiles), _copy_lazy, "Copying", on_error)

    def move(self, pkgfiles: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Move the files into the repository and add them."""
        self._add(list(pkgfiles), _move_lazy, "Moving", on_error)

    def _add(
        self,
        pkgfiles: list[str],
        transfer: Transfer,
        label: str,
        on_error: ErrorHandler | None,
    ) -> None:
        if not pkgfiles:
            return
        added: list[str] = []
        for f in pkgfiles:
            try:
                pkg = SignedPkg.from_path(f)
            except NotExistsError as exc:
                log.error("Skipping %s: %s", f, exc)
                continue
            if self.require_signature and not pkg.has_signature():
                log.error("Skipping %s: require signature but none available", f)
                continue

            log.info("%s and adding to repository: %s", label, pkg.path_set())
            try:
                pkg.apply(
                    lambda src, _sig: transfer(
                        src, posixpath.join(self.directory, posixpath.basename(src))
                    )
                )
            except OSError as exc:
                _handle(on_error, exc)
                continue
            added.append(posixpath.join(self.directory, posixpath.basename(f)))

        self.add_to_database(added)
        try:
            similar = self.find_similar(added, on_error)
        except (OSError, PackageReadError) as exc:
            log.debug("Error: %s", exc)
            similar = []
        self.dispatch([pkg_filename(p) for p in similar], on_error)

    def remove(self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Remove the packages from the database and dispatch their files."""
        names = list(pkgnames)
        if not names:
            return
        pkgs = self.read_names(names, on_error)
        try:
            self.remove_from_database([p.name for p in pkgs])
        except RepoError as exc:
            _handle(on_error, exc)
        self.dispatch([p.filename for p in pkgs], on_error)

    def dispatch(self, pkgfiles: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Back up or delete the given package files."""
        files = list(pkgfiles)
        if not files:
            return
        if self.backup:
            self._backup(files, on_error)
        else:
            self._unlink(files, on_error)

    def is_obsolete_cached(self) -> bool:
        """Return True if obsolete files stay in place (backup dir is the repository)."""
        return self._backup_dir_abs() == self.directory

    def _backup_dir_abs(self) -> str:
        if posixpath.isabs(self.backup_dir):
            return posixpath.normpath(self.backup_dir)
        return posixpath.normpath(posixpath.join(self.directory, self.backup_dir))

    def _backup(self, pkgfiles: list[str], on_error: ErrorHandler | None) -> None:
        if self.is_obsolete_cached():
            for f in pkgfiles:
                log.debug("Caching: %s", f)
            return

        backup_dir = self._backup_dir_abs()
        if not os.path.isdir(backup_dir):
            log.debug("Creating directory: %s", backup_dir)
            try:
                os.makedirs(backup_dir, exist_ok=True)
            except OSError as exc:
                raise RepoError(f"cannot create backup directory {backup_dir}: {exc}") from exc

        for f in pkgfiles:
            try:
                pkg = SignedPkg.from_path(f)
            except NotExistsError as exc:
                _handle(on_error, exc)
                continue
            log.info("Backing up: %s", pkg.name_set())
            try:
                pkg.apply(
                    lambda src, _sig: _move_lazy(
                        src, posixpath.join(backup_dir, posixpath.basename(src))
                    )
                )
            except OSError as exc:
                _handle(on_error, exc)

    def _unlink(self, pkgfiles: list[str], on_error: ErrorHandler | None) -> None:
        for f in pkgfiles:
            try:
                pkg = SignedPkg.from_path(f)
            except NotExistsError as exc:
                _handle(on_error, exc)
                continue
            log.info("Deleting: %s", pkg.name_set())
            try:
                pkg.apply(lambda src, _sig: os.remove(src))
            except OSError as exc:
                _handle(on_error, exc)

    def update(self, pkgnames: Iterable[str] = (), on_error: ErrorHandler | None = None) -> None:
        """Add the newest files to the database and dispatch obsolete ones.

        Database entries without files are removed. Without names, the whole
        repository is scanned.
        """
        names = list(pkgnames)
        dbpath = self.database_path()
        if is_database_locked(dbpath):
            raise RepoError(f"database is locked: {dbpath}.lck")

        updates: list[str] = []
        obsolete: list[str] = []
        missing: list[str] = []
        for p in self.read_meta(names, on_error):
            if not p.has_files():
                missing.append(p.name)
                continue
            if p.has_obsolete():
                obsolete.extend(q.filename for q in p.obsolete())
            if p.has_update() or names:
                f = p.pkg().filename
                if self.require_signature:
                    try:
                        spkg = SignedPkg.from_path(f)
                    except NotExistsError as exc:
                        log.error("Skipping %s: %s", f, exc)
                        continue
                    if not spkg.has_signature():
                        log.error("Skipping %s: require signature but none found", f)
                        continue
                updates.append(f)

        self.remove_from_database(missing)
        self.add_to_database(updates)
        self.dispatch(obsolete, on_error)

    # ------------------------------------------------------------ database

    def delete_database(self) -> None:
        """Delete the repository database, but not the package files."""
        dbpath = self.database_path()
        if os.path.isfile(dbpath):
            log.info("Deleting database: %s", dbpath)
            os.remove(dbpath)

    def create_database(self) -> None:
        """Create an empty repository database if there is none."""
        dbpath = self.database_path()
        if os.path.isfile(dbpath):
            return
        if not os.path.isdir(self.directory):
            self.setup()
        log.info("Creating database: %s", dbpath)
        self._system([self.repo_add, *self.add_parameters, dbpath])

    def add_to_database(self, pkgfiles: Iterable[str] = ()) -> None:
        """Add the package files to the repository database."""
        files = list(pkgfiles)
        if not files:
            return
        dbpath = self.database_path()
        if is_database_locked(dbpath):
            raise RepoError(f"database is locked: {dbpath}.lck")
        for f in files:
            log.info("Adding package to database: %s", f)
        self._system(
            [self.repo_add, *self.add_parameters, self.database, *files], cwd=self.directory
        )

    def remove_from_database(self, pkgnames: Iterable[str] = ()) -> None:
        """Remove the named packages from the repository database."""
        names = list(pkgnames)
        if not names:
            return
        dbpath = self.database_path()
        if is_database_locked(dbpath):
            raise RepoError(f"database is locked: {dbpath}.lck")
        for n in names:
            log.info("Removing package from database: %s", n)
        self._system(
            [self.repo_remove, *self.remove_parameters, self.database, *names],
            cwd=self.directory,
        )

    def _system(self, args: list[str], cwd: str | None = None) -> None:
        command = " ".join(args)
        log.debug("Executing: %s", command)
        try:
            proc = subprocess.run(
                args,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as exc:
            output = str(exc)
            failed = True
        else:
            output = proc.stdout.decode("utf-8", errors="replace")
            failed = proc.returncode != 0
        if failed:
            log.error("Error executing: %s\n---\n%s...", command, output)
            raise CommandError(command, output)