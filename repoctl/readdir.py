"""Reading the packages found in a repository directory."""

from __future__ import annotations

import glob
import os
import re
from typing import Callable, Iterable, Iterator

from repoctl.alpm import PACKAGE_GLOB, PACKAGE_REGEX, has_package_format
from repoctl.database import read_database
from repoctl.package import Package
from repoctl.readpkg import PackageReadError, read_package

ErrorHandler = Callable[[Exception], None]

_PACKAGE_NAME = re.compile(PACKAGE_REGEX, re.ASCII)


def _handle(on_error: ErrorHandler | None, exc: Exception) -> None:
    if on_error is None:
        raise exc
    on_error(exc)


def _files(
    dirpath: str,
    on_error: ErrorHandler | None,
    wrap: Callable[[OSError], Exception] | None = None,
) -> Iterator[os.DirEntry]:
    """Yield the non-directory entries of dirpath in lexical order."""
    try:
        with os.scandir(dirpath) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        _handle(on_error, wrap(exc) if wrap else exc)
        return
    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            _handle(on_error, wrap(exc) if wrap else exc)
            continue
        if not is_dir:
            yield entry


def read_dir(dirpath: str, dbpath: str, on_error: ErrorHandler | None = None) -> list[Package]:
    """Read all packages in dirpath, using database entries that are up to date.

    A database entry is used instead of reading the file when the database
    is newer than the file. Without a readable database, every file is read.
    """
    dirpath = os.path.normpath(dirpath)
    try:
        db_mtime = os.stat(dbpath).st_mtime_ns
        db_pkgs = read_database(dbpath)
    except (OSError, PackageReadError):
        return read_every_file_in_dir(dirpath, on_error)

    known = {os.path.join(dirpath, os.path.basename(p.filename)): p for p in db_pkgs}

    results = []
    for entry in _files(dirpath, on_error):
        if not has_package_format(entry.path):
            continue
        db_pkg = known.get(entry.path)
        if db_pkg is not None:
            try:
                mtime = entry.stat(follow_symlinks=False).st_mtime_ns
            except OSError as exc:
                _handle(on_error, exc)
                continue
            if db_mtime > mtime:
                results.append(db_pkg)
                continue
        try:
            results.append(read_package(entry.path))
        except PackageReadError as exc:
            _handle(on_error, exc)
    return results


def read_every_file_in_dir(dirpath: str, on_error: ErrorHandler | None = None) -> list[Package]:
    """Read every package file in dirpath (not recursing)."""
    dirpath = os.path.normpath(dirpath)

    def wrap(exc: OSError) -> Exception:
        return PackageReadError(f"read file {dirpath}: {exc}")

    pkgs = []
    for entry in _files(dirpath, on_error, wrap):
        if not has_package_format(entry.path):
            continue
        try:
            pkgs.append(read_package(entry.path))
        except PackageReadError as exc:
            _handle(on_error, exc)
    return pkgs


def read_dir_approx_only_names(dirpath: str, on_error: ErrorHandler | None = None) -> list[str]:
    """Return package names guessed from the file names in dirpath."""
    dirpath = os.path.normpath(dirpath)
    names = []
    for entry in _files(dirpath, on_error):
        m = _PACKAGE_NAME.match(entry.name)
        if m:
            names.append(m.group(1))
    return names


def read_files(pkgfiles: Iterable[str], on_error: ErrorHandler | None = None) -> list[Package]:
    """Read all the given package files."""
    pkgs = []
    for path in pkgfiles:
        try:
            pkgs.append(read_package(path))
        except PackageReadError as exc:
            _handle(on_error, exc)
    return pkgs


def read_names(
    dirpath: str, pkgnames: Iterable[str], on_error: ErrorHandler | None = None
) -> list[Package]:
    """Read all package files in dirpath whose package has one of the given names."""
    pkgs = []
    for name in pkgnames:
        pattern = os.path.join(glob.escape(dirpath), glob.escape(name) + PACKAGE_GLOB)
        for path in sorted(glob.glob(pattern)):
            # Globbing also finds signatures, which are ignored.
            if not has_package_format(path):
                continue
            try:
                pkg = read_package(path)
            except PackageReadError as exc:
                _handle(on_error, exc)
                continue
            if pkg.name == name:
                pkgs.append(pkg)
    return pkgs