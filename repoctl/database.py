"""Reading pacman repository, sync and local databases."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from typing import Callable

from repoctl.package import Package, PackageOrigin
from repoctl.readpkg import PackageReadError, iter_archive

log = logging.getLogger(__name__)

PACMAN_CONF_PATH = "/etc/pacman.conf"
"""Path to the pacman configuration."""

PACMAN_LOCAL_DATABASE_PATH = "/var/lib/pacman/local"
"""Path to the database of locally installed packages."""

PACMAN_SYNC_DATABASE_FORMAT = "/var/lib/pacman/sync/{}.db"
"""Format string into which a repository name is put to get its sync database."""

ErrorHandler = Callable[[Exception], None]

_INT = re.compile(r"[+-]?[0-9]+")
_UINT = re.compile(r"[0-9]+")

_SCALAR_FIELDS = {
    "filename": "filename",
    "name": "name",
    "version": "version",
    "desc": "description",
    "base": "base",
    "url": "url",
    "packager": "packager",
    "arch": "arch",
    "license": "license",
}

_LIST_FIELDS = {
    "depends": "depends",
    "optdepends": "optional_depends",
    "makedepends": "make_depends",
    "checkdepends": "check_depends",
    "backup": "backups",
    "replaces": "replaces",
    "provides": "provides",
    "conflicts": "conflicts",
    "groups": "groups",
}

_IGNORED_FIELDS = frozenset(
    {
        "isize", "md5sum", "pgpsig", "sha256sum",
        "installdate", "size", "validation", "reason",
    }
)


def _handle(on_error: ErrorHandler | None, exc: Exception) -> None:
    if on_error is None:
        raise exc
    on_error(exc)


def is_database_locked(dbpath: str) -> bool:
    """Return whether the database at dbpath is locked for writing."""
    return os.path.isfile(dbpath + ".lck")


def parse_database_entry(text: str) -> Package:
    """Parse a database desc entry (``%FIELD%`` headers followed by values)."""
    pkg = Package()
    state = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("%") and line.endswith("%"):
            state = line.strip("%").lower()
            continue

        if state in _SCALAR_FIELDS:
            setattr(pkg, _SCALAR_FIELDS[state], line)
        elif state in _LIST_FIELDS:
            getattr(pkg, _LIST_FIELDS[state]).append(line)
        elif state == "builddate":
            message = f"cannot parse build time '{line}'"
            if not _INT.fullmatch(line):
                raise PackageReadError(message)
            try:
                pkg.build_date = datetime.fromtimestamp(int(line), tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as exc:
                raise PackageReadError(message) from exc
        elif state == "csize":
            if not _UINT.fullmatch(line):
                raise PackageReadError(f"cannot parse size value '{line}'")
            pkg.size = int(line)
        elif state in _IGNORED_FIELDS:
            continue
        else:
            raise PackageReadError(f"unknown field '{state}' in database entry")
    return pkg


def read_database(dbpath: str) -> list[Package]:
    """Read all packages from a repository database file."""
    log.debug("Read database %s", dbpath)
    if not os.path.isfile(dbpath):
        raise PackageReadError(f"read database {dbpath}: no such file")

    entries: dict[str, list[bytes]] = {}
    try:
        for member, data in iter_archive(dbpath):
            name = member.name.removeprefix("./").rstrip("/")
            if not name:
                continue
            top, sep, _ = name.partition("/")
            if member.isdir():
                entries.setdefault(top, [])
                continue
            if not sep:
                raise PackageReadError(f"unexpected file '{member.name}'")
            if data is not None:
                entries.setdefault(top, []).append(data)
    except PackageReadError as exc:
        raise PackageReadError(f"read database {dbpath}: {exc}") from exc

    dbdir = os.path.dirname(dbpath)
    pkgs = []
    for parts in entries.values():
        if not parts:
            continue
        text = "\n".join(p.decode("utf-8", errors="replace") for p in parts)
        try:
            pkg = parse_database_entry(text)
        except PackageReadError as exc:
            raise PackageReadError(f"read database {dbpath}: {exc}") from exc
        pkg.origin = PackageOrigin.DATABASE
        if pkg.filename:
            pkg.filename = os.path.join(dbdir, pkg.filename)
        pkgs.append(pkg)
    return pkgs


def enabled_repositories(conf_path: str = PACMAN_CONF_PATH) -> list[str]:
    """Return the names of the repositories enabled in the pacman configuration."""
    try:
        with open(conf_path, encoding="utf-8", errors="replace") as fh:
            lines = fh.read().splitlines()
    except OSError as exc:
        raise PackageReadError(f"cannot open {conf_path}: {exc}") from exc

    repos = []
    for raw in lines:
        line = raw.strip()
        if not (line.startswith("[") and line.endswith("]")):
            continue
        name = line[1:-1]
        if name != "options":
            repos.append(name)
    return repos


def is_repository_enabled(name: str, conf_path: str = PACMAN_CONF_PATH) -> bool:
    """Return whether the named repository is enabled."""
    return name in enabled_repositories(conf_path)


def read_sync_database(
    name: str,
    conf_path: str = PACMAN_CONF_PATH,
    sync_format: str = PACMAN_SYNC_DATABASE_FORMAT,
) -> list[Package]:
    """Read one of the sync databases, checking that the repository is enabled."""
    try:
        enabled = is_repository_enabled(name, conf_path)
    except PackageReadError as exc:
        raise PackageReadError(f"cannot determine if repository is enabled: {exc}") from exc
    if not enabled:
        raise PackageReadError(f'repository "{name}" is not enabled in {conf_path}')
    return read_database(sync_format.format(name))


def read_all_sync_databases(
    conf_path: str = PACMAN_CONF_PATH,
    sync_format: str = PACMAN_SYNC_DATABASE_FORMAT,
) -> list[Package]:
    """Read every sync database enabled in the pacman configuration."""
    pkgs: list[Package] = []
    for name in enabled_repositories(conf_path):
        pkgs.extend(read_database(sync_format.format(name)))
    return pkgs


def read_local_database(
    on_error: ErrorHandler | None = None,
    local_path: str = PACMAN_LOCAL_DATABASE_PATH,
) -> list[Package]:
    """Read the database of locally installed packages.

    Errors are passed to on_error; if it returns, reading continues.
    Without a handler, the first error is raised.
    """
    pkgs = []
    for root, dirs, files in os.walk(local_path, onerror=lambda exc: _handle(on_error, exc)):
        dirs.sort()
        if "desc" not in files:
            continue
        path = os.path.join(root, "desc")
        try:
            with open(path, encoding="utf-8", errors="replace") as fh:
                pkg = parse_database_entry(fh.read())
        except (OSError, PackageReadError) as exc:
            _handle(on_error, PackageReadError(f"{path}: {exc}"))
            continue
        pkg.origin = PackageOrigin.LOCAL
        pkg.filename = root
        pkgs.append(pkg)
    return pkgs