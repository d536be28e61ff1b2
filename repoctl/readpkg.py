"""Reading package metadata from pacman package files."""

from __future__ import annotations

import io
import logging
import lzma
import re
import tarfile
import zlib
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

import zstandard

from repoctl.package import Package, PackageOrigin

log = logging.getLogger(__name__)

_ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
_INT = re.compile(r"[+-]?[0-9]+")
_UINT = re.compile(r"[0-9]+")

_ARCHIVE_ERRORS = (
    OSError,
    EOFError,
    tarfile.TarError,
    lzma.LZMAError,
    zlib.error,
    zstandard.ZstdError,
)

_SCALAR_FIELDS = {
    "pkgname": "name",
    "pkgver": "version",
    "pkgdesc": "description",
    "pkgbase": "base",
    "url": "url",
    "packager": "packager",
    "arch": "arch",
    "license": "license",
}

_LIST_FIELDS = {
    "depend": "depends",
    "optdepend": "optional_depends",
    "makedepend": "make_depends",
    "checkdepend": "check_depends",
    "makepkgopt": "make_options",
    "backup": "backups",
    "replaces": "replaces",
    "provides": "provides",
    "conflict": "conflicts",
    "group": "groups",
}


class PackageReadError(Exception):
    """Raised when package or database metadata cannot be read."""


@contextmanager
def _open_tar(path) -> Iterator[tarfile.TarFile]:
    with open(path, "rb") as fh:
        magic = fh.read(len(_ZSTD_MAGIC))
        fh.seek(0)
        if magic == _ZSTD_MAGIC:
            buf = io.BytesIO()
            zstandard.ZstdDecompressor().copy_stream(fh, buf)
            buf.seek(0)
            with tarfile.open(fileobj=buf, mode="r:") as tf:
                yield tf
        else:
            with tarfile.open(fileobj=fh, mode="r:*") as tf:
                yield tf


def iter_archive(
    path, want: Callable[[tarfile.TarInfo], bool] | None = None
) -> Iterator[tuple[tarfile.TarInfo, bytes | None]]:
    """Yield each member of a (possibly compressed) tar archive with its content.

    Content is read only for regular files accepted by ``want``; otherwise it
    is None. Any failure to read the archive raises PackageReadError.
    """
    try:
        with _open_tar(path) as tf:
            for member in tf:
                data = None
                if member.isfile() and (want is None or want(member)):
                    fh = tf.extractfile(member)
                    data = fh.read() if fh is not None else b""
                yield member, data
    except _ARCHIVE_ERRORS as exc:
        raise PackageReadError(str(exc)) from exc


def _member_name(member: tarfile.TarInfo) -> str:
    return member.name.removeprefix("./")


def _parse_build_date(value: str, message: str) -> datetime:
    if not _INT.fullmatch(value):
        raise PackageReadError(message)
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise PackageReadError(message) from exc


def parse_pkginfo(text: str) -> Package:
    """Parse the contents of a .PKGINFO file into a Package."""
    pkg = Package()
    epoch = 0
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("#"):
            continue
        kv = line.split(" = ")
        if len(kv) != 2:
            continue
        key, value = kv

        if key in _SCALAR_FIELDS:
            setattr(pkg, _SCALAR_FIELDS[key], value)
        elif key in _LIST_FIELDS:
            getattr(pkg, _LIST_FIELDS[key]).append(value)
        elif key == "epoch":
            if not _INT.fullmatch(value):
                raise PackageReadError(f"cannot parse epoch value '{value}'")
            epoch = int(value)
        elif key == "builddate":
            pkg.build_date = _parse_build_date(value, f"cannot parse build time '{value}'")
        elif key == "size":
            if not _UINT.fullmatch(value):
                raise PackageReadError(f"cannot parse size value '{value}'")
            pkg.size = int(value)
        else:
            raise PackageReadError(f"unknown field '{key}' in .PKGINFO")

    # The version must carry the epoch; if it already has one, take the larger.
    if epoch > 0:
        prefix, sep, rest = pkg.version.partition(":")
        if sep:
            if not _INT.fullmatch(prefix):
                raise PackageReadError(f"unable to read epoch from version '{pkg.version}'")
            epoch = max(epoch, int(prefix))
            pkg.version = rest
        pkg.version = f"{epoch}:{pkg.version}"

    return pkg


def read_package(filename: str) -> Package:
    """Read the package information from a pacman package file."""
    log.debug("Read package %s", filename)
    try:
        data = None
        with closing(iter_archive(filename, lambda m: _member_name(m) == ".PKGINFO")) as members:
            for member, content in members:
                if content is not None:
                    data = content
                    break
        if data is None:
            raise PackageReadError("file .PKGINFO not found in archive")
        pkg = parse_pkginfo(data.decode("utf-8", errors="replace"))
    except PackageReadError as exc:
        raise PackageReadError(f"read package {filename}: {exc}") from exc

    pkg.filename = filename
    pkg.origin = PackageOrigin.FILE
    return pkg