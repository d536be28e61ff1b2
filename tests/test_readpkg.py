import bz2
import gzip
import io
import lzma
import tarfile

import pytest
import zstandard

from repoctl.package import PackageOrigin
from repoctl.readpkg import PackageReadError, iter_archive, parse_pkginfo, read_package


def _pkginfo(name="foo", version="1.0-1", extra=()):
    lines = ["# Generated by makepkg", f"pkgname = {name}", f"pkgver = {version}", *extra]
    return "\n".join(lines) + "\n"


def _tar_bytes(members):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


_COMPRESS = {
    "": lambda b: b,
    "gz": gzip.compress,
    "xz": lzma.compress,
    "bz2": bz2.compress,
    "zst": lambda b: zstandard.ZstdCompressor().compress(b),
}


def _write_pkg(path, text, compression="gz", member=".PKGINFO"):
    raw = _tar_bytes({member: text.encode(), "usr/bin/foo": b"binary"})
    path.write_bytes(_COMPRESS[compression](raw))
    return path


def _pkg_name(compression):
    return "foo-1.0-1-any.pkg.tar" + (f".{compression}" if compression else "")


def test_parse_basic_fields():
    pkg = parse_pkginfo(
        _pkginfo(
            "alpha",
            "2.5-3",
            ["depend = glibc", "depend = zlib", "makedepend = cmake", "arch = x86_64"],
        )
    )
    assert pkg.name == "alpha"
    assert pkg.version == "2.5-3"
    assert pkg.depends == ["glibc", "zlib"]
    assert pkg.make_depends == ["cmake"]
    assert pkg.arch == "x86_64"


def test_parse_build_date_and_size():
    pkg = parse_pkginfo(_pkginfo(extra=["builddate = 1456515415", "size = 1234"]))
    assert pkg.build_date.timestamp() == 1456515415
    assert pkg.size == 1234


def test_epoch_is_prepended():
    pkg = parse_pkginfo(_pkginfo(version="2.0-1", extra=["epoch = 1"]))
    assert pkg.version == "1:2.0-1"


def test_epoch_takes_maximum():
    pkg = parse_pkginfo(_pkginfo(version="1:2.0-1", extra=["epoch = 3"]))
    assert pkg.version == "3:2.0-1"


def test_zero_epoch_leaves_version():
    pkg = parse_pkginfo(_pkginfo(version="4.2-7", extra=["epoch = 0"]))
    assert pkg.version == "4.2-7"


def test_lines_without_separator_are_ignored():
    pkg = parse_pkginfo(_pkginfo("bar", extra=["garbage line", "# comment = x"]))
    assert pkg.name == "bar"


@pytest.mark.parametrize(
    "extra",
    [
        ["unknownfield = 1"],
        ["epoch = x"],
        ["builddate = yesterday"],
        ["size = -1"],
    ],
)
def test_parse_errors(extra):
    with pytest.raises(PackageReadError):
        parse_pkginfo(_pkginfo(extra=extra))


def test_bad_existing_epoch_raises():
    with pytest.raises(PackageReadError, match="unable to read epoch"):
        parse_pkginfo(_pkginfo(version="x:1.0-1", extra=["epoch = 1"]))


@pytest.mark.parametrize("compression", ["", "gz", "xz", "bz2", "zst"])
def test_read_package_round_trip(tmp_path, compression):
    path = _write_pkg(tmp_path / _pkg_name(compression), _pkginfo("foo", "1.0-1"), compression)
    pkg = read_package(str(path))
    assert pkg.name == "foo"
    assert pkg.version == "1.0-1"
    assert pkg.filename == str(path)
    assert pkg.origin == PackageOrigin.FILE


def test_read_package_dot_slash_member(tmp_path):
    path = _write_pkg(tmp_path / _pkg_name("gz"), _pkginfo("dotted"), member="./.PKGINFO")
    assert read_package(str(path)).name == "dotted"


def test_read_package_without_pkginfo(tmp_path):
    path = _write_pkg(tmp_path / _pkg_name("gz"), _pkginfo(), member="other")
    with pytest.raises(PackageReadError, match="read package"):
        read_package(str(path))


def test_read_package_missing_file(tmp_path):
    with pytest.raises(PackageReadError):
        read_package(str(tmp_path / "missing.pkg.tar.gz"))


def test_read_package_not_an_archive(tmp_path):
    path = tmp_path / "junk.pkg.tar.gz"
    path.write_bytes(b"this is not an archive")
    with pytest.raises(PackageReadError):
        read_package(str(path))


def test_iter_archive_reads_wanted_members_only(tmp_path):
    path = _write_pkg(tmp_path / _pkg_name("zst"), _pkginfo(), "zst")
    found = {m.name: data for m, data in iter_archive(str(path), lambda m: m.name == "usr/bin/foo")}
    assert found["usr/bin/foo"] == b"binary"
    assert found[".PKGINFO"] is None