import io
import re
import tarfile

import pytest
import responses

from repoctl import config
from repoctl.config import Configuration, ProfileUnknownError
from repoctl.errors import (
    InvalidFileError,
    NotExistsError,
    ProfileInvalidError,
    RepoDirMissingError,
    RepoDirRelativeError,
)
from repoctl.package import Package
from repoctl.pkgutil import filter_packages
from repoctl.profile import Profile
from repoctl.repobase import RepoBase, SignedPkg

AUR_RE = re.compile(r"https://aur\.archlinux\.org/rpc\.php.*")


def add_member(tf, name, data):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tf.addfile(info, io.BytesIO(data))


def make_pkg(directory, name, version):
    path = directory / f"{name}-{version}-any.pkg.tar.gz"
    with tarfile.open(path, "w:gz") as tf:
        add_member(tf, ".PKGINFO", f"pkgname = {name}\npkgver = {version}\narch = any\n".encode())
    return path


def make_db(path, entries):
    with tarfile.open(path, "w:gz") as tf:
        for name, version, filename in entries:
            d = tarfile.TarInfo(f"{name}-{version}/")
            d.type = tarfile.DIRTYPE
            tf.addfile(d)
            desc = f"%FILENAME%\n{filename}\n\n%NAME%\n{name}\n\n%VERSION%\n{version}\n"
            add_member(tf, f"{name}-{version}/desc", desc.encode())


@pytest.fixture
def repo(tmp_path):
    return RepoBase.from_path(str(tmp_path / "test.db.tar.gz"))


@pytest.fixture
def aur_mock():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_from_path(tmp_path):
    r = RepoBase.from_path("/srv/abs/atlas.db.tar.gz")
    assert r.directory == "/srv/abs"
    assert r.database == "atlas.db.tar.gz"
    assert r.backup_dir == "backup"
    assert r.name() == "atlas"
    assert r.database_path() == "/srv/abs/atlas.db.tar.gz"


def test_from_path_relative():
    assert RepoBase.from_path("abs/atlas.db.tar.gz") is None


def test_from_conf():
    c = config.new("/srv/abs/atlas.db.tar.gz")
    c.profiles["default"].backup = True
    c.profiles["default"].ignore_aur = ["foo"]
    r = RepoBase.from_conf(c)
    assert r.directory == "/srv/abs"
    assert r.backup is True
    assert r.ignore_set() == {"foo"}


def test_from_conf_errors():
    with pytest.raises(ProfileInvalidError):
        RepoBase.from_conf(Configuration())
    with pytest.raises(ProfileUnknownError):
        RepoBase.from_conf(config.default())
    c = Configuration(default_profile="x", profiles={"x": Profile(repository="rel.db.tar")})
    with pytest.raises(RepoDirRelativeError):
        RepoBase.from_conf(c)


def test_ignore_filter():
    r = RepoBase.from_path("/srv/abs/atlas.db.tar.gz")
    r.ignore_aur = ["a"]
    pkgs = [Package(name="a"), Package(name="b")]
    assert [p.name for p in filter_packages(pkgs, r.ignore_filter())] == ["b"]


def test_assert_setup_and_setup(tmp_path):
    with pytest.raises(RepoDirRelativeError):
        RepoBase("rel", "x.db.tar").assert_setup()
    missing = RepoBase(str(tmp_path / "new"), "x.db.tar")
    with pytest.raises(RepoDirMissingError):
        missing.assert_setup()
    missing.setup()
    assert (tmp_path / "new").is_dir()
    (tmp_path / "file").write_text("")
    with pytest.raises(InvalidFileError):
        RepoBase(str(tmp_path / "file"), "x.db.tar").assert_setup()


def test_signed_pkg(tmp_path):
    with pytest.raises(NotExistsError):
        SignedPkg.from_path(str(tmp_path / "none.pkg.tar"))
    pkg = tmp_path / "a.pkg.tar"
    pkg.write_text("")
    plain = SignedPkg.from_path(str(pkg))
    assert not plain.has_signature()
    assert plain.path_set() == str(pkg)
    (tmp_path / "a.pkg.tar.sig").write_text("")
    signed = SignedPkg.from_path(str(pkg))
    assert signed.path_set() == str(pkg) + "{,.sig}"
    assert signed.name_set() == "a.pkg.tar{,.sig}"
    calls = []
    signed.apply(lambda path, is_sig: calls.append((path, is_sig)))
    assert calls == [(str(pkg), False), (str(pkg) + ".sig", True)]


def test_read_database_missing(repo):
    assert repo.read_database() == []


def test_read_database_makes_paths_absolute(tmp_path, repo):
    make_db(tmp_path / "test.db.tar.gz", [("bar", "1.0-1", "bar-1.0-1-any.pkg.tar.gz")])
    pkgs = repo.read_database()
    assert [p.name for p in pkgs] == ["bar"]
    assert pkgs[0].filename == str(tmp_path / "bar-1.0-1-any.pkg.tar.gz")


def test_read_dir_and_names(tmp_path, repo):
    make_pkg(tmp_path, "foo", "1.0-1")
    make_pkg(tmp_path, "baz", "2.0-1")
    assert sorted(p.name for p in repo.read_dir()) == ["baz", "foo"]
    named = repo.read_names(["foo"])
    assert [p.name for p in named] == ["foo"]
    assert named[0].filename == str(tmp_path / "foo-1.0-1-any.pkg.tar.gz")
    assert sorted(p.name for p in repo.read_names()) == ["baz", "foo"]


def test_read_meta(tmp_path, repo):
    make_pkg(tmp_path, "foo", "1.0-1")
    make_pkg(tmp_path, "foo", "1.1-1")
    make_pkg(tmp_path, "baz", "2.0-1")
    metas = repo.read_meta(["foo"])
    assert [m.name for m in metas] == ["foo"]
    assert metas[0].version() == "1.1-1"
    assert [m.name for m in repo.read_meta()] == ["baz", "foo"]


def test_only_names(tmp_path, repo):
    make_pkg(tmp_path, "foo", "1.0-1")
    make_db(tmp_path / "test.db.tar.gz", [("bar", "1.0-1", "bar-1.0-1-any.pkg.tar.gz")])
    assert repo.only_names() == ["bar", "foo"]


def test_make_abs(repo, tmp_path):
    pkgs = [Package(name="a", filename="/elsewhere/a-1-1-any.pkg.tar")]
    repo.make_abs(pkgs)
    assert pkgs[0].filename == str(tmp_path / "a-1-1-any.pkg.tar")


def test_read_aur_explicit(repo, aur_mock):
    aur_mock.add(
        responses.GET,
        AUR_RE,
        json={"resultcount": 1, "results": [{"Name": "foo", "Version": "2.0-1"}]},
    )
    pkgs = repo.read_aur(["foo"])
    assert [(p.name, p.version) for p in pkgs] == [("foo", "2.0-1")]


def test_read_aur_all_names(tmp_path, repo, aur_mock):
    make_pkg(tmp_path, "foo", "1.0-1")
    aur_mock.add(
        responses.GET,
        AUR_RE,
        json={"resultcount": 1, "results": [{"Name": "foo", "Version": "2.0-1"}]},
    )
    pkgs = repo.read_aur()
    assert [p.name for p in pkgs] == ["foo"]
    assert "foo" in aur_mock.calls[0].request.url