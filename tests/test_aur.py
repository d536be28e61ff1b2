import json
from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from repoctl import aur
from repoctl.package import PackageOrigin

EXISTS = ["repoctl", "fairsplit", "moped"]
NOT_EXISTS = ["repoctl-34534", "arstaorsf", "911222234"]
MANY = [
    "a2ps", "a52dec", "aalib", "abcde", "abs", "abuse", "acl", "acpi", "acpid",
    "acroread", "adobe-source-code-pro-fonts", "adwaita-icon-theme", "aircrack-ng",
    "akonadi", "akonadi-contacts", "alacritty-git", "alex", "alsa-lib",
    "alsa-plugins", "android-sdk-platform-tools", "apache", "apache-ant", "apm",
    "apr", "apr-util", "aqbanking", "archlinux-keyring", "ardour", "arpack",
    "asciidoc", "aspell", "aspell-de", "aspell-en", "asunder", "at",
    "at-spi2-atk", "at-spi2-core", "atk", "atkmm", "atom", "attica-qt4",
    "attica-qt5", "attr", "aubio", "audacity", "audiofile", "autoconf",
    "autoconf-archive", "automake", "avahi", "avidemux-cli", "avidemux-qt",
    "awesome-git", "awmtt", "aws-cli", "babl", "baloo", "baloo4-akonadi", "bash",
    "batterymon-clone", "bc", "biber", "bind-tools", "binutils", "bison", "blas",
    "bless", "bluez", "bluez-cups", "bluez-firmware", "bluez-libs",
    "bluez-plugins", "bluez-tools", "bluez-utils", "boost", "boost-libs",
    "brasero", "bridge-utils", "bsdiff", "btrfs-progs", "bubblewrap", "bzip2",
    "bzr", "c++utilities", "c-ares", "ca-certificates", "ca-certificates-cacert",
    "ca-certificates-mozilla", "ca-certificates-utils", "cabal-install",
    "cabextract", "cairo", "cairo-perl", "cairomm", "calc", "calibre", "calligra",
    "cantata-git",
]
KNOWN_MANY = ["a2ps", "abcde", "alacritty-git", "awesome-git", "cantata-git", "c++utilities"]


def _entry(name):
    return {
        "ID": 1,
        "Name": name,
        "PackageBaseID": 2,
        "PackageBase": name,
        "Version": "1.0-1",
        "Description": f"The {name} package",
        "URL": None,
        "NumVotes": 3,
        "Popularity": 0.5,
        "OutOfDate": None,
        "Maintainer": "someone",
        "FirstSubmitted": 1437296687,
        "LastModified": 1437298275,
        "URLPath": f"/cgit/aur.git/snapshot/{name}.tar.gz",
        "Depends": ["glibc"],
        "MakeDepends": ["go"],
        "License": ["MIT"],
        "Keywords": [],
    }


KNOWN = {name: _entry(name) for name in EXISTS + KNOWN_MANY}


def _callback(request):
    query = parse_qs(urlsplit(request.url).query)
    if query.get("type") == ["search"]:
        needle = query["arg"][0]
        results = [data for name, data in KNOWN.items() if needle in name]
    else:
        results = [KNOWN[n] for n in query.get("arg[]", []) if n in KNOWN]
    body = {"version": 5, "type": query["type"][0], "resultcount": len(results), "results": results}
    return 200, {"Content-Type": "application/json"}, json.dumps(body)


@pytest.fixture
def fake_aur():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add_callback(responses.GET, "https://aur.archlinux.org/rpc.php", callback=_callback)
        yield rsps


@pytest.mark.parametrize("name", EXISTS)
def test_read_existing(fake_aur, name):
    assert aur.read(name).name == name


@pytest.mark.parametrize("name", NOT_EXISTS)
def test_read_missing(fake_aur, name):
    with pytest.raises(aur.NotFoundError) as excinfo:
        aur.read(name)
    assert excinfo.value.names == [name]


def test_read_all_existing(fake_aur):
    pkgs = aur.read_all(EXISTS)
    assert sorted(p.name for p in pkgs) == sorted(EXISTS)


def test_read_all_missing(fake_aur):
    with pytest.raises(aur.NotFoundError) as excinfo:
        aur.read_all(NOT_EXISTS)
    assert excinfo.value.packages == []
    assert excinfo.value.names == NOT_EXISTS


def test_read_many(fake_aur):
    with pytest.raises(aur.NotFoundError) as excinfo:
        aur.read_all(MANY)
    found = {p.name for p in excinfo.value.packages}
    missing = set(excinfo.value.names)
    assert len(found) > 0
    assert all(n in found or n in missing for n in MANY)
    assert found == set(KNOWN_MANY)


def test_read_all_queries_in_batches(fake_aur):
    names = [f"pkg{i}" for i in range(450)] + ["repoctl"]
    with pytest.raises(aur.NotFoundError) as excinfo:
        aur.read_all(names)
    assert len(fake_aur.calls) == 3
    assert [p.name for p in excinfo.value.packages] == ["repoctl"]
    assert len(excinfo.value.names) == 450


def test_read_all_empty_does_no_request(fake_aur):
    assert aur.read_all([]) == []
    assert len(fake_aur.calls) == 0


def test_download_url(fake_aur):
    pkg = aur.read("repoctl")
    assert pkg.download_url() == "https://aur.archlinux.org/cgit/aur.git/snapshot/repoctl.tar.gz"


def test_search_by_name(fake_aur):
    pkgs = aur.search_by_name("git")
    assert {p.name for p in pkgs} == {"alacritty-git", "awesome-git", "cantata-git"}


def test_not_found_messages():
    assert str(aur.NotFoundError(["a"])) == 'package "a" could not be found on AUR'
    assert str(aur.NotFoundError(["a", "b"])) == 'packages "a" and "b" could not be found on AUR'
    assert (
        str(aur.NotFoundError(["a", "b", "c"]))
        == 'packages "a", "b", and "c" could not be found on AUR'
    )


def test_multi_info_url_escapes_names():
    assert (
        aur.multi_info_url(["a b", "c++"])
        == "https://aur.archlinux.org/rpc.php?v=5&type=multiinfo&arg[]=a+b&arg[]=c%2B%2B"
    )


def test_from_json_and_pkg():
    pkg = aur.AurPackage.from_json(_entry("repoctl"))
    assert pkg.out_of_date == 0
    assert pkg.url == ""
    assert pkg.license == ["MIT"]
    converted = pkg.pkg()
    assert converted.origin == PackageOrigin.AUR
    assert converted.name == "repoctl"
    assert converted.base == "repoctl"
    assert converted.depends == ["glibc"]
    assert converted.make_depends == ["go"]
    assert pkg.pkg_version() == "1.0-1"


def test_from_json_accepts_single_license_string():
    pkg = aur.AurPackage.from_json({"Name": "repoctl", "License": "MIT", "OutOfDate": 0})
    assert pkg.license == ["MIT"]
    assert pkg.depends == []