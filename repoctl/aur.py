"""Querying the Arch User Repository (AUR) RPC interface."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable
from urllib.parse import quote_plus

import requests

from repoctl.package import Package, PackageOrigin

AUR_BASE_URL = "https://aur.archlinux.org"
SEARCH_URL = AUR_BASE_URL + "/rpc.php?v=5&type=search&by=name&arg={}"
MULTI_INFO_URL = AUR_BASE_URL + "/rpc.php?v=5&type=multiinfo&arg[]={}"
_MULTI_INFO_ARG = "&arg[]="

QUERY_LIMIT = 200
"""Maximum number of packages asked for in one request."""

TIMEOUT = 30
"""Seconds to wait for an answer from the AUR."""


def _quote(name: str) -> str:
    return json.dumps(name, ensure_ascii=False)


class NotFoundError(Exception):
    """Raised when one or more packages could not be found on the AUR.

    ``names`` holds the missing names and ``packages`` whatever was found.
    """

    def __init__(self, names: Iterable[str], packages: Iterable[AurPackage] | None = None):
        self.names = list(names)
        self.packages = list(packages or [])
        super().__init__(self._message())

    def _message(self) -> str:
        names = self.names
        if len(names) == 1:
            return f"package {_quote(names[0])} could not be found on AUR"
        if len(names) == 2:
            return f"packages {_quote(names[0])} and {_quote(names[1])} could not be found on AUR"
        head = "".join(f"{_quote(n)}, " for n in names[:-1])
        last = _quote(names[-1]) if names else '""'
        return f"packages {head}and {last} could not be found on AUR"


def _int(value: Any) -> int:
    return int(value) if value is not None else 0


def _str(value: Any) -> str:
    return str(value) if value is not None else ""


def _list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


@dataclass(eq=False)
class AurPackage:
    """Information the AUR gives about one package."""

    id: int = 0
    name: str = ""
    package_base_id: int = 0
    package_base: str = ""
    version: str = ""
    description: str = ""
    url: str = ""
    num_votes: int = 0
    popularity: float = 0.0
    out_of_date: int = 0
    maintainer: str = ""
    first_submitted: int = 0
    last_modified: int = 0
    url_path: str = ""
    groups: list[str] = field(default_factory=list)
    depends: list[str] = field(default_factory=list)
    make_depends: list[str] = field(default_factory=list)
    opt_depends: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    provides: list[str] = field(default_factory=list)
    replaces: list[str] = field(default_factory=list)
    license: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AurPackage:
        """Build a package from one entry of an RPC ``results`` list."""
        return cls(
            id=_int(data.get("ID")),
            name=_str(data.get("Name")),
            package_base_id=_int(data.get("PackageBaseID")),
            package_base=_str(data.get("PackageBase")),
            version=_str(data.get("Version")),
            description=_str(data.get("Description")),
            url=_str(data.get("URL")),
            num_votes=_int(data.get("NumVotes")),
            popularity=float(data.get("Popularity") or 0.0),
            out_of_date=_int(data.get("OutOfDate")),
            maintainer=_str(data.get("Maintainer")),
            first_submitted=_int(data.get("FirstSubmitted")),
            last_modified=_int(data.get("LastModified")),
            url_path=_str(data.get("URLPath")),
            groups=_list(data.get("Groups")),
            depends=_list(data.get("Depends")),
            make_depends=_list(data.get("MakeDepends")),
            opt_depends=_list(data.get("OptDepends")),
            conflicts=_list(data.get("Conflicts")),
            provides=_list(data.get("Provides")),
            replaces=_list(data.get("Replaces")),
            license=_list(data.get("License")),
            keywords=_list(data.get("Keywords")),
        )

    def pkg(self) -> Package:
        """Return the fields a pacman package can hold from this AUR entry."""
        return Package(
            origin=PackageOrigin.AUR,
            name=self.name,
            base=self.package_base,
            version=self.version,
            description=self.description,
            url=self.url,
            depends=self.depends,
            make_depends=self.make_depends,
        )

    def pkg_name(self) -> str:
        return self.name

    def pkg_version(self) -> str:
        return self.version

    def pkg_depends(self) -> list[str]:
        return self.depends

    def pkg_make_depends(self) -> list[str]:
        return self.make_depends

    def download_url(self) -> str:
        """Return the URL of the PKGBUILD snapshot tarball."""
        return AUR_BASE_URL + self.url_path


def multi_info_url(names: Iterable[str]) -> str:
    """Return the RPC URL asking for information on all the given names."""
    return MULTI_INFO_URL.format(_MULTI_INFO_ARG.join(quote_plus(n) for n in names))


def _fetch(url: str) -> dict[str, Any]:
    response = requests.get(url, timeout=TIMEOUT)
    return response.json()


def _results(msg: dict[str, Any]) -> list[AurPackage]:
    return [AurPackage.from_json(r) for r in msg.get("results") or []]


def search_by_name(query: str) -> list[AurPackage]:
    """Search the AUR for packages whose name contains query."""
    return _results(_fetch(SEARCH_URL.format(quote_plus(query))))


def read(pkgname: str) -> AurPackage:
    """Read one package from the AUR; raise NotFoundError if it is missing."""
    msg = _fetch(multi_info_url([pkgname]))
    results = _results(msg)
    if _int(msg.get("resultcount")) == 0 or not results:
        raise NotFoundError([pkgname])
    return results[0]


def _read_chunk(names: list[str]) -> tuple[list[AurPackage], list[str]]:
    msg = _fetch(multi_info_url(names))
    pkgs = _results(msg)
    if _int(msg.get("resultcount")) == len(names):
        return pkgs, []
    found = {p.name for p in pkgs}
    return pkgs, [n for n in names if n not in found]


def read_all(pkgnames: Iterable[str]) -> list[AurPackage]:
    """Read many packages from the AUR, in batches of QUERY_LIMIT.

    If any are missing, NotFoundError is raised carrying the missing names
    and all packages that were found.
    """
    names = list(pkgnames)
    if not names:
        return []
    found: list[AurPackage] = []
    missing: list[str] = []
    for start in range(0, len(names), QUERY_LIMIT):
        pkgs, miss = _read_chunk(names[start:start + QUERY_LIMIT])
        found.extend(pkgs)
        missing.extend(miss)
    if missing:
        raise NotFoundError(missing, found)
    return found