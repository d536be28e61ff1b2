"""Filters and key functions for working with lists of packages."""

from __future__ import annotations

import fnmatch
import os
import re
import sys
from typing import Any, Callable, Iterable

from repoctl.alpm import vercmp
from repoctl.aur import AurPackage
from repoctl.meta import MetaPackage
from repoctl.package import Package, PackageOrigin, pkg_newer, pkg_older

Key = Callable[[Any], str]


def pkg_name(pkg) -> str:
    """Return the package name."""
    return pkg.pkg_name()


def pkg_base(pkg) -> str:
    """Return the package base."""
    return pkg.pkg().base


def pkg_filename(pkg) -> str:
    """Return the filename of the package, without any normalisation."""
    return pkg.pkg().filename


def _base(path: str) -> str:
    if path == "":
        return "."
    path = path.rstrip("/")
    if path == "":
        return "/"
    return path.rsplit("/", 1)[-1]


def pkg_basename(pkg) -> str:
    """Return the last element of the package filename."""
    return _base(pkg.pkg().filename)


def pkg_filter(pkg) -> str:
    """Return name, base, description, URL, groups, replaces and provides joined by spaces."""
    p = pkg.pkg()
    parts = [p.name, p.base, p.description, p.url, *p.groups, *p.replaces, *p.provides]
    return " ".join(parts)


class Filter:
    """A predicate on packages that can be combined with &, | and ~."""

    __slots__ = ("_predicate",)

    def __init__(self, predicate: Callable[[Any], bool]):
        self._predicate = predicate

    def __call__(self, pkg) -> bool:
        return bool(self._predicate(pkg))

    def __and__(self, other: Callable[[Any], bool]) -> Filter:
        return Filter(lambda p: self(p) and bool(other(p)))

    def __or__(self, other: Callable[[Any], bool]) -> Filter:
        return Filter(lambda p: self(p) or bool(other(p)))

    def __invert__(self) -> Filter:
        return Filter(lambda p: not self(p))


def filter_packages(pkgs: Iterable, f: Callable[[Any], bool]) -> list:
    """Return the packages for which f is true, keeping their order."""
    return [p for p in pkgs if f(p)]


def filter_all(pkgs: Iterable, *args: Callable[[Any], bool]) -> list:
    """Return the packages that pass every one of the filters."""
    return filter_packages(pkgs, lambda p: all(f(p) for f in args))


def filter_any(pkgs: Iterable, *args: Callable[[Any], bool]) -> list:
    """Return the packages that pass at least one of the filters."""
    return filter_packages(pkgs, lambda p: any(f(p) for f in args))


def _newest_by_name(pkgs: Iterable) -> dict[str, Any]:
    newest: dict[str, Any] = {}
    for p in pkgs:
        if pkg_newer(p, newest.get(p.pkg_name())):
            newest[p.pkg_name()] = p
    return newest


def filter_newest(pkgs: Iterable) -> list:
    """Return the packages that have the newest version for their name."""
    pkgs = list(pkgs)
    newest = _newest_by_name(pkgs)
    return filter_packages(
        pkgs,
        lambda p: vercmp(p.pkg_version(), newest[p.pkg_name()].pkg_version()) == 0,
    )


def newer_filter(pkgs: Iterable) -> Filter:
    """Pass packages that are strictly newer than any of the given packages of that name."""
    newest = _newest_by_name(pkgs)
    return Filter(lambda p: pkg_newer(p, newest.get(p.pkg_name())))


def newest_filter(pkgs: Iterable) -> Filter:
    """Pass packages at least as new as the given packages of that name."""
    newest = _newest_by_name(pkgs)
    return Filter(lambda p: not pkg_older(p, newest.get(p.pkg_name())))


def word_filter(word: str, key: Key = pkg_name) -> Filter:
    """Pass packages whose key contains word."""
    return Filter(lambda p: word in key(p))


def regex_filter(regex: str, key: Key = pkg_name) -> Filter:
    """Pass packages whose key matches the regular expression anywhere.

    Raises re.error if the expression is invalid.
    """
    pattern = re.compile(regex)
    return Filter(lambda p: pattern.search(key(p)) is not None)


def glob_filter(glob: str, key: Key = pkg_name) -> Filter:
    """Pass packages whose key matches the glob pattern."""
    return Filter(lambda p: fnmatch.fnmatchcase(key(p), glob))


def _is_missing(path: str) -> bool:
    if path == "":
        return True
    try:
        return not os.path.isfile(path)
    except OSError as exc:  # pragma: no cover - isfile swallows most errors
        print(f"Error reading {path}: {exc}", file=sys.stderr)
        return True


def missing_filter() -> Filter:
    """Pass packages whose file does not exist in the filesystem."""

    def missing(p) -> bool:
        if isinstance(p, Package):
            if p.origin == PackageOrigin.FILE:
                return False
            return _is_missing(p.filename)
        if isinstance(p, AurPackage):
            return False
        if isinstance(p, MetaPackage):
            return p.has_files()
        return _is_missing(p.pkg().filename)

    return Filter(missing)


def name_filter(names: Iterable[str]) -> Filter:
    """Pass packages that have one of the given names."""
    wanted = frozenset(names)
    return Filter(lambda p: p.pkg_name() in wanted)