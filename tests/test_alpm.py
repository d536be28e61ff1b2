import re
from itertools import combinations

import pytest

from repoctl.alpm import (
    DATABASE_EXTENSIONS,
    PACKAGE_EXTENSIONS,
    PACKAGE_REGEX,
    has_database_format,
    has_package_format,
    vercmp,
)

ALPHANUMERIC = ["1.0a", "1.0b", "1.0beta", "1.0p", "1.0pre", "1.0rc", "1.0", "1.0.a", "1.0.1"]
NUMERIC = ["1", "1.0", "1.1", "1.1.1", "1.2", "2.0", "3.0.0"]


@pytest.mark.parametrize("ordered", [ALPHANUMERIC, NUMERIC])
def test_documented_orderings(ordered):
    for lo, hi in combinations(ordered, 2):
        assert vercmp(lo, hi) == -1, (lo, hi)
        assert vercmp(hi, lo) == 1, (hi, lo)


@pytest.mark.parametrize("v", ALPHANUMERIC + NUMERIC)
def test_equal_to_itself(v):
    assert vercmp(v, v) == 0


def test_epoch_overrides_version():
    assert vercmp("2:1.0-1", "1:3.6-1") == 1
    assert vercmp("1:3.6-1", "2:1.0-1") == -1


def test_missing_epoch_is_zero():
    assert vercmp("0:1.0", "1.0") == 0
    assert vercmp("1:1.0", "5.0") == 1


def test_release_only_compared_when_both_present():
    assert vercmp("1.5-1", "1.5") == 0
    assert vercmp("1.5", "1.5-1") == 0
    assert vercmp("1.5-1", "1.5-2") == -1
    assert vercmp("1.5-2", "1.5-1") == 1


def test_empty_versions():
    assert vercmp("", "") == 0
    assert vercmp("", "1.0") == -1
    assert vercmp("1.0", "") == 1


def test_case_insensitive():
    assert vercmp("1.0RC1", "1.0rc1") == 0
    assert vercmp("1.0A", "1.0b") == -1


def test_separators_are_equivalent():
    assert vercmp("1.0_1", "1.0.1") == 0
    assert vercmp("1+0", "1.0") == 0


def test_numeric_sections_compare_numerically():
    assert vercmp("1.10", "1.9") == 1
    assert vercmp("1.010", "1.10") == 0


@pytest.mark.parametrize("ext", PACKAGE_EXTENSIONS)
def test_package_format(ext):
    assert has_package_format("foo-1.0-1-x86_64." + ext)
    assert not has_database_format("foo-1.0-1-x86_64." + ext)


@pytest.mark.parametrize("ext", DATABASE_EXTENSIONS)
def test_database_format(ext):
    assert has_database_format("/srv/repo/atlas." + ext)
    assert not has_package_format("/srv/repo/atlas." + ext)


def test_formats_reject_other_files():
    assert not has_package_format("foo-1.0-1-x86_64.pkg.tar.xz.sig")
    assert not has_database_format("atlas.db")
    assert not has_package_format("pkg.tar")


def test_package_regex_groups_agree_with_format():
    filename = "fairsplit-1.0-2-any.pkg.tar.zst"
    assert has_package_format(filename)
    m = re.match(PACKAGE_REGEX, filename)
    assert m is not None
    assert m.groups() == ("fairsplit", "1.0-2", "any")
    name, version, _ = m.groups()
    assert vercmp(version, "1.0-1") == 1