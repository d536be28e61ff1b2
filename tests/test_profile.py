import pytest

from repoctl.profile import ConfigError, Profile, default_profile, new_profile


def test_init_sets_database_and_directory(capsys):
    p = Profile(repository="/srv/abs/atlas.db.tar.gz")
    p.init()
    assert p.database == "atlas.db.tar.gz"
    assert p.repodir == "/srv/abs"
    assert "unexpected extension" not in capsys.readouterr().err


def test_init_rejects_relative_path():
    p = Profile(repository="relative/atlas.db.tar.gz")
    with pytest.raises(ConfigError, match="repository path must be absolute"):
        p.init()


def test_init_rejects_unset_repository():
    with pytest.raises(ConfigError):
        Profile().init()


def test_init_warns_on_bad_extension(capsys):
    p = Profile(repository="/srv/abs/atlas.tar")
    p.init()
    err = capsys.readouterr().err
    assert "unexpected extension" in err
    assert "atlas.db.tar.zst" in err
    assert p.database == "atlas.tar"


def test_default_profile():
    p = default_profile()
    assert p.backup_dir == "backup/"
    assert p.repository == ""
    assert p.add_parameters == []


def test_new_profile():
    p = new_profile("/srv/repo/name.db.tar.zst")
    assert p.repository == "/srv/repo/name.db.tar.zst"
    assert p.database == "name.db.tar.zst"
    assert p.repodir == "/srv/repo"
    assert p.ignore_aur == []
    assert new_profile("name.db.tar.zst") is None


def test_list_defaults_are_independent():
    a = Profile()
    b = Profile()
    a.ignore_aur.append("x")
    assert b.ignore_aur == []