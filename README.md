# repoctl

A library for managing local Pacman repositories. It works alongside the
`repo-add` and `repo-remove` tools that ship with Pacman and adds what they
lack: it knows which package files in a repository directory are current,
which are obsolete, which are missing from the database, and which have newer
versions on the Arch User Repository (AUR).

## What it offers

- **Version comparison** compatible with Pacman's `vercmp`, including epochs
  and release numbers: `repoctl.alpm.vercmp`.
- **File name checks** for package and database archives:
  `repoctl.alpm.has_package_format` and `repoctl.alpm.has_database_format`.
- **Reading package files** (`.PKGINFO` inside `.pkg.tar*` archives, plain,
  gzip, bzip2, xz or zstd compressed): `repoctl.readpkg.read_package` and
  `repoctl.readpkg.parse_pkginfo`.
- **Reading databases**: repository databases (`.db.tar*`), the sync
  databases enabled in `/etc/pacman.conf`, and the local database of
  installed packages: `repoctl.database.read_database`,
  `read_sync_database`, `read_all_sync_databases`, `read_local_database`,
  `enabled_repositories` and `is_database_locked`.
- **Reading directories** of packages, using the database entry instead of
  unpacking a file when the database is newer than the file:
  `repoctl.readdir.read_dir`, `read_every_file_in_dir`, `read_names`,
  `read_files` and `read_dir_approx_only_names`.
- **Querying the AUR** RPC interface: `repoctl.aur.read`, `read_all` and
  `search_by_name`. Missing packages raise `repoctl.aur.NotFoundError`,
  which carries both the missing `names` and the `packages` that were found.
- **A combined view** of each package across the filesystem, the database
  and the AUR: `repoctl.meta.MetaPackage`, `read_meta`, `read_repo` and
  `read_aur`.
- **Filters and key functions** over package lists: `repoctl.pkgutil`
  (`Filter` objects combine with `&`, `|` and `~`).
- **Configuration** with several repository profiles, read from TOML:
  `repoctl.config.Configuration`, `find_all`, `read`, `default` and `new`.
- **Repository management**: adding, moving, linking, removing, updating and
  backing up packages: `repoctl.repository.Repo`.

## Installation

Install the package with your usual Python installer; it depends on
`requests` and `zstandard`. Changing a repository database runs the
`repo-add` and `repo-remove` programs from Pacman, by default from
`/usr/bin` (the `repo_add` and `repo_remove` fields of `Repo` hold the
paths used). A failing program raises `repoctl.repository.CommandError`,
whose `output` holds what it printed.

## Comparing versions

```python
from repoctl.alpm import vercmp

vercmp("1.0rc1", "1.0")       # -1
vercmp("2:1.0-1", "1:3.6-1")  # 1
vercmp("1.5-1", "1.5")        # 0: the release is only compared when both have one
```

## Reading packages and databases

```python
from repoctl.readpkg import read_package
from repoctl.database import read_database

pkg = read_package("/srv/abs/fairsplit-1.0-1-x86_64.pkg.tar.zst")
print(pkg.name, pkg.version, pkg.depends)

for entry in read_database("/srv/abs/atlas.db.tar.gz"):
    print(entry.name, entry.version)
```

Functions that go through many files take an `on_error` callback. Each error
is passed to it and work continues; without a callback the first error is
raised.

## Looking at a repository

```python
from repoctl.repository import Repo

repo = Repo.from_path("/srv/abs/atlas.db.tar.gz")

for meta in repo.read_meta():
    if meta.has_update():
        print(f"{meta.name}: {meta.version()} is not yet in the database")
    if meta.has_obsolete():
        print(f"{meta.name}: {len(meta.obsolete())} obsolete file(s)")
```

Checking for newer versions on the AUR:

```python
for upgrade in repo.find_upgrades():
    print(upgrade)  # "name: old -> new"
```

`find_newest`, `find_similar`, `find_updates` and `find_missing` answer
the other common questions, and `list_database`, `list_directory` and
`list_meta` return sorted, de-duplicated lists of strings.

## Changing a repository

```python
repo.copy(["./fairsplit-1.0-1-x86_64.pkg.tar.zst"])  # copy in and add to database
repo.update()                                         # register newest files, dispatch obsolete ones
repo.remove(["fairsplit"])                            # remove from database and dispatch files
```

`move` and `link` work like `copy`. A signature file next to a package
(`name.pkg.tar.zst.sig`) goes along with it; with `require_signature` set,
packages without one are skipped. `create_database` and `delete_database`
create and delete the database itself.

Obsolete package files are either deleted or, when the repository's `backup`
setting is on, moved to its backup directory. A relative backup directory is
taken relative to the repository directory; if it resolves to the repository
directory itself, obsolete files are left where they are
(`Repo.is_obsolete_cached`).

Progress is reported through the standard `logging` module.

## Configuration

Configuration is read from `repoctl/config.toml` in the XDG configuration
directories (`$XDG_CONFIG_DIRS`, then `$XDG_CONFIG_HOME`), or only from the
path in `$REPOCTL_CONFIG` when that is set.

```python
from repoctl import config
from repoctl.repository import Repo

conf = config.find_all()
profile, name = conf.select_profile()
repo = Repo.from_conf(conf)
```

A configuration file looks like this:

```toml
columnate = false
color = "auto"
quiet = false
default_profile = "default"

[profiles.default]
  repo = "/srv/abs/atlas.db.tar.gz"
  add_params = []
  rm_params = []
  ignore_aur = []
  require_signature = false
  backup = false
  backup_dir = "backup/"
  interactive = false
  pre_action = ""
  post_action = ""
```

Files in the older single-repository format, without profiles, are still
understood: their settings are applied to the selected profile. Unknown keys
raise `repoctl.profile.ConfigError`. `Configuration.write_file` writes the
configuration back in the current format, with comments;
`write_properties` writes a short listing instead.

## What it does not do

This is a library only. It installs no command-line program, and it does not
run a profile's `pre_action` or `post_action`, download or unpack PKGBUILD
snapshots from the AUR, work out dependency build orders, or serve a
repository over the network.