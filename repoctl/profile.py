"""Repository profiles, as found in the configuration file."""

from __future__ import annotations

import posixpath
import sys
from dataclasses import dataclass, field

from repoctl.alpm import has_database_format

TOML_FIELDS = {
    "repo": "repository",
    "add_params": "add_parameters",
    "rm_params": "remove_parameters",
    "ignore_aur": "ignore_aur",
    "require_signature": "require_signature",
    "backup": "backup",
    "backup_dir": "backup_dir",
    "interactive": "interactive",
    "pre_action": "pre_action",
    "post_action": "post_action",
}
"""Configuration file keys mapped to Profile attributes."""


class ConfigError(Exception):
    """Raised when the configuration is invalid."""


def _warn_database_extension(database: str) -> None:
    base = posixpath.basename(database).split(".", 1)[0]
    example = posixpath.join(posixpath.dirname(database), base)
    print(
        f'Warning: Specified repository database "{database}" has an unexpected extension.\n'
        "         It should conform to this pattern: .db.tar.(zst|xz|gz|bz2).\n"
        f"         For example: {example}.db.tar.zst",
        file=sys.stderr,
    )


@dataclass
class Profile:
    """Settings for one managed repository."""

    repository: str = ""
    add_parameters: list[str] = field(default_factory=list)
    remove_parameters: list[str] = field(default_factory=list)
    ignore_aur: list[str] = field(default_factory=list)
    require_signature: bool = False
    backup: bool = False
    backup_dir: str = ""
    interactive: bool = False
    pre_action: str = ""
    post_action: str = ""
    _database: str = field(default="", init=False, repr=False, compare=False)
    _repodir: str = field(default="", init=False, repr=False, compare=False)

    @property
    def database(self) -> str:
        """File name of the database, set by init()."""
        return self._database

    @property
    def repodir(self) -> str:
        """Directory holding the database, set by init()."""
        return self._repodir

    def init(self) -> None:
        """Validate the repository path and derive database and directory.

        Call this after every change of ``repository``. Raises ConfigError
        if the path is not absolute; warns on an unusual database extension.
        """
        if not posixpath.isabs(self.repository):
            raise ConfigError("repository path must be absolute")
        self._database = posixpath.basename(self.repository)
        self._repodir = posixpath.dirname(self.repository)
        if not has_database_format(self._database):
            _warn_database_extension(self._database)


def default_profile() -> Profile:
    """Return the profile used when a configuration names none."""
    return Profile(backup_dir="backup/")


def new_profile(repo: str) -> Profile | None:
    """Return a profile for the database at repo, or None if repo is relative."""
    if not posixpath.isabs(repo):
        return None
    p = Profile(repository=repo)
    p._database = posixpath.basename(repo)
    p._repodir = posixpath.dirname(repo)
    return p