"""Loading, merging and writing the repoctl configuration."""

from __future__ import annotations

import json
import os
import sys
import tomllib
from dataclasses import dataclass, field
from typing import Any, Iterator, TextIO

from repoctl.profile import TOML_FIELDS, ConfigError, Profile
from repoctl.profile import default_profile as _default_profile
from repoctl.profile import new_profile as _new_profile
from repoctl.template import render_properties, render_template

CONFIGURATION_FILE = "repoctl/config.toml"
"""Path of the configuration file relative to an XDG configuration directory."""

CONFIGURATION_ENV = "REPOCTL_CONFIG"
"""Environment variable that names the only configuration file to read."""

_DEPRECATED = {
    "action_on_completion": "this is now always disabled",
    "unconfigured": "this is now irrelevant",
}

_CONFIG_FIELDS: dict[str, tuple[str, type]] = {
    "columnate": ("columnate", bool),
    "color": ("color", str),
    "quiet": ("quiet", bool),
    "default_profile": ("default_profile", str),
}

_PROFILE_KINDS: dict[str, type] = {
    "repository": str,
    "add_parameters": list,
    "remove_parameters": list,
    "ignore_aur": list,
    "require_signature": bool,
    "backup": bool,
    "backup_dir": str,
    "interactive": bool,
    "pre_action": str,
    "post_action": str,
}


class ProfileUnknownError(ConfigError):
    """Raised when the selected profile does not exist."""

    def __init__(self, name: str = ""):
        self.name = name
        super().__init__("specified profile not found")


def _user_config_home() -> str:
    return os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config"
    )


def _config_dirs() -> list[str]:
    dirs = [d for d in os.environ.get("XDG_CONFIG_DIRS", "").split(":") if d]
    return dirs or ["/etc/xdg"]


def home_conf() -> str:
    """Return the path of the user's configuration file, which may be written to."""
    path = os.environ.get(CONFIGURATION_ENV, "")
    if path:
        return path
    return os.path.join(_user_config_home(), CONFIGURATION_FILE)


def _all_keys(value: Any, key: str) -> Iterator[str]:
    yield key
    if isinstance(value, dict):
        for k, v in value.items():
            yield from _all_keys(v, f"{key}.{k}")


def _check(key: str, value: Any, kind: type) -> None:
    if kind is list:
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise ConfigError(f"field {key}: cannot decode {type(value).__name__} into {kind.__name__}")


def _decode_profile(profile: Profile, table: dict[str, Any], prefix: str = "") -> list[str]:
    """Decode table into profile and return the keys that were not used."""
    undecoded: list[str] = []
    updates: dict[str, Any] = {}
    for key, value in table.items():
        dotted = prefix + key
        attr = TOML_FIELDS.get(key)
        if attr is None:
            undecoded.extend(_all_keys(value, dotted))
            continue
        _check(dotted, value, _PROFILE_KINDS[attr])
        updates[attr] = list(value) if isinstance(value, list) else value
    for attr, value in updates.items():
        setattr(profile, attr, value)
    return undecoded


@dataclass
class Configuration:
    """Global settings and the repository profiles."""

    columnate: bool = False
    color: str = ""
    quiet: bool = False
    debug: bool = False
    current_profile: str = ""
    default_profile: str = ""
    profiles: dict[str, Profile | None] = field(default_factory=dict)

    def select_profile(self) -> tuple[Profile | None, str]:
        """Return the selected profile and its name.

        current_profile takes priority over default_profile. If no profile is
        selected, (None, "") is returned; if the selected one does not exist,
        ProfileUnknownError is raised.
        """
        name = self.current_profile or self.default_profile
        if not name:
            return None, ""
        return self.get_profile(name), name

    def get_profile(self, name: str) -> Profile | None:
        """Return the named profile or raise ProfileUnknownError."""
        try:
            return self.profiles[name]
        except KeyError:
            raise ProfileUnknownError(name) from None

    def _decode(self, doc: dict[str, Any]) -> list[str]:
        undecoded: list[str] = []
        updates: dict[str, Any] = {}
        profiles: dict[str, Profile] = {}
        for key, value in doc.items():
            if key in _CONFIG_FIELDS:
                attr, kind = _CONFIG_FIELDS[key]
                _check(key, value, kind)
                updates[attr] = value
            elif key == "profiles":
                if not isinstance(value, dict):
                    raise ConfigError("field profiles: expected a table")
                for name, table in value.items():
                    if not isinstance(table, dict):
                        raise ConfigError(f"field profiles.{name}: expected a table")
                    p = Profile()
                    undecoded.extend(_decode_profile(p, table, f"profiles.{name}."))
                    profiles[name] = p
            else:
                undecoded.extend(_all_keys(value, key))
        for attr, value in updates.items():
            setattr(self, attr, value)
        self.profiles.update(profiles)
        return undecoded

    def merge_file(self, filepath: str) -> None:
        """Merge the contents of a configuration file into this configuration.

        Old single-repository files are migrated into the selected profile.
        Deprecated options produce a warning, unknown ones a ConfigError.
        """
        if not os.path.isfile(filepath):
            raise ConfigError(f"cannot open {filepath}: file not found")
        try:
            with open(filepath, "rb") as fh:
                doc = tomllib.load(fh)
        except OSError as exc:
            raise ConfigError(f"cannot read {filepath}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"cannot decode {filepath}: {exc}") from exc

        try:
            undecoded = self._decode(doc)
        except ConfigError as exc:
            raise ConfigError(f"cannot decode {filepath}: {exc}") from exc
        if not undecoded:
            return
        first = set(undecoded)

        # Unknown fields may belong to the old format: decode into a profile.
        try:
            p, name = self.select_profile()
        except ProfileUnknownError as exc:
            p, name = None, exc.name
        if p is None:
            p = _default_profile()
            name = name or "default"
            self.profiles[name] = p

        try:
            second = _decode_profile(p, doc)
        except ConfigError as exc:
            raise ConfigError(f"cannot decode into profile {filepath}: {exc}") from exc

        invalid = []
        for key in second:
            if key not in first:
                continue
            if key in _DEPRECATED:
                print(
                    f'Warning: option "{key}" is deprecated; {_DEPRECATED[key]}.',
                    file=sys.stderr,
                )
                continue
            invalid.append(key)
        if invalid:
            quoted = " ".join(json.dumps(k, ensure_ascii=False) for k in invalid)
            raise ConfigError(f"cannot decode unknown fields: [{quoted}]")

    def write_template(self, stream: TextIO) -> None:
        """Write the configuration as a commented TOML file."""
        stream.write(render_template(self))

    def write_properties(self, stream: TextIO) -> None:
        """Write the configuration as a property listing."""
        stream.write(render_properties(self))

    def write_file(self, filepath: str) -> None:
        """Write the configuration to a file, replacing it."""
        with open(filepath, "w", encoding="utf-8") as fh:
            self.write_template(fh)


def default() -> Configuration:
    """Return the default configuration, which has no profiles."""
    return Configuration(color="auto", default_profile="default")


def new(repo: str) -> Configuration:
    """Return a configuration with a default profile for the database at repo."""
    return Configuration(
        color="auto",
        default_profile="default",
        profiles={"default": _new_profile(repo)},
    )


def read(filepath: str) -> Configuration:
    """Read a configuration from the given file on top of the defaults."""
    c = default()
    c.merge_file(filepath)
    return c


def find_all() -> Configuration:
    """Load and merge every configuration file found in the search path.

    If REPOCTL_CONFIG is set, only that file is read. Otherwise the XDG
    system directories are merged first and the user directory last.
    """
    confpath = os.environ.get(CONFIGURATION_ENV, "")
    if confpath:
        return read(confpath)

    c = default()
    paths = [os.path.join(d, CONFIGURATION_FILE) for d in reversed(_config_dirs())]
    paths.append(os.path.join(_user_config_home(), CONFIGURATION_FILE))
    for path in paths:
        if not os.path.isfile(path):
            continue
        try:
            c.merge_file(path)
        except ConfigError as exc:
            print(f"Warning: {exc}.", file=sys.stderr)
    return c