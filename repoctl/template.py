"""Rendering the configuration as a TOML file or as a property listing."""

from __future__ import annotations

from typing import Any

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def _quote(s: str) -> str:
    out = ['"']
    for ch in s:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        else:
            cp = ord(ch)
            if cp < 0x80:
                out.append(f"\\x{cp:02x}")
            elif cp < 0x10000:
                out.append(f"\\u{cp:04x}")
            else:
                out.append(f"\\U{cp:08x}")
    out.append('"')
    return "".join(out)


def printt(value: Any) -> str:
    """Return a TOML representation of a string, list of strings, bool or number."""
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_quote(v) for v in value) + "]"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        s = repr(value)
        return s[:-2] if s.endswith(".0") else s
    return str(value)


_PROPERTIES_PROFILE = """
    [profiles.{key}]
        repo = {repo}
        add_params = {add_params}
        rm_params = {rm_params}
        ignore_aur = {ignore_aur}
        require_signature = {require_signature}
        backup = {backup}
        backup_dir = {backup_dir}
        interactive = {interactive}
        pre_action = {pre_action}
        post_action = {post_action}
    """

_CONFIG_HEADER = """# repoctl configuration

# columnate specifies that listings should be in columns rather than
# in lines. This only applies to the list command.
columnate = {columnate}

# color specifies when to use color. Can be one of auto, always, and never.
color = {color}

# quiet specifies whether repoctl should print more information or less.
# I prefer to know what happens, but if you don't like it, you can change it.
quiet = {quiet}

# default_profile specifies which profile should be used when none is
# specified on the command line.
default_profile = {default_profile}

"""

_CONFIG_PROFILE = """[profiles.{key}]
  # repo is the full path to the repository that will be managed by repoctl.
  # The packages that belong to the repository are assumed to lie in the
  # same folder.
  repo = {repo}

  # add_params is the set of parameters that will be passed to repo-add
  # when it is called. Specify one time for each parameter.
  add_params = {add_params}

  # rm_params is the set of parameters that will be passed to repo-remove
  # when it is called. Specify one time for each parameter.
  rm_params = {rm_params}

  # ignore_aur is a set of package names that are ignored in conjunction
  # with AUR related tasks, such as determining if there is an update or not.
  ignore_aur = {ignore_aur}

  # require_signature prevents packages from being added that do not
  # also have a signature file.
  require_signature = {require_signature}

  # backup specifies whether package files should be backed up or deleted.
  # If it is set to false, then obsolete package files are deleted.
  backup = {backup}

  # backup_dir specifies which directory backups are stored in.
  # - If a relative path is given, then it is interpreted as relative to
  #   the repository directory.
  # - If the path here resolves to the same as repo, then obsolete packages
  #   are effectively ignored by repoctl, if backup is true.
  backup_dir = {backup_dir}

  # interactive specifies that repoctl should ask before doing anything
  # destructive.
  interactive = {interactive}

  # pre_action is a command that should be executed before doing anything
  # with the repository, like reading or modifying it. Useful for mounting
  # a remote filesystem.
  pre_action = {pre_action}

  # post_action is a command that should be executed before exiting.
  post_action = {post_action}
"""


def _profile_values(key: str, p: Any) -> dict[str, str]:
    return {
        "key": key,
        "repo": printt(p.repository),
        "add_params": printt(p.add_parameters),
        "rm_params": printt(p.remove_parameters),
        "ignore_aur": printt(p.ignore_aur),
        "require_signature": printt(p.require_signature),
        "backup": printt(p.backup),
        "backup_dir": printt(p.backup_dir),
        "interactive": printt(p.interactive),
        "pre_action": printt(p.pre_action),
        "post_action": printt(p.post_action),
    }


def _profiles(config: Any) -> list[tuple[str, Any]]:
    return sorted((config.profiles or {}).items())


def render_template(config: Any) -> str:
    """Render the configuration as a commented TOML file."""
    parts = [
        _CONFIG_HEADER.format(
            columnate=printt(config.columnate),
            color=printt(config.color),
            quiet=printt(config.quiet),
            default_profile=printt(config.default_profile),
        )
    ]
    parts.extend(_CONFIG_PROFILE.format(**_profile_values(k, p)) for k, p in _profiles(config))
    parts.append("\n")
    return "".join(parts)


def render_properties(config: Any) -> str:
    """Render the configuration as a human-readable property listing."""
    parts = [
        "Current configuration:\n"
        f"    columnate = {printt(config.columnate)}\n"
        f"    color = {printt(config.color)}\n"
        f"    quiet = {printt(config.quiet)}\n"
        "\n"
        f"    current_profile = {printt(config.current_profile)}\n"
        f"    default_profile = {printt(config.default_profile)}\n"
        "    "
    ]
    parts.extend(
        _PROPERTIES_PROFILE.format(**_profile_values(k, p)) for k, p in _profiles(config)
    )
    parts.append("\n")
    return "".join(parts)