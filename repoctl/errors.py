"""Errors raised when working with a repository."""

from __future__ import annotations

import json


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


class RepoError(Exception):
    """Base class of repository errors."""


class ProfileInvalidError(RepoError):
    """Raised when no valid profile is available."""

    def __init__(self, message: str = "require valid profile"):
        super().__init__(message)


class RepoDirRelativeError(RepoError):
    """Raised when the repository directory is not absolute."""

    def __init__(self, message: str = "repository directory path must be absolute"):
        super().__init__(message)


class RepoDirMissingError(RepoError):
    """Raised when the repository directory does not exist."""

    def __init__(self, message: str = "repository directory path does not exist"):
        super().__init__(message)


class PkgDirExistsError(RepoError):
    """Raised when a package destination directory already exists."""

    def __init__(self, message: str = "package destination directory already exists"):
        super().__init__(message)


class PkgFileExistsError(RepoError):
    """Raised when a package destination file already exists."""

    def __init__(self, message: str = "package destination file already exists"):
        super().__init__(message)


class NotExistsError(RepoError):
    """Raised when a file does not exist."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        super().__init__(f"file {_quote(filepath)} does not exist")


class InvalidFileError(RepoError):
    """Raised when a path is a file where a directory is wanted, or the reverse."""

    def __init__(self, filepath: str, want_dir: bool = False):
        self.filepath = filepath
        self.want_dir = want_dir
        what = "directory" if want_dir else "file"
        super().__init__(f"expected {what} at {_quote(filepath)}")