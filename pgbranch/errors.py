"""
pgbranch/errors.py
------------------
Exception hierarchy. Lower layers raise these; the CLI layer turns any
PgBranchError into a user-facing error message and a non-zero exit code.
"""

from pathlib import Path
from typing import Optional


class PgBranchError(Exception):
    """Base class for all pgbranch errors."""


class ConfigError(PgBranchError):
    """Invalid, malformed or missing configuration."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)


class EnvVarError(ConfigError):
    """An environment variable holds a value that cannot be parsed."""

    def __init__(self, variable: str, value: str, expected: str = "true/false, 1/0, yes/no, on/off"):
        self.variable = variable
        self.value = value
        super().__init__(f"Invalid value for {variable}: {value!r} (expected {expected})")


class StateError(PgBranchError):
    """The local state file could not be read or written."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(f"{message} ({path})")


class DatabaseError(PgBranchError):
    pass


class GitError(PgBranchError):
    pass


class PostCommandError(PgBranchError):
    """A post-command failed and was not allowed to continue on error."""
