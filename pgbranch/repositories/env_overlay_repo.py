"""
repositories/env_overlay_repo.py
--------------------------------
Reads the recognized PGBRANCH_* environment variables into an EnvOverlay.

Booleans are strict: an unrecognized spelling is a user error. The port
is permissive and is simply ignored when it does not parse.
"""

import os
from typing import Mapping, Optional

from pgbranch.errors import EnvVarError
from pgbranch.models.overlay import EnvOverlay
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

# ── Recognized variables ──────────────────────────────────
ENV_DISABLED = "PGBRANCH_DISABLED"
ENV_SKIP_HOOKS = "PGBRANCH_SKIP_HOOKS"
ENV_AUTO_CREATE = "PGBRANCH_AUTO_CREATE"
ENV_AUTO_SWITCH = "PGBRANCH_AUTO_SWITCH"
ENV_CURRENT_BRANCH_DISABLED = "PGBRANCH_CURRENT_BRANCH_DISABLED"
ENV_BRANCH_FILTER_REGEX = "PGBRANCH_BRANCH_FILTER_REGEX"
ENV_DATABASE_HOST = "PGBRANCH_DATABASE_HOST"
ENV_DATABASE_PORT = "PGBRANCH_DATABASE_PORT"
ENV_DATABASE_USER = "PGBRANCH_DATABASE_USER"
ENV_DATABASE_PASSWORD = "PGBRANCH_DATABASE_PASSWORD"
ENV_DATABASE_PREFIX = "PGBRANCH_DATABASE_PREFIX"
ENV_DISABLED_BRANCHES = "PGBRANCH_DISABLED_BRANCHES"


def parse_bool(variable: str, value: str) -> bool:
    """
    Parse a boolean environment value.

    Raises:
        EnvVarError: If `value` is not one of the accepted spellings.
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise EnvVarError(variable, value)


class EnvOverlayRepository:
    """Snapshot of the PGBRANCH_* variables from a given environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def load(self) -> EnvOverlay:
        return EnvOverlay(
            disabled=self._bool(ENV_DISABLED),
            skip_hooks=self._bool(ENV_SKIP_HOOKS),
            auto_create=self._bool(ENV_AUTO_CREATE),
            auto_switch=self._bool(ENV_AUTO_SWITCH),
            current_branch_disabled=self._bool(ENV_CURRENT_BRANCH_DISABLED),
            branch_filter_regex=self.environ.get(ENV_BRANCH_FILTER_REGEX),
            database_host=self.environ.get(ENV_DATABASE_HOST),
            database_port=self._port(),
            database_user=self.environ.get(ENV_DATABASE_USER),
            database_password=self.environ.get(ENV_DATABASE_PASSWORD),
            database_prefix=self.environ.get(ENV_DATABASE_PREFIX),
            disabled_branches=self._list(ENV_DISABLED_BRANCHES),
        )

    def _bool(self, variable: str) -> Optional[bool]:
        value = self.environ.get(variable)
        if value is None:
            return None
        return parse_bool(variable, value)

    def _port(self) -> Optional[int]:
        value = self.environ.get(ENV_DATABASE_PORT)
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError:
            logger.debug(f"Ignoring non-numeric {ENV_DATABASE_PORT}={value!r}")
            return None

    def _list(self, variable: str) -> Optional[tuple[str, ...]]:
        value = self.environ.get(variable)
        if value is None:
            return None
        return tuple(entry.strip() for entry in value.split(",") if entry.strip())
