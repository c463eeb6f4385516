"""
repositories/state_repo.py
--------------------------
Per-checkout record of the active logical branch.

The state lives outside the project (in the user's config directory) so it
is never committed. Records are keyed by the absolute path of the base
config file so that several checkouts of the same project do not collide.

File layout:
    repositories:
      /home/me/project/.pgbranch.yml:
        current_branch: feature_auth
        updated_at: '2026-01-05T09:37:00+00:00'
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from pgbranch.config import STATE_FILE
from pgbranch.errors import StateError
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


class LocalStateRepository:
    """Reads and writes the local state file. Last writer wins; no locking."""

    def __init__(self, state_file: Optional[Path] = None):
        self.state_file = state_file or STATE_FILE

    # ── READ ──────────────────────────────────────────────

    def get_current_branch(self, config_path: Path) -> Optional[str]:
        """
        Current logical branch for a config file.

        Returns:
            The branch identifier ("_main" for the template database), or
            None if there is no record or the record is empty.

        Raises:
            StateError: If the state file exists but cannot be read.
        """
        entry = self._load().get(self._key(config_path)) or {}
        if not isinstance(entry, dict):
            raise StateError("Unexpected content in local state file", self.state_file)
        branch = entry.get("current_branch")
        return branch or None

    # ── WRITE ─────────────────────────────────────────────

    def set_current_branch(self, config_path: Path, branch: Optional[str]) -> None:
        """
        Record the current logical branch for a config file.

        Raises:
            StateError: If the state file cannot be written. Callers must
                not swallow this: losing track of the active branch is
                worse than a failed database operation.
        """
        repositories = self._load()
        repositories[self._key(config_path)] = {
            "current_branch": branch,
            "updated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        self._write(repositories)
        logger.debug(f"Recorded current branch {branch!r} for {config_path}")

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _key(config_path: Path) -> str:
        return str(config_path.resolve())

    def _load(self) -> dict[str, Any]:
        if not self.state_file.exists():
            return {}
        try:
            data = yaml.safe_load(self.state_file.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise StateError(f"Invalid local state file: {exc}", self.state_file) from exc
        except OSError as exc:
            raise StateError(f"Failed to read local state: {exc}", self.state_file) from exc
        if not isinstance(data, dict) or not isinstance(data.get("repositories", {}), dict):
            raise StateError("Unexpected content in local state file", self.state_file)
        return dict(data.get("repositories") or {})

    def _write(self, repositories: dict[str, Any]) -> None:
        content = yaml.safe_dump({"repositories": repositories}, sort_keys=True)
        tmp = self.state_file.with_suffix(self.state_file.suffix + ".tmp")
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(content, encoding="utf-8")
            tmp.replace(self.state_file)
        except OSError as exc:
            raise StateError(f"Failed to write local state: {exc}", self.state_file) from exc
