"""
git/repository.py
-----------------
Git access through pygit2: current branch, main branch detection and the
post-checkout/post-merge hooks that call `pgbranch git-hook`.
"""

import os
import stat
from pathlib import Path
from typing import Optional

import pygit2

from pgbranch.errors import GitError
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

HOOK_MARKER = "pgbranch auto-generated hook"
HOOK_NAMES = ("post-checkout", "post-merge")

HOOK_SCRIPT = f"""#!/bin/sh
# {HOOK_MARKER}
# Switches the PostgreSQL database branch when the Git branch changes.

# post-checkout passes $3=0 for file checkouts; only react to branch checkouts.
if [ "$3" = "0" ]; then
    exit 0
fi

if command -v pgbranch >/dev/null 2>&1; then
    pgbranch git-hook
else
    echo "pgbranch not found in PATH, skipping database branch switch"
fi
"""

_LOCAL_PREFIX = "refs/heads/"
_ORIGIN_HEAD = "refs/remotes/origin/HEAD"
_ORIGIN_PREFIX = "refs/remotes/origin/"


class GitRepository:
    """A Git repository opened with pygit2."""

    def __init__(self, path: Path):
        try:
            self._repo = pygit2.Repository(str(path))
        except pygit2.GitError as e:
            raise GitError(f"Failed to open Git repository at {path}: {e}") from e

    @classmethod
    def discover(cls, start_dir: Path) -> Optional["GitRepository"]:
        """Open the repository containing `start_dir`, or None if there is none."""
        try:
            found = pygit2.discover_repository(str(start_dir))
        except pygit2.GitError as e:
            logger.debug(f"Git discovery failed in {start_dir}: {e}")
            return None
        if found is None:
            return None
        return cls(Path(found))

    @property
    def git_dir(self) -> Path:
        return Path(self._repo.path)

    @property
    def hooks_dir(self) -> Path:
        return self.git_dir / "hooks"

    # ── Branches ──────────────────────────────────────────

    def current_branch(self) -> Optional[str]:
        """
        Short name of the checked-out branch.

        Returns:
            The branch name (also for a branch with no commits yet), or None
            for a detached or unreadable HEAD.
        """
        try:
            if self._repo.head_is_detached:
                return None
            if self._repo.head_is_unborn:
                target = self._repo.lookup_reference("HEAD").target
                return target[len(_LOCAL_PREFIX):] if str(target).startswith(_LOCAL_PREFIX) else None
            return self._repo.head.shorthand or None
        except (pygit2.GitError, KeyError) as e:
            logger.debug(f"Could not read HEAD: {e}")
            return None

    def branch_exists(self, branch_name: str) -> bool:
        return branch_name in self._repo.branches.local

    def detect_main_branch(self) -> Optional[str]:
        """
        Guess the project's main branch.

        Tries origin/HEAD, then local `main`, then `master`, then whatever is
        checked out.
        """
        origin_head = self._repo.references.get(_ORIGIN_HEAD)
        if origin_head is not None and isinstance(origin_head.target, str):
            if origin_head.target.startswith(_ORIGIN_PREFIX):
                return origin_head.target[len(_ORIGIN_PREFIX):]
        for candidate in ("main", "master"):
            if self.branch_exists(candidate):
                return candidate
        return self.current_branch()

    # ── Hooks ─────────────────────────────────────────────

    def install_hooks(self) -> list[Path]:
        """Write the pgbranch post-checkout and post-merge hooks."""
        installed = []
        try:
            self.hooks_dir.mkdir(parents=True, exist_ok=True)
            for name in HOOK_NAMES:
                hook = self.hooks_dir / name
                if hook.exists() and not self.is_pgbranch_hook(hook):
                    logger.warning(f"Overwriting existing {name} hook at {hook}")
                hook.write_text(HOOK_SCRIPT, encoding="utf-8")
                mode = hook.stat().st_mode
                os.chmod(hook, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
                installed.append(hook)
        except OSError as e:
            raise GitError(f"Failed to install Git hooks: {e}") from e
        logger.info(f"Installed hooks in {self.hooks_dir}")
        return installed

    def uninstall_hooks(self) -> list[Path]:
        """Remove pgbranch hooks; hooks written by anything else are left alone."""
        removed = []
        try:
            for name in HOOK_NAMES:
                hook = self.hooks_dir / name
                if self.is_pgbranch_hook(hook):
                    hook.unlink()
                    removed.append(hook)
        except OSError as e:
            raise GitError(f"Failed to remove Git hooks: {e}") from e
        return removed

    def hooks_installed(self) -> bool:
        return any(self.is_pgbranch_hook(self.hooks_dir / name) for name in HOOK_NAMES)

    @staticmethod
    def is_pgbranch_hook(hook_path: Path) -> bool:
        if not hook_path.is_file():
            return False
        return HOOK_MARKER in hook_path.read_text(encoding="utf-8", errors="replace")
