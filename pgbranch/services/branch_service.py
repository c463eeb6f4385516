"""
services/branch_service.py
--------------------------
Business logic for database branches.
Orchestrates the local state, the database repository, Git and post-commands.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from pgbranch.config import MAIN_BRANCH_MARKER
from pgbranch.errors import DatabaseError
from pgbranch.repositories.database_repo import DatabaseRepository
from pgbranch.repositories.state_repo import LocalStateRepository
from pgbranch.services.branch_classifier import should_create_branch, should_switch_on_branch
from pgbranch.services.config_resolver import EffectiveConfig
from pgbranch.services.naming import get_database_name, get_normalized_branch_name
from pgbranch.services.post_command_service import PostCommandExecutor
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

Echo = Callable[[str], None]


@dataclass
class BranchListing:
    """Branches to show in `pgbranch list`, newest first after the main entry."""
    template_database: str
    branches: list[str] = field(default_factory=list)
    current: Optional[str] = None
    error: Optional[str] = None

    def is_current(self, branch: str) -> bool:
        return self.current is not None and self.current == branch


class BranchService:
    """
    Handles all branch-level operations for one effective configuration.

    Workflow for a switch:
        1. Normalize the branch name.
        2. Record it in the local state (before touching the database).
        3. Make sure the branch database exists; failures are reported, not fatal.
        4. Run the post-commands.
    """

    def __init__(self, effective: EffectiveConfig,
                 db_repo: Optional[DatabaseRepository] = None,
                 state_repo: Optional[LocalStateRepository] = None,
                 echo: Optional[Echo] = None):
        self.effective = effective
        self.config = effective.merged()
        self.db_repo = db_repo or DatabaseRepository(self.config)
        self.state_repo = state_repo or LocalStateRepository()
        self.echo = echo or (lambda message: None)

    # ── Switching ─────────────────────────────────────────

    def switch(self, branch_name: str) -> str:
        """
        Switch to the database branch for `branch_name`, creating it if needed.

        Returns:
            The normalized branch name recorded in the local state.

        Raises:
            StateError: If the local state cannot be written.
            PostCommandError: If a post-command fails.
        """
        normalized = get_normalized_branch_name(branch_name)
        self.echo(f"🔄 Switching to PostgreSQL branch: {normalized}")
        self._set_current_branch(normalized)

        created = False
        try:
            if normalized not in self.db_repo.list_branch_databases():
                self.echo(f"📦 Creating database branch: {normalized}")
                created = self.db_repo.create_database_branch(normalized)
                if created:
                    self.echo(f"✅ Created database branch: {normalized}")
        except DatabaseError as e:
            logger.warning(f"Database operation failed while switching to {normalized}: {e}")
            self.echo(f"⚠️  Database operation failed: {e}")
            self.echo("💡 Branch state updated, but the database could not be prepared")

        if created:
            self._auto_cleanup()

        self.echo(f"✅ Switched to PostgreSQL branch: {normalized}")
        self._run_post_commands(normalized)
        return normalized

    def switch_to_main(self) -> None:
        """Point this checkout at the template database."""
        self.echo("🔄 Switching to main database")
        self._set_current_branch(MAIN_BRANCH_MARKER)
        self.echo(f"✅ Switched to main database: {self.config.database.template_database}")
        self._run_post_commands(MAIN_BRANCH_MARKER)

    def test_switch(self, branch_name: str) -> str:
        """Run the post-commands for `branch_name` without touching state or the database."""
        normalized = get_normalized_branch_name(branch_name)
        self.echo(f"🧪 Testing switch to PostgreSQL branch: {normalized}")
        self.echo("💡 No local state or database changes are made")
        self._run_post_commands(normalized)
        return normalized

    def handle_git_event(self) -> Optional[str]:
        """
        React to a Git checkout or merge.

        Returns:
            The logical branch switched to ("_main" for the template
            database), or None if nothing was done.
        """
        if self.effective.should_exit_early():
            logger.info("pgbranch is disabled for this checkout or branch, ignoring Git event")
            return None
        if self.effective.skip_hooks:
            logger.info("PGBRANCH_SKIP_HOOKS is set, ignoring Git event")
            return None

        git_branch = self.effective.current_git_branch()
        if git_branch is None:
            logger.info("No current Git branch, ignoring Git event")
            return None
        logger.info(f"Git hook triggered for branch: {git_branch}")

        if git_branch == self.config.git.main_branch:
            self.switch_to_main()
            return MAIN_BRANCH_MARKER
        if not should_switch_on_branch(git_branch, self.config):
            logger.info(f"Git branch {git_branch} filtered out by auto_switch configuration")
            return None
        if not should_create_branch(git_branch, self.config):
            logger.info(f"Git branch {git_branch} configured not to create a PostgreSQL branch")
            return None
        return self.switch(git_branch)

    # ── Current branch ────────────────────────────────────

    def current_branch(self) -> str:
        """
        The active logical branch.

        Falls back to a default derived from Git when nothing is recorded:
        the main Git branch (or no branch at all) means "_main", a branch
        that would get a database means its normalized name.
        """
        recorded = None
        if self.effective.config_path is not None:
            recorded = self.state_repo.get_current_branch(self.effective.config_path)
        if recorded:
            return recorded

        git_branch = self.effective.current_git_branch()
        if git_branch is None or git_branch == self.config.git.main_branch:
            return MAIN_BRANCH_MARKER
        if should_create_branch(git_branch, self.config):
            return get_normalized_branch_name(git_branch)
        return MAIN_BRANCH_MARKER

    # ── Create / Delete / List / Cleanup ──────────────────

    def create(self, branch_name: str) -> str:
        """
        Create the database for `branch_name` and run the post-commands.

        Returns:
            The database name.
        """
        db_name = get_database_name(branch_name, self.config)
        logger.info(f"Creating database branch: {branch_name}")
        if self.db_repo.create_database_branch(branch_name):
            self.echo(f"✅ Created database branch: {branch_name} ({db_name})")
        else:
            self.echo(f"ℹ️  Database branch already exists: {branch_name} ({db_name})")
        self._run_post_commands(branch_name)
        return db_name

    def delete(self, branch_name: str) -> bool:
        logger.info(f"Deleting database branch: {branch_name}")
        dropped = self.db_repo.drop_database_branch(branch_name)
        if dropped:
            self.echo(f"✅ Deleted database branch: {branch_name}")
        else:
            self.echo(f"ℹ️  Database branch does not exist: {branch_name}")
        return dropped

    def list_branches(self) -> BranchListing:
        """
        Existing branch databases plus the current branch.

        If the server cannot be reached the listing still carries the
        current branch from the local state, along with the error.
        """
        listing = BranchListing(
            template_database=self.config.database.template_database,
            current=self.current_branch(),
        )
        try:
            listing.branches = self.db_repo.list_branch_databases()
        except DatabaseError as e:
            logger.warning(f"Could not list database branches: {e}")
            listing.error = str(e)
            if listing.current != MAIN_BRANCH_MARKER:
                listing.branches = [listing.current]
        return listing

    def cleanup(self, max_count: Optional[int] = None) -> list[str]:
        """
        Drop all but the newest `max_count` branch databases.

        Args:
            max_count: Number to keep (default: behavior.max_branches, or 10).

        Returns:
            Branch names that were dropped.
        """
        if max_count is None:
            max_count = self.config.behavior.max_branches
        if max_count is None:
            max_count = 10
        logger.info(f"Cleaning up old branches, keeping {max_count} most recent")
        return self.db_repo.cleanup_old_branches(max_count)

    # ── Helpers ───────────────────────────────────────────

    def _set_current_branch(self, branch: str) -> None:
        if self.effective.config_path is None:
            logger.debug("No config file, not recording the current branch")
            return
        self.state_repo.set_current_branch(self.effective.config_path, branch)

    def _auto_cleanup(self) -> None:
        behavior = self.config.behavior
        if not behavior.auto_cleanup or behavior.max_branches is None:
            return
        try:
            dropped = self.db_repo.cleanup_old_branches(behavior.max_branches)
        except DatabaseError as e:
            logger.warning(f"Automatic cleanup failed: {e}")
            return
        for branch in dropped:
            self.echo(f"🧹 Removed old database branch: {branch}")

    def _run_post_commands(self, branch_name: str) -> None:
        if not self.config.post_commands:
            return
        self.echo("🔧 Executing post-commands...")
        executor = PostCommandExecutor(self.config, branch_name, self.effective.project_dir, echo=self.echo)
        count = executor.execute_all()
        self.echo(f"✅ {count}/{len(self.config.post_commands)} post-command(s) completed")
