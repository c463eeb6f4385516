"""
services/check_service.py
-------------------------
`pgbranch check`: verifies configuration, connectivity, privileges and Git
setup, collecting one result per check instead of stopping at the first
failure.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pgbranch.errors import ConfigError, DatabaseError, GitError
from pgbranch.git.repository import GitRepository
from pgbranch.repositories.database_repo import DatabaseRepository
from pgbranch.services.config_resolver import EffectiveConfig, validate_config
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


class CheckStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckResult:
    label: str
    status: CheckStatus
    message: str


class CheckService:
    """Runs the system checks against the effective configuration."""

    def __init__(self, effective: EffectiveConfig, db_repo: Optional[DatabaseRepository] = None,
                 start_dir: Optional[Path] = None):
        self.effective = effective
        self.config = effective.merged()
        self.db_repo = db_repo or DatabaseRepository(self.config)
        self.start_dir = start_dir or effective.project_dir

    def run_all(self) -> list[CheckResult]:
        logger.info(f"Running system check for {self.effective.config_path or self.start_dir}")
        results = [self.check_config_file()]

        connection = self.check_connection()
        results.append(connection)
        if connection.status is CheckStatus.OK:
            results.append(self.check_template_database())
            results.append(self.check_permissions())

        results.extend(self.check_git())
        if self.config.git.branch_filter_regex is not None:
            results.append(self.check_branch_filter())
        return results

    @staticmethod
    def all_passed(results: list[CheckResult]) -> bool:
        return all(result.status is not CheckStatus.FAILED for result in results)

    # ── Checks ────────────────────────────────────────────

    def check_config_file(self) -> CheckResult:
        label = "Configuration file"
        path = self.effective.config_path
        if path is None:
            return CheckResult(label, CheckStatus.WARNING,
                               "No configuration file found, using defaults (run 'pgbranch init' to create one)")
        try:
            validate_config(self.config)
        except ConfigError as e:
            return CheckResult(label, CheckStatus.FAILED, f"Invalid: {e}")
        return CheckResult(label, CheckStatus.OK, f"Found and valid: {path}")

    def check_connection(self) -> CheckResult:
        label = "PostgreSQL connection"
        try:
            self.db_repo.database_exists(self.config.database.template_database)
        except DatabaseError as e:
            return CheckResult(label, CheckStatus.FAILED, f"Failed: {e}")
        database = self.config.database
        return CheckResult(label, CheckStatus.OK, f"Connected to {database.host}:{database.port} as {database.user}")

    def check_template_database(self) -> CheckResult:
        template = self.config.database.template_database
        label = f"Template database '{template}'"
        try:
            exists = self.db_repo.database_exists(template)
        except DatabaseError as e:
            return CheckResult(label, CheckStatus.FAILED, f"Error checking: {e}")
        if exists:
            return CheckResult(label, CheckStatus.OK, "Found")
        return CheckResult(label, CheckStatus.FAILED, "Not found")

    def check_permissions(self) -> CheckResult:
        label = "Database permissions"
        try:
            can_create = self.db_repo.can_create_databases()
        except DatabaseError as e:
            return CheckResult(label, CheckStatus.FAILED, f"Error checking permissions: {e}")
        if can_create:
            return CheckResult(label, CheckStatus.OK, "Can create databases")
        return CheckResult(label, CheckStatus.FAILED, "Cannot create databases")

    def check_git(self) -> list[CheckResult]:
        try:
            repo = GitRepository.discover(self.start_dir)
        except GitError as e:
            return [CheckResult("Git repository", CheckStatus.FAILED, f"Not accessible: {e}")]
        if repo is None:
            return [CheckResult("Git repository", CheckStatus.FAILED, "Not a Git repository")]

        results = [CheckResult("Git repository", CheckStatus.OK, f"Valid Git repository ({repo.git_dir})")]
        if repo.hooks_installed():
            results.append(CheckResult("Git hooks", CheckStatus.OK, "Installed"))
        else:
            results.append(CheckResult("Git hooks", CheckStatus.WARNING,
                                       "Not installed (run 'pgbranch install-hooks' to install)"))
        return results

    def check_branch_filter(self) -> CheckResult:
        label = "Branch filter regex"
        try:
            re.compile(self.config.git.branch_filter_regex)
        except re.error as e:
            return CheckResult(label, CheckStatus.FAILED, f"Invalid regex: {e}")
        return CheckResult(label, CheckStatus.OK, "Valid regex pattern")
