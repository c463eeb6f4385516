"""
services/post_command_service.py
--------------------------------
Runs the configured post-commands after a branch is created or switched to.

Commands and replacement text may use these template variables:
    {branch_name} {db_name} {db_host} {db_port} {db_user}
    {db_password} {template_db} {prefix}
"""

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

from pgbranch.errors import PostCommandError
from pgbranch.models.config import BaseConfig
from pgbranch.models.post_command import PostCommand, ReplaceCommand, ShellCommand, SimpleCommand
from pgbranch.services.naming import get_database_name
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TemplateContext:
    """Values available to post-command templates for one branch."""
    branch_name: str
    db_name: str
    db_host: str
    db_port: int
    db_user: str
    db_password: Optional[str]
    template_db: str
    prefix: str

    @classmethod
    def for_branch(cls, config: BaseConfig, branch_name: str) -> "TemplateContext":
        return cls(
            branch_name=branch_name,
            db_name=get_database_name(branch_name, config),
            db_host=config.database.host,
            db_port=config.database.port,
            db_user=config.database.user,
            db_password=config.database.password,
            template_db=config.database.template_database,
            prefix=config.database.database_prefix,
        )

    def variables(self) -> dict[str, str]:
        values = {
            "branch_name": self.branch_name,
            "db_name": self.db_name,
            "db_host": self.db_host,
            "db_port": str(self.db_port),
            "db_user": self.db_user,
            "template_db": self.template_db,
            "prefix": self.prefix,
        }
        if self.db_password is not None:
            values["db_password"] = self.db_password
        return values

    def substitute(self, template: str) -> str:
        """Replace known `{variable}` placeholders; anything else is left as-is."""
        result = template
        for key, value in self.variables().items():
            result = result.replace(f"{{{key}}}", value)
        return result


def _describe(command: PostCommand) -> str:
    if command.name:
        return command.name
    if isinstance(command, ReplaceCommand):
        return f"replace in {command.file}"
    return command.command


class PostCommandExecutor:
    """
    Executes post-commands for one branch.

    Workflow per command:
        1. Evaluate the condition (skip when false).
        2. Substitute template variables.
        3. Run the shell command or apply the file replacement.
        4. Raise, or log and continue, on failure.
    """

    def __init__(self, config: BaseConfig, branch_name: str, project_dir: Path,
                 echo: Optional[Callable[[str], None]] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config = config
        self.context = TemplateContext.for_branch(config, branch_name)
        self.project_dir = project_dir
        self.echo = echo or (lambda message: None)
        self.environ = os.environ if environ is None else environ

    def execute_all(self) -> int:
        """
        Run every configured post-command in order.

        Returns:
            Number of commands that ran successfully.

        Raises:
            PostCommandError: On the first failure not marked continue_on_error.
        """
        succeeded = 0
        for command in self.config.post_commands:
            label = _describe(command)
            if not self.check_condition(command.condition):
                logger.info(f"Skipping post-command '{label}': condition {command.condition!r} not met")
                self.echo(f"⏭️  Skipped: {label}")
                continue

            self.echo(f"▶️  {label}")
            try:
                self.execute(command)
            except PostCommandError as e:
                if not command.continue_on_error:
                    raise
                logger.warning(f"Post-command '{label}' failed, continuing: {e}")
                self.echo(f"⚠️  {e}")
                continue
            succeeded += 1
        return succeeded

    def execute(self, command: PostCommand) -> None:
        if isinstance(command, ReplaceCommand):
            self._replace_in_file(command)
        elif isinstance(command, ShellCommand):
            self._run_shell(command.command, command.working_dir, command.environment)
        elif isinstance(command, SimpleCommand):
            self._run_shell(command.command, None, {})
        else:
            raise PostCommandError(f"Unknown post-command type: {type(command).__name__}")

    # ── Conditions ────────────────────────────────────────

    def check_condition(self, condition: Optional[str]) -> bool:
        """
        Evaluate a command guard.

        Supported forms: `file_exists:<path>`, `dir_exists:<path>`,
        `env:<VARIABLE>`. Unknown forms are treated as not met.
        """
        if not condition:
            return True
        kind, _, argument = condition.partition(":")
        argument = self.context.substitute(argument.strip())
        if kind == "file_exists":
            return (self.project_dir / argument).is_file()
        if kind == "dir_exists":
            return (self.project_dir / argument).is_dir()
        if kind == "env":
            return bool(self.environ.get(argument))
        logger.warning(f"Unknown post-command condition {condition!r}")
        return False

    # ── Runners ───────────────────────────────────────────

    def _run_shell(self, command: str, working_dir: Optional[str], environment: Mapping[str, str]) -> None:
        rendered = self.context.substitute(command)
        cwd = self.project_dir / self.context.substitute(working_dir) if working_dir else self.project_dir
        env = dict(self.environ)
        env.update({key: self.context.substitute(value) for key, value in environment.items()})

        logger.debug(f"Running post-command in {cwd}: {rendered}")
        try:
            result = subprocess.run(rendered, shell=True, cwd=cwd, env=env, check=False)
        except OSError as e:
            raise PostCommandError(f"Failed to run '{rendered}': {e}") from e
        if result.returncode != 0:
            raise PostCommandError(f"Command '{rendered}' exited with status {result.returncode}")

    def _replace_in_file(self, command: ReplaceCommand) -> None:
        path = self.project_dir / self.context.substitute(command.file)
        replacement = self.context.substitute(command.replacement)

        if not path.exists():
            if not command.create_if_missing:
                raise PostCommandError(f"File not found: {path}")
            self._write(path, replacement + "\n")
            logger.info(f"Created {path}")
            return

        try:
            pattern = re.compile(command.pattern, re.MULTILINE)
        except re.error as e:
            raise PostCommandError(f"Invalid pattern {command.pattern!r}: {e}") from e

        content = self._read(path)
        updated, count = pattern.subn(lambda _match: replacement, content)
        if count == 0:
            separator = "" if not content or content.endswith("\n") else "\n"
            updated = f"{content}{separator}{replacement}\n"
        self._write(path, updated)
        logger.info(f"Updated {path} ({count} replacement(s))")

    @staticmethod
    def _read(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise PostCommandError(f"Failed to read {path}: {e}") from e

    @staticmethod
    def _write(path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise PostCommandError(f"Failed to write {path}: {e}") from e
