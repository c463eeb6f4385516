"""
services/config_resolver.py
---------------------------
Combines the three configuration layers into one effective configuration.

Precedence for every overlapping field, highest first:
    environment > .pgbranch.local.yml > .pgbranch.yml > built-in default

The merge is recomputed on every `merged()` call from three immutable
snapshots; nothing is cached.
"""

import re
from dataclasses import fields, replace
from pathlib import Path
from typing import Callable, Mapping, Optional

from pgbranch.errors import ConfigError
from pgbranch.git.repository import GitRepository
from pgbranch.models.config import BaseConfig
from pgbranch.models.overlay import EnvOverlay, LocalOverlay
from pgbranch.repositories.config_repo import ConfigRepository
from pgbranch.repositories.env_overlay_repo import EnvOverlayRepository
from pgbranch.repositories.local_overlay_repo import LocalOverlayRepository
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

CurrentBranchProvider = Callable[[], Optional[str]]


def _set_fields(overlay, skip: tuple[str, ...] = ()) -> dict:
    """Fields of an overlay dataclass that are actually set."""
    return {
        f.name: getattr(overlay, f.name)
        for f in fields(overlay)
        if f.name not in skip and getattr(overlay, f.name) is not None
    }


def apply_local_overlay(config: BaseConfig, local: LocalOverlay) -> BaseConfig:
    """Apply every set leaf of the local overlay on top of `config`."""
    auth = config.database.auth
    if local.database.auth is not None:
        auth = replace(auth, **_set_fields(local.database.auth))
    database = replace(config.database, auth=auth, **_set_fields(local.database, skip=("auth",)))
    git = replace(config.git, **_set_fields(local.git))
    behavior = replace(config.behavior, **_set_fields(local.behavior, skip=("no_branch_limit",)))
    if local.behavior.no_branch_limit:
        behavior = replace(behavior, max_branches=None)
    post_commands = local.post_commands if local.post_commands is not None else config.post_commands
    return replace(config, database=database, git=git, behavior=behavior, post_commands=post_commands)


def apply_env_overlay(config: BaseConfig, env: EnvOverlay) -> BaseConfig:
    """Apply the environment variables that map onto config leaves."""
    database = replace(config.database, **_set_fields_named(env, {
        "database_host": "host",
        "database_port": "port",
        "database_user": "user",
        "database_password": "password",
        "database_prefix": "database_prefix",
    }))
    git = replace(config.git, **_set_fields_named(env, {
        "auto_create": "auto_create_on_branch",
        "auto_switch": "auto_switch_on_branch",
        "branch_filter_regex": "branch_filter_regex",
    }))
    return replace(config, database=database, git=git)


def _set_fields_named(env: EnvOverlay, mapping: Mapping[str, str]) -> dict:
    return {
        target: getattr(env, source)
        for source, target in mapping.items()
        if getattr(env, source) is not None
    }


def matches_disable_pattern(branch_name: str, pattern: str) -> bool:
    """
    Match a `disabled_branches` entry against a branch name.

    Patterns containing `*` become a regex (`*` -> `.*`, nothing else is
    escaped) that may match anywhere in the name; other patterns must be
    equal to the name. A pattern that does not compile matches nothing.
    """
    if "*" not in pattern:
        return branch_name == pattern
    regex = pattern.replace("*", ".*")
    try:
        return re.search(regex, branch_name) is not None
    except re.error as e:
        logger.warning(f"Invalid disabled branch pattern {pattern!r}: {e}")
        return False


def validate_config(config: BaseConfig) -> None:
    """
    Check the invariants the rest of pgbranch relies on.

    Raises:
        ConfigError: On the first violated rule.
    """
    database = config.database
    if not database.host:
        raise ConfigError("Database host cannot be empty")
    if not 0 < database.port < 65536:
        raise ConfigError(f"Database port must be between 1 and 65535, got {database.port}")
    if not database.user:
        raise ConfigError("Database user cannot be empty")
    if not database.template_database:
        raise ConfigError("Template database cannot be empty")
    if not database.database_prefix:
        raise ConfigError("Database prefix cannot be empty")
    if config.behavior.max_branches is not None and config.behavior.max_branches < 0:
        raise ConfigError("behavior.max_branches cannot be negative")


class EffectiveConfig:
    """
    The resolved configuration for one pgbranch invocation.

    Attributes:
        base: Parsed `.pgbranch.yml` (or defaults).
        local: Parsed `.pgbranch.local.yml`, if present.
        env: Snapshot of the PGBRANCH_* variables.
        config_path: Location of the base file, None when defaults are used.
        project_dir: Directory of the base file, or the start directory.
        disabled: pgbranch is turned off for this checkout.
        skip_hooks: Git hook invocations should do nothing.
        current_branch_disabled: The current Git branch is disabled via env.
    """

    def __init__(self, base: BaseConfig, local: Optional[LocalOverlay], env: EnvOverlay,
                 config_path: Optional[Path] = None, project_dir: Optional[Path] = None,
                 current_branch_provider: Optional[CurrentBranchProvider] = None):
        self.base = base
        self.local = local
        self.env = env
        self.config_path = config_path
        self.project_dir = project_dir or (config_path.parent if config_path else Path.cwd())
        self._current_branch_provider = current_branch_provider or self._git_current_branch

        local_disabled = local.disabled if local is not None else None
        self.disabled: bool = _first_set(env.disabled, local_disabled, False)
        self.skip_hooks: bool = _first_set(env.skip_hooks, False)
        self.current_branch_disabled: bool = _first_set(env.current_branch_disabled, False)

    def merged(self) -> BaseConfig:
        """Fully resolved configuration (recomputed on every call)."""
        config = self.base
        if self.local is not None:
            config = apply_local_overlay(config, self.local)
        return apply_env_overlay(config, self.env)

    # ── Disablement ───────────────────────────────────────

    def disabled_branch_patterns(self) -> tuple[str, ...]:
        env_patterns = self.env.disabled_branches or ()
        local_patterns = (self.local.disabled_branches if self.local is not None else None) or ()
        return tuple(env_patterns) + tuple(local_patterns)

    def is_branch_disabled(self, branch_name: str) -> bool:
        """True if any env or local `disabled_branches` pattern matches."""
        return any(matches_disable_pattern(branch_name, p) for p in self.disabled_branch_patterns())

    def check_current_git_branch_disabled(self) -> bool:
        if self.current_branch_disabled:
            return True
        branch = self._current_branch_provider()
        if branch is None:
            return False
        return self.is_branch_disabled(branch)

    def should_exit_early(self) -> bool:
        """True if branch-sync work should be skipped for this invocation."""
        if self.disabled:
            return True
        return self.check_current_git_branch_disabled()

    def current_git_branch(self) -> Optional[str]:
        return self._current_branch_provider()

    def _git_current_branch(self) -> Optional[str]:
        repo = GitRepository.discover(self.project_dir)
        return repo.current_branch() if repo is not None else None


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def load_effective_config(start_dir: Path, environ: Optional[Mapping[str, str]] = None) -> EffectiveConfig:
    """
    Read all three layers and build the effective configuration.

    Args:
        start_dir: Directory from which config discovery starts.
        environ: Environment mapping (defaults to the process environment).

    Raises:
        ConfigError: If a config file is malformed.
        EnvVarError: If a boolean environment variable is malformed.
    """
    env = EnvOverlayRepository(environ).load()
    base, config_path = ConfigRepository().load_with_path(start_dir)
    local = LocalOverlayRepository().load(config_path, start_dir)
    return EffectiveConfig(
        base=base,
        local=local,
        env=env,
        config_path=config_path,
        project_dir=config_path.parent if config_path else start_dir.resolve(),
    )
