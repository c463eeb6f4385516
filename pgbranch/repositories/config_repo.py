"""
repositories/config_repo.py
---------------------------
Discovery, parsing and saving of the versioned `.pgbranch.yml` file.
"""

from pathlib import Path
from typing import Any, Optional

import yaml

from pgbranch.config import CONFIG_FILENAMES
from pgbranch.errors import ConfigError
from pgbranch.models.config import (
    AuthConfig,
    AuthMethod,
    BaseConfig,
    BehaviorConfig,
    DatabaseConfig,
    GitConfig,
    NamingStrategy,
)
from pgbranch.models.post_command import parse_post_command, post_command_to_dict
from pgbranch.utils.logger import get_logger
from pgbranch.utils.yaml_fields import (
    get_bool,
    get_enum,
    get_enum_list,
    get_int,
    get_str,
    get_str_list,
    load_yaml_mapping,
    section,
)

logger = get_logger(__name__)

# Branch state used to live in the versioned file; it is read and dropped.
LEGACY_KEYS = ("current_branch",)


class ConfigRepository:
    """Finds, loads and writes the base configuration file."""

    # ── DISCOVERY ─────────────────────────────────────────

    def find_config_file(self, start_dir: Path) -> Optional[Path]:
        """
        Walk from `start_dir` up to the filesystem root looking for a config file.

        In each directory `.pgbranch.yml` wins over `.pgbranch.yaml`.

        Args:
            start_dir: Directory to start from (usually the working directory).

        Returns:
            Path of the first config file found, or None.
        """
        current = start_dir.resolve()
        for directory in [current, *current.parents]:
            for filename in CONFIG_FILENAMES:
                candidate = directory / filename
                if candidate.is_file():
                    logger.debug(f"Found config file: {candidate}")
                    return candidate
        return None

    # ── LOAD ──────────────────────────────────────────────

    def load(self, path: Path) -> BaseConfig:
        """
        Parse a config file, filling every missing field with its default.

        Raises:
            ConfigError: If the file is unreadable or malformed.
        """
        data = load_yaml_mapping(path)
        for key in LEGACY_KEYS:
            if key in data:
                logger.debug(f"Ignoring deprecated '{key}' in {path}; branch state is kept in local state now")
        return self._parse(data, path)

    def load_with_path(self, start_dir: Path) -> tuple[BaseConfig, Optional[Path]]:
        """
        Discover and load the config file, or fall back to built-in defaults.

        Returns:
            (config, path) where path is None if no file was found.
        """
        path = self.find_config_file(start_dir)
        if path is None:
            logger.info("No .pgbranch file found, using default configuration")
            return BaseConfig(), None
        return self.load(path), path

    # ── SAVE ──────────────────────────────────────────────

    def save(self, config: BaseConfig, path: Path) -> None:
        """Write `config` as YAML to `path`."""
        content = yaml.safe_dump(config_to_dict(config), sort_keys=False, allow_unicode=True)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to write config file: {exc}", path) from exc
        logger.info(f"Wrote configuration to {path}")

    # ── PARSING ───────────────────────────────────────────

    def _parse(self, data: dict[str, Any], path: Path) -> BaseConfig:
        db = section(data, "database", path)
        auth = section(db, "auth", path)
        git = section(data, "git", path)
        behavior = section(data, "behavior", path)
        defaults = BaseConfig()

        def pick(value, default):
            return default if value is None else value

        auth_config = AuthConfig(
            methods=pick(get_enum_list(auth, "methods", AuthMethod, path, "database.auth"),
                         defaults.database.auth.methods),
            pgpass_file=get_str(auth, "pgpass_file", path, "database.auth"),
            service_name=get_str(auth, "service_name", path, "database.auth"),
            prompt_for_password=pick(get_bool(auth, "prompt_for_password", path, "database.auth"),
                                     defaults.database.auth.prompt_for_password),
        )
        database = DatabaseConfig(
            host=pick(get_str(db, "host", path, "database"), defaults.database.host),
            port=pick(get_int(db, "port", path, "database"), defaults.database.port),
            user=pick(get_str(db, "user", path, "database"), defaults.database.user),
            password=get_str(db, "password", path, "database"),
            template_database=pick(get_str(db, "template_database", path, "database"),
                                   defaults.database.template_database),
            database_prefix=pick(get_str(db, "database_prefix", path, "database"),
                                 defaults.database.database_prefix),
            auth=auth_config,
        )
        git_config = GitConfig(
            auto_create_on_branch=pick(get_bool(git, "auto_create_on_branch", path, "git"),
                                       defaults.git.auto_create_on_branch),
            auto_switch_on_branch=pick(get_bool(git, "auto_switch_on_branch", path, "git"),
                                       defaults.git.auto_switch_on_branch),
            main_branch=pick(get_str(git, "main_branch", path, "git"), defaults.git.main_branch),
            auto_create_branch_filter=get_str(git, "auto_create_branch_filter", path, "git"),
            branch_filter_regex=get_str(git, "branch_filter_regex", path, "git"),
            exclude_branches=pick(get_str_list(git, "exclude_branches", path, "git"),
                                  defaults.git.exclude_branches),
        )
        behavior_config = BehaviorConfig(
            auto_cleanup=pick(get_bool(behavior, "auto_cleanup", path, "behavior"),
                              defaults.behavior.auto_cleanup),
            # An explicit `max_branches: null` means "no limit".
            max_branches=(get_int(behavior, "max_branches", path, "behavior")
                          if "max_branches" in behavior else defaults.behavior.max_branches),
            naming_strategy=pick(get_enum(behavior, "naming_strategy", NamingStrategy, path, "behavior"),
                                 defaults.behavior.naming_strategy),
        )
        return BaseConfig(
            database=database,
            git=git_config,
            behavior=behavior_config,
            post_commands=parse_post_commands(data.get("post_commands"), path) or (),
        )


def parse_post_commands(raw: Any, path: Path) -> Optional[tuple]:
    """Parse a `post_commands` list; None when the key is absent or null."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ConfigError("'post_commands' must be a list", path)
    try:
        return tuple(parse_post_command(entry, i) for i, entry in enumerate(raw))
    except ConfigError as exc:
        raise ConfigError(str(exc), path) from exc


def config_to_dict(config: BaseConfig) -> dict[str, Any]:
    """Render a BaseConfig in the same layout the loader reads."""
    db = config.database
    return {
        "database": {
            "host": db.host,
            "port": db.port,
            "user": db.user,
            "password": db.password,
            "template_database": db.template_database,
            "database_prefix": db.database_prefix,
            "auth": {
                "methods": [m.value for m in db.auth.methods],
                "pgpass_file": db.auth.pgpass_file,
                "service_name": db.auth.service_name,
                "prompt_for_password": db.auth.prompt_for_password,
            },
        },
        "git": {
            "auto_create_on_branch": config.git.auto_create_on_branch,
            "auto_switch_on_branch": config.git.auto_switch_on_branch,
            "main_branch": config.git.main_branch,
            "auto_create_branch_filter": config.git.auto_create_branch_filter,
            "branch_filter_regex": config.git.branch_filter_regex,
            "exclude_branches": list(config.git.exclude_branches),
        },
        "behavior": {
            "auto_cleanup": config.behavior.auto_cleanup,
            "max_branches": config.behavior.max_branches,
            "naming_strategy": config.behavior.naming_strategy.value,
        },
        "post_commands": [post_command_to_dict(c) for c in config.post_commands],
    }
