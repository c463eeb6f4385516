"""
repositories/local_overlay_repo.py
----------------------------------
Loads the optional, git-ignored `.pgbranch.local.yml` override file.
"""

from pathlib import Path
from typing import Any, Optional

from pgbranch.config import LOCAL_CONFIG_FILENAME
from pgbranch.models.config import AuthMethod, NamingStrategy
from pgbranch.models.overlay import (
    LocalAuthOverlay,
    LocalBehaviorOverlay,
    LocalDatabaseOverlay,
    LocalGitOverlay,
    LocalOverlay,
)
from pgbranch.repositories.config_repo import parse_post_commands
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


class LocalOverlayRepository:
    """Reads developer-specific overrides that live next to the base config."""

    def find_local_file(self, config_path: Optional[Path], start_dir: Path) -> Path:
        """
        Location of the local override file.

        Args:
            config_path: The discovered base config, if any.
            start_dir: Used when there is no base config.
        """
        directory = config_path.parent if config_path is not None else start_dir
        return directory / LOCAL_CONFIG_FILENAME

    def load(self, config_path: Optional[Path], start_dir: Path) -> Optional[LocalOverlay]:
        """
        Load the local overlay if the file exists.

        Returns:
            The parsed overlay, or None when there is no local file.

        Raises:
            ConfigError: If the file exists but is malformed.
        """
        path = self.find_local_file(config_path, start_dir)
        if not path.is_file():
            return None
        logger.debug(f"Loading local overrides from {path}")
        return self._parse(load_yaml_mapping(path), path)

    def _parse(self, data: dict[str, Any], path: Path) -> LocalOverlay:
        db = section(data, "database", path)
        git = section(data, "git", path)
        behavior = section(data, "behavior", path)

        auth: Optional[LocalAuthOverlay] = None
        if db.get("auth") is not None:
            raw_auth = section(db, "auth", path)
            auth = LocalAuthOverlay(
                methods=get_enum_list(raw_auth, "methods", AuthMethod, path, "database.auth"),
                pgpass_file=get_str(raw_auth, "pgpass_file", path, "database.auth"),
                service_name=get_str(raw_auth, "service_name", path, "database.auth"),
                prompt_for_password=get_bool(raw_auth, "prompt_for_password", path, "database.auth"),
            )

        return LocalOverlay(
            disabled=get_bool(data, "disabled", path, "local"),
            disabled_branches=get_str_list(data, "disabled_branches", path, "local"),
            database=LocalDatabaseOverlay(
                host=get_str(db, "host", path, "database"),
                port=get_int(db, "port", path, "database"),
                user=get_str(db, "user", path, "database"),
                password=get_str(db, "password", path, "database"),
                template_database=get_str(db, "template_database", path, "database"),
                database_prefix=get_str(db, "database_prefix", path, "database"),
                auth=auth,
            ),
            git=LocalGitOverlay(
                auto_create_on_branch=get_bool(git, "auto_create_on_branch", path, "git"),
                auto_switch_on_branch=get_bool(git, "auto_switch_on_branch", path, "git"),
                main_branch=get_str(git, "main_branch", path, "git"),
                auto_create_branch_filter=get_str(git, "auto_create_branch_filter", path, "git"),
                branch_filter_regex=get_str(git, "branch_filter_regex", path, "git"),
                exclude_branches=get_str_list(git, "exclude_branches", path, "git"),
            ),
            behavior=LocalBehaviorOverlay(
                auto_cleanup=get_bool(behavior, "auto_cleanup", path, "behavior"),
                max_branches=get_int(behavior, "max_branches", path, "behavior"),
                no_branch_limit="max_branches" in behavior and behavior["max_branches"] is None,
                naming_strategy=get_enum(behavior, "naming_strategy", NamingStrategy, path, "behavior"),
            ),
            post_commands=parse_post_commands(data.get("post_commands"), path),
        )
