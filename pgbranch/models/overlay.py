"""
models/overlay.py
-----------------
Partial configuration layers that sit on top of BaseConfig.

    - LocalOverlay: `.pgbranch.local.yml`, mirrors BaseConfig with every
      leaf optional, plus the `disabled` switches.
    - EnvOverlay: the fixed set of PGBRANCH_* environment variables.

A field left as None means "not set in this layer".
"""

from dataclasses import dataclass, field
from typing import Optional

from pgbranch.models.config import AuthMethod, NamingStrategy
from pgbranch.models.post_command import PostCommand


@dataclass(frozen=True)
class LocalAuthOverlay:
    methods: Optional[tuple[AuthMethod, ...]] = None
    pgpass_file: Optional[str] = None
    service_name: Optional[str] = None
    prompt_for_password: Optional[bool] = None


@dataclass(frozen=True)
class LocalDatabaseOverlay:
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    template_database: Optional[str] = None
    database_prefix: Optional[str] = None
    auth: Optional[LocalAuthOverlay] = None


@dataclass(frozen=True)
class LocalGitOverlay:
    auto_create_on_branch: Optional[bool] = None
    auto_switch_on_branch: Optional[bool] = None
    main_branch: Optional[str] = None
    auto_create_branch_filter: Optional[str] = None
    branch_filter_regex: Optional[str] = None
    exclude_branches: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class LocalBehaviorOverlay:
    auto_cleanup: Optional[bool] = None
    max_branches: Optional[int] = None
    # `max_branches: null` written explicitly, lifting the limit.
    no_branch_limit: bool = False
    naming_strategy: Optional[NamingStrategy] = None


@dataclass(frozen=True)
class LocalOverlay:
    """
    Developer-specific overrides, meant to stay out of version control.

    Attributes:
        disabled: Turn pgbranch off entirely for this checkout.
        disabled_branches: Exact names or `*` globs that pgbranch ignores.
        database, git, behavior: Per-section leaf overrides.
        post_commands: Replaces the base list wholesale when set.
    """
    disabled: Optional[bool] = None
    disabled_branches: Optional[tuple[str, ...]] = None
    database: LocalDatabaseOverlay = field(default_factory=LocalDatabaseOverlay)
    git: LocalGitOverlay = field(default_factory=LocalGitOverlay)
    behavior: LocalBehaviorOverlay = field(default_factory=LocalBehaviorOverlay)
    post_commands: Optional[tuple[PostCommand, ...]] = None


@dataclass(frozen=True)
class EnvOverlay:
    disabled: Optional[bool] = None
    skip_hooks: Optional[bool] = None
    auto_create: Optional[bool] = None
    auto_switch: Optional[bool] = None
    current_branch_disabled: Optional[bool] = None
    branch_filter_regex: Optional[str] = None
    database_host: Optional[str] = None
    database_port: Optional[int] = None
    database_user: Optional[str] = None
    database_password: Optional[str] = None
    database_prefix: Optional[str] = None
    disabled_branches: Optional[tuple[str, ...]] = None
