"""
models/config.py
----------------
Domain model for the versioned `.pgbranch.yml` configuration.

Every field carries its built-in default, so `BaseConfig()` is the
configuration used when no file is found on disk.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pgbranch.models.post_command import PostCommand


class NamingStrategy(str, Enum):
    """How the sanitized branch name is combined with the database prefix."""
    PREFIX = "prefix"
    SUFFIX = "suffix"
    REPLACE = "replace"


class AuthMethod(str, Enum):
    """Password sources, tried in the order the user lists them."""
    PASSWORD = "password"
    PGPASS = "pgpass"
    ENVIRONMENT = "environment"
    SERVICE = "service"
    PROMPT = "prompt"
    SYSTEM = "system"


DEFAULT_AUTH_METHODS: tuple[AuthMethod, ...] = (
    AuthMethod.ENVIRONMENT,
    AuthMethod.PGPASS,
    AuthMethod.PASSWORD,
    AuthMethod.PROMPT,
)


@dataclass(frozen=True)
class AuthConfig:
    """
    Password resolution settings.

    Attributes:
        methods: Ordered list of sources to try.
        pgpass_file: Custom pgpass location (default: ~/.pgpass).
        service_name: Section of ~/.pg_service.conf to read.
        prompt_for_password: Whether the `prompt` method may ask interactively.
    """
    methods: tuple[AuthMethod, ...] = DEFAULT_AUTH_METHODS
    pgpass_file: Optional[str] = None
    service_name: Optional[str] = None
    prompt_for_password: bool = False


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: Optional[str] = None
    template_database: str = "template0"
    database_prefix: str = "pgbranch"
    auth: AuthConfig = field(default_factory=AuthConfig)


@dataclass(frozen=True)
class GitConfig:
    """
    Git integration settings.

    `auto_create_branch_filter` is carried for round-tripping older files;
    branch gating reads `branch_filter_regex` only.
    """
    auto_create_on_branch: bool = True
    auto_switch_on_branch: bool = True
    main_branch: str = "main"
    auto_create_branch_filter: Optional[str] = None
    branch_filter_regex: Optional[str] = None
    exclude_branches: tuple[str, ...] = ("main", "master")


@dataclass(frozen=True)
class BehaviorConfig:
    auto_cleanup: bool = False
    max_branches: Optional[int] = 10
    naming_strategy: NamingStrategy = NamingStrategy.PREFIX


@dataclass(frozen=True)
class BaseConfig:
    """The fully populated configuration, as read from `.pgbranch.yml`."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    git: GitConfig = field(default_factory=GitConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    post_commands: tuple[PostCommand, ...] = ()
