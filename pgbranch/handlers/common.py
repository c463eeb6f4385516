"""
handlers/common.py
------------------
Shared helpers for the click commands: error translation and config loading.
"""

from functools import wraps
from pathlib import Path
from typing import Callable

import click

from pgbranch.errors import ConfigError, PgBranchError
from pgbranch.services.config_resolver import EffectiveConfig, load_effective_config
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

NO_CONFIG_MESSAGE = (
    "No configuration file found. Please run 'pgbranch init' to create a .pgbranch.yml file first."
)


def pgbranch_errors(func: Callable):
    """
    Decorator that turns PgBranchError into a click error.

    Usage:
        @click.command()
        @pgbranch_errors
        def my_command():
            ...

    The message goes to stderr and the process exits with status 1.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PgBranchError as e:
            logger.debug(f"{func.__name__} failed: {e}", exc_info=True)
            raise click.ClickException(str(e)) from e

    return wrapper


def load_config(require: bool = True) -> EffectiveConfig:
    """
    Resolve the effective configuration from the working directory.

    Args:
        require: Fail when no `.pgbranch.yml` is found.

    Raises:
        ConfigError: If a layer is malformed, or no base file exists and
            one is required.
    """
    effective = load_effective_config(Path.cwd())
    if require and effective.config_path is None:
        raise ConfigError(NO_CONFIG_MESSAGE)
    return effective
