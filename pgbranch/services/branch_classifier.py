"""
services/branch_classifier.py
-----------------------------
Decides whether a Git branch should get its own database and whether
checking it out should switch databases.

An invalid `branch_filter_regex` never matches: both gates fail closed.
"""

import re

from pgbranch.models.config import BaseConfig
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


def _passes_filters(branch_name: str, config: BaseConfig) -> bool:
    if branch_name in config.git.exclude_branches:
        return False

    pattern = config.git.branch_filter_regex
    if pattern is None:
        return True
    try:
        return re.search(pattern, branch_name) is not None
    except re.error as e:
        logger.warning(f"Invalid regex filter {pattern!r}: {e}")
        return False


def should_create_branch(branch_name: str, config: BaseConfig) -> bool:
    """True if checking out `branch_name` should create a database branch."""
    if not config.git.auto_create_on_branch:
        return False
    return _passes_filters(branch_name, config)


def should_switch_on_branch(branch_name: str, config: BaseConfig) -> bool:
    """
    True if checking out `branch_name` should switch databases.

    The main branch always passes (when auto-switch is on), regardless of
    exclusions and filters.
    """
    if not config.git.auto_switch_on_branch:
        return False
    if branch_name == config.git.main_branch:
        return True
    return _passes_filters(branch_name, config)
