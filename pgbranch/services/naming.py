"""
services/naming.py
------------------
Maps Git branch names to PostgreSQL database identifiers.

The result is always a valid unquoted identifier: at most 63 bytes and
matching ^[a-z_][a-z0-9_$]*$. Names that would be too long are truncated
and suffixed with a short hash of the full name, so two long branches that
share a prefix still get different databases.
"""

import hashlib
import re

from pgbranch.config import FALLBACK_BRANCH_NAME, MAIN_BRANCH_MARKER, MAX_IDENTIFIER_LENGTH
from pgbranch.models.config import BaseConfig, NamingStrategy

_INVALID_CHARS = re.compile(r"[^a-z0-9_$]")
_UNDERSCORE_RUNS = re.compile(r"_{2,}")


def sanitize_branch_name(branch_name: str) -> str:
    """
    Reduce a branch name to identifier-safe characters.

    Examples:
        "Feature/Auth-2" -> "feature_auth_2"
        "123-fix"        -> "_123_fix"
        "///"            -> "branch"
    """
    sanitized = _INVALID_CHARS.sub("_", branch_name.lower())
    # Identifiers must not start with a digit (or `$`).
    if sanitized[:1].isdigit() or sanitized.startswith("$"):
        sanitized = f"_{sanitized}"
    sanitized = _UNDERSCORE_RUNS.sub("_", sanitized)
    sanitized = sanitized.rstrip("_")
    return sanitized or FALLBACK_BRANCH_NAME


def get_normalized_branch_name(branch_name: str) -> str:
    """Sanitized branch name without prefix/suffix, for display and local state."""
    return sanitize_branch_name(branch_name)


def name_hash(name: str) -> str:
    """Stable 16-bit hash of `name` as four lowercase hex digits."""
    return hashlib.blake2b(name.encode("utf-8"), digest_size=2).hexdigest()


def ensure_valid_identifier(name: str) -> str:
    """Truncate `name` to the PostgreSQL limit, keeping it unique with a hash suffix."""
    encoded = name.encode("utf-8")
    if len(encoded) <= MAX_IDENTIFIER_LENGTH:
        return name
    suffix = f"_{name_hash(name)}"
    keep = MAX_IDENTIFIER_LENGTH - len(suffix)
    truncated = encoded[:keep].decode("utf-8", errors="ignore")
    return f"{truncated}{suffix}"


def get_database_name(branch_name: str, config: BaseConfig) -> str:
    """
    Database name for a branch under the given configuration.

    Args:
        branch_name: Raw Git branch name, a normalized name, or "_main".
        config: The merged configuration.

    Returns:
        The template database for "_main" and excluded branches; otherwise
        the sanitized name combined with the prefix per naming strategy.
    """
    if branch_name == MAIN_BRANCH_MARKER or branch_name in config.git.exclude_branches:
        return config.database.template_database

    sanitized = sanitize_branch_name(branch_name)
    prefix = config.database.database_prefix
    strategy = config.behavior.naming_strategy

    if strategy is NamingStrategy.PREFIX:
        full_name = f"{prefix}_{sanitized}"
    elif strategy is NamingStrategy.SUFFIX:
        full_name = f"{sanitized}_{prefix}"
    else:
        full_name = sanitized

    return ensure_valid_identifier(full_name)
