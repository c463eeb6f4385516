"""
pgbranch/config.py
------------------
Central application settings. Reads process-level options from the
environment and exposes them as typed constants.

The CLI entry point loads a `.env` file (if one exists in the working
directory or a parent) before this module is imported, so any of these
variables may also come from there.
"""

import os
from pathlib import Path

from platformdirs import user_config_dir


# ── Config files ──────────────────────────────────────────
CONFIG_FILENAMES: tuple[str, ...] = (".pgbranch.yml", ".pgbranch.yaml")
LOCAL_CONFIG_FILENAME: str = ".pgbranch.local.yml"

# ── Branch naming ─────────────────────────────────────────
MAIN_BRANCH_MARKER: str = "_main"
MAX_IDENTIFIER_LENGTH: int = 63
FALLBACK_BRANCH_NAME: str = "branch"

# ── PostgreSQL ────────────────────────────────────────────
MAINTENANCE_DATABASE: str = "postgres"
CONNECT_TIMEOUT: int = int(os.getenv("PGBRANCH_CONNECT_TIMEOUT", "5"))

# ── Local state ───────────────────────────────────────────
STATE_FILE: Path = Path(
    os.getenv("PGBRANCH_STATE_FILE")
    or Path(user_config_dir("pgbranch")) / "local_state.yml"
)

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("PGBRANCH_LOG_LEVEL", "WARNING").upper()
