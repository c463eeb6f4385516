"""
db/connection.py
----------------
Opens connections to the PostgreSQL maintenance database.

CREATE/DROP DATABASE cannot run inside a transaction block, so every
connection is handed out in autocommit mode.
"""

from typing import Optional

import psycopg2

from pgbranch.config import CONNECT_TIMEOUT, MAINTENANCE_DATABASE
from pgbranch.db.credentials import resolve_password
from pgbranch.errors import DatabaseError
from pgbranch.models.config import DatabaseConfig
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


def get_connection(database: DatabaseConfig, dbname: str = MAINTENANCE_DATABASE,
                   password: Optional[str] = None, resolve: bool = True):
    """
    Open a connection to the server described by `database`.

    Args:
        database: Merged database settings.
        dbname: Database to connect to (default: the maintenance database).
        password: Password to use.
        resolve: Look the password up via the auth methods when none is given.

    Returns:
        A psycopg2 connection in autocommit mode.

    Raises:
        DatabaseError: If the server is unreachable or rejects the login.
    """
    if password is None and resolve:
        password = resolve_password(database)
    try:
        conn = psycopg2.connect(
            host=database.host,
            port=database.port,
            user=database.user,
            password=password,
            dbname=dbname,
            connect_timeout=CONNECT_TIMEOUT,
        )
    except psycopg2.Error as e:
        logger.error(f"Failed to connect to PostgreSQL at {database.host}:{database.port}: {e}")
        raise DatabaseError(f"Failed to connect to PostgreSQL database: {e}") from e
    conn.autocommit = True
    logger.debug(f"Connected to {database.host}:{database.port}/{dbname} as {database.user}")
    return conn


def release_connection(conn) -> None:
    """
    Close a connection obtained from get_connection().

    Args:
        conn: The psycopg2 connection to release.
    """
    if conn is not None and not conn.closed:
        conn.close()
