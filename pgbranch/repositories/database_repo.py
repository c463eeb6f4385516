"""
repositories/database_repo.py
-----------------------------
Data access layer for database branches on the PostgreSQL server.
All SQL lives here. Database names come from services.naming.
"""

from typing import Optional

import psycopg2
from psycopg2 import sql

from pgbranch.config import MAINTENANCE_DATABASE
from pgbranch.db.connection import get_connection, release_connection
from pgbranch.db.credentials import resolve_password
from pgbranch.errors import DatabaseError
from pgbranch.models.config import BaseConfig, NamingStrategy
from pgbranch.services.naming import get_database_name
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

_SYSTEM_DATABASES = ("template0", "template1", MAINTENANCE_DATABASE)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatabaseRepository:
    """Create, drop and list branch databases for one configuration."""

    def __init__(self, config: BaseConfig, password: Optional[str] = None):
        self.config = config
        self._password = password
        self._password_resolved = password is not None

    def _connect(self):
        # Resolve once so an interactive prompt is not repeated per query.
        if not self._password_resolved:
            self._password = resolve_password(self.config.database)
            self._password_resolved = True
        return get_connection(self.config.database, password=self._password, resolve=False)

    # ── READ ──────────────────────────────────────────────

    def database_exists(self, db_name: str) -> bool:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (db_name,))
                return cur.fetchone() is not None
        except psycopg2.Error as e:
            raise DatabaseError(f"Failed to check if database {db_name} exists: {e}") from e
        finally:
            release_connection(conn)

    def list_branch_databases(self) -> list[str]:
        """
        Branch names (as stored in local state) of existing branch databases,
        newest first.
        """
        return [branch for _, branch in self._branch_database_rows()]

    def can_create_databases(self) -> bool:
        """True if the connected role has the CREATEDB privilege (or is superuser)."""
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT rolcreatedb OR rolsuper FROM pg_roles WHERE rolname = current_user;"
                )
                row = cur.fetchone()
                return bool(row and row[0])
        except psycopg2.Error as e:
            raise DatabaseError(f"Failed to check database permissions: {e}") from e
        finally:
            release_connection(conn)

    # ── CREATE / DROP ─────────────────────────────────────

    def create_database_branch(self, branch_name: str) -> bool:
        """
        Create the database for `branch_name` from the template database.

        Returns:
            True if a database was created, False if it already existed.
        """
        db_name = get_database_name(branch_name, self.config)
        template = self.config.database.template_database
        if self.database_exists(db_name):
            logger.info(f"Database {db_name} already exists, skipping creation")
            return False

        query = sql.SQL("CREATE DATABASE {} WITH TEMPLATE {};").format(
            sql.Identifier(db_name), sql.Identifier(template)
        )
        self._execute(query, f"Failed to create database branch {db_name}")
        logger.info(f"Created database branch: {db_name}")
        return True

    def drop_database_branch(self, branch_name: str) -> bool:
        """
        Drop the database for `branch_name`.

        Returns:
            True if a database was dropped, False if it did not exist.
        """
        db_name = get_database_name(branch_name, self.config)
        if db_name == self.config.database.template_database:
            raise DatabaseError(f"Refusing to drop the template database {db_name}")
        if not self.database_exists(db_name):
            logger.info(f"Database {db_name} does not exist, skipping deletion")
            return False
        self._drop(db_name)
        return True

    def cleanup_old_branches(self, max_count: int) -> list[str]:
        """
        Drop all but the `max_count` most recently created branch databases.

        Returns:
            The branch names that were dropped.
        """
        dropped = []
        for db_name, branch in self._branch_database_rows()[max_count:]:
            self._drop(db_name)
            dropped.append(branch)
        return dropped

    # ── HELPERS ───────────────────────────────────────────

    def _execute(self, query, error_message: str) -> None:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(query)
        except psycopg2.Error as e:
            logger.error(f"{error_message}: {e}")
            raise DatabaseError(f"{error_message}: {e}") from e
        finally:
            release_connection(conn)

    def _drop(self, db_name: str) -> None:
        self._execute(sql.SQL("DROP DATABASE {};").format(sql.Identifier(db_name)),
                      f"Failed to drop database branch {db_name}")
        logger.info(f"Dropped database branch: {db_name}")

    def _branch_database_rows(self) -> list[tuple[str, str]]:
        """(datname, branch name) pairs, newest (highest OID) first."""
        prefix = self.config.database.database_prefix
        strategy = self.config.behavior.naming_strategy
        excluded = [*_SYSTEM_DATABASES, self.config.database.template_database]

        if strategy is NamingStrategy.PREFIX:
            where, params = "datname LIKE %s", [f"{_escape_like(prefix)}\\_%"]
        elif strategy is NamingStrategy.SUFFIX:
            where, params = "datname LIKE %s", [f"%\\_{_escape_like(prefix)}"]
        else:
            where, params = "TRUE", []

        query = (
            f"SELECT datname FROM pg_database "
            f"WHERE {where} AND NOT datistemplate AND datname <> ALL(%s) "
            "ORDER BY oid DESC;"
        )
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(query, (*params, excluded))
                names = [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            raise DatabaseError(f"Failed to list database branches: {e}") from e
        finally:
            release_connection(conn)

        return [(name, self._branch_from_database(name)) for name in names]

    def _branch_from_database(self, db_name: str) -> str:
        prefix = self.config.database.database_prefix
        strategy = self.config.behavior.naming_strategy
        if strategy is NamingStrategy.PREFIX and db_name.startswith(f"{prefix}_"):
            return db_name[len(prefix) + 1:]
        if strategy is NamingStrategy.SUFFIX and db_name.endswith(f"_{prefix}"):
            return db_name[: -(len(prefix) + 1)]
        return db_name
