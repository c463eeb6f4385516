"""
db/credentials.py
-----------------
Password resolution. The configured auth methods are tried in order and
the first one that yields a password wins.
"""

import configparser
import os
from pathlib import Path
from typing import Mapping, Optional

import click

from pgbranch.config import MAINTENANCE_DATABASE
from pgbranch.models.config import AuthMethod, DatabaseConfig
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)


def resolve_password(database: DatabaseConfig, environ: Optional[Mapping[str, str]] = None,
                     home: Optional[Path] = None) -> Optional[str]:
    """
    Find the password for `database.user`.

    Args:
        database: Merged database settings, including the auth method order.
        environ: Environment mapping (defaults to the process environment).
        home: Home directory for ~/.pgpass and ~/.pg_service.conf.

    Returns:
        The password, or None if no method produced one (or `system` auth
        was reached, meaning peer/trust authentication).
    """
    environ = os.environ if environ is None else environ
    home = home or Path.home()

    for method in database.auth.methods:
        if method is AuthMethod.SYSTEM:
            logger.debug("Using system authentication")
            return None

        if method is AuthMethod.PASSWORD:
            password = database.password
        elif method is AuthMethod.ENVIRONMENT:
            password = password_from_env(database, environ)
        elif method is AuthMethod.PGPASS:
            pgpass = Path(database.auth.pgpass_file).expanduser() if database.auth.pgpass_file else home / ".pgpass"
            password = password_from_pgpass(database, pgpass)
        elif method is AuthMethod.SERVICE:
            password = password_from_service(database, home / ".pg_service.conf")
        else:
            password = password_from_prompt(database)

        if password is not None:
            logger.debug(f"Using password from {method.value}")
            return password

    logger.debug("No password found from any authentication method")
    return None


def password_from_env(database: DatabaseConfig, environ: Mapping[str, str]) -> Optional[str]:
    """PGPASSWORD, then a host-specific PGPASSWORD_<HOST>."""
    if "PGPASSWORD" in environ:
        return environ["PGPASSWORD"]
    return environ.get(f"PGPASSWORD_{database.host.upper()}")


def password_from_pgpass(database: DatabaseConfig, pgpass_file: Path) -> Optional[str]:
    """First matching `host:port:database:user:password` line, `*` matching anything."""
    if not pgpass_file.is_file():
        return None
    for line in pgpass_file.read_text(encoding="utf-8").splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        parts = line.split(":")
        if len(parts) != 5:
            continue
        host, port, dbname, user, password = parts
        if (
            host in ("*", database.host)
            and port in ("*", str(database.port))
            and dbname in ("*", MAINTENANCE_DATABASE)
            and user in ("*", database.user)
        ):
            return password
    return None


def password_from_service(database: DatabaseConfig, service_file: Path) -> Optional[str]:
    service_name = database.auth.service_name
    if not service_name:
        logger.warning("Auth method 'service' is configured but database.auth.service_name is not set")
        return None
    if not service_file.is_file():
        return None
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(service_file, encoding="utf-8")
    except configparser.Error as e:
        logger.warning(f"Could not parse {service_file}: {e}")
        return None
    if not parser.has_section(service_name):
        return None
    return parser.get(service_name, "password", fallback=None)


def password_from_prompt(database: DatabaseConfig) -> Optional[str]:
    if not database.auth.prompt_for_password:
        return None
    try:
        return click.prompt(f"Password for PostgreSQL user '{database.user}'", hide_input=True)
    except click.Abort:
        logger.warning("Password prompt aborted")
        return None
