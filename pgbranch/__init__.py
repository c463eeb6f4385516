"""pgbranch - PostgreSQL database branches that follow your Git branches."""

__version__ = "0.1.0"
