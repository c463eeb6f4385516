"""
main.py
-------
Entry point for the pgbranch command line tool.

Responsibilities:
    - Load a `.env` file so PGBRANCH_* settings can live there.
    - Configure logging verbosity.
    - Register all commands.
"""

import click
from dotenv import find_dotenv, load_dotenv

# Must run before pgbranch.config is imported by the handlers below.
load_dotenv(find_dotenv(usecwd=True))

from pgbranch import __version__  # noqa: E402
from pgbranch.handlers.branch_handler import (  # noqa: E402
    cleanup_command,
    create_command,
    delete_command,
    git_hook_command,
    list_command,
    switch_command,
    test_switch_command,
)
from pgbranch.handlers.config_handler import check_command, config_command, init_command  # noqa: E402
from pgbranch.handlers.hooks_handler import install_hooks_command, uninstall_hooks_command  # noqa: E402
from pgbranch.handlers.post_command_handler import (  # noqa: E402
    templates_command,
    test_post_commands_command,
)
from pgbranch.utils.logger import get_logger, set_verbose  # noqa: E402

logger = get_logger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging on stderr.")
@click.version_option(__version__, prog_name="pgbranch")
def cli(verbose: bool) -> None:
    """PostgreSQL database branches that follow your Git branches."""
    set_verbose(verbose)
    logger.debug(f"pgbranch {__version__} starting")


# ── Setup ─────────────────────────────────────────────────
cli.add_command(init_command)
cli.add_command(config_command)
cli.add_command(check_command)

# ── Branches ──────────────────────────────────────────────
cli.add_command(create_command)
cli.add_command(delete_command)
cli.add_command(list_command)
cli.add_command(switch_command)
cli.add_command(test_switch_command)
cli.add_command(cleanup_command)

# ── Git integration ───────────────────────────────────────
cli.add_command(install_hooks_command)
cli.add_command(uninstall_hooks_command)
cli.add_command(git_hook_command)

# ── Post-commands ─────────────────────────────────────────
cli.add_command(templates_command)
cli.add_command(test_post_commands_command)


if __name__ == "__main__":
    cli()
