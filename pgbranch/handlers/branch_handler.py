"""
handlers/branch_handler.py
--------------------------
Branch commands: create, delete, list, switch, test-switch, cleanup, git-hook.
Delegates all logic to BranchService.
"""

from typing import Optional

import click

from pgbranch.config import MAIN_BRANCH_MARKER
from pgbranch.handlers.common import load_config, pgbranch_errors
from pgbranch.services.branch_service import BranchListing, BranchService
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

# Name shown for the template database in listings and the switch prompt.
_MAIN_CHOICE = "main"


def _service() -> BranchService:
    return BranchService(load_config(), echo=click.echo)


def _print_listing(listing: BranchListing) -> None:
    if listing.error:
        click.echo(f"⚠️  Could not list database branches: {listing.error}")
    click.echo("📋 PostgreSQL branches:")
    main_marker = "* " if listing.is_current(MAIN_BRANCH_MARKER) else "  "
    click.echo(f"{main_marker}{listing.template_database} ({_MAIN_CHOICE})")
    for branch in listing.branches:
        marker = "* " if listing.is_current(branch) else "  "
        click.echo(f"{marker}{branch}")


@click.command("create")
@click.argument("branch_name")
@pgbranch_errors
def create_command(branch_name: str) -> None:
    """Create a new database branch."""
    _service().create(branch_name)


@click.command("delete")
@click.argument("branch_name")
@pgbranch_errors
def delete_command(branch_name: str) -> None:
    """Delete a database branch."""
    _service().delete(branch_name)


@click.command("list")
@pgbranch_errors
def list_command() -> None:
    """List all database branches."""
    _print_listing(_service().list_branches())


@click.command("switch")
@click.argument("branch_name", required=False)
@click.option("--template", is_flag=True, help="Switch to the main (template) database.")
@pgbranch_errors
def switch_command(branch_name: Optional[str], template: bool) -> None:
    """
    Switch to a PostgreSQL branch, creating it if it does not exist.

    Without BRANCH_NAME the available branches are listed and you are asked
    to pick one.
    """
    service = _service()
    if service.effective.should_exit_early():
        click.echo("⏸️  pgbranch is disabled for this checkout or branch, nothing to do")
        return

    if template:
        service.switch_to_main()
        return

    if branch_name is None:
        _print_listing(service.list_branches())
        branch_name = click.prompt("Branch to switch to", default=_MAIN_CHOICE)

    if branch_name in (_MAIN_CHOICE, MAIN_BRANCH_MARKER):
        service.switch_to_main()
    else:
        service.switch(branch_name)


@click.command("test-switch")
@click.argument("branch_name")
@pgbranch_errors
def test_switch_command(branch_name: str) -> None:
    """Run the post-commands of a switch without state or database changes."""
    _service().test_switch(branch_name)


@click.command("cleanup")
@click.option("--max-count", type=click.IntRange(min=0), default=None,
              help="Maximum number of branches to keep.")
@pgbranch_errors
def cleanup_command(max_count: Optional[int]) -> None:
    """Drop old database branches."""
    dropped = _service().cleanup(max_count)
    for branch in dropped:
        click.echo(f"🗑️  Dropped database branch: {branch}")
    click.echo(f"✅ Cleaned up {len(dropped)} old database branch(es)")


@click.command("git-hook")
@pgbranch_errors
def git_hook_command() -> None:
    """Handle a Git hook invocation (internal use)."""
    result = _service().handle_git_event()
    logger.debug(f"Git hook handled, switched to: {result}")
