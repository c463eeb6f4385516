"""
handlers/hooks_handler.py
-------------------------
Installs and removes the Git hooks that call `pgbranch git-hook`.
"""

from pathlib import Path

import click

from pgbranch.errors import GitError
from pgbranch.git.repository import GitRepository
from pgbranch.handlers.common import pgbranch_errors


def _repository() -> GitRepository:
    repo = GitRepository.discover(Path.cwd())
    if repo is None:
        raise GitError(f"Not a Git repository: {Path.cwd()}")
    return repo


@click.command("install-hooks")
@pgbranch_errors
def install_hooks_command() -> None:
    """Install the post-checkout and post-merge hooks."""
    for hook in _repository().install_hooks():
        click.echo(f"🪝 {hook}")
    click.echo("✅ Installed Git hooks")


@click.command("uninstall-hooks")
@pgbranch_errors
def uninstall_hooks_command() -> None:
    """Remove the pgbranch Git hooks."""
    removed = _repository().uninstall_hooks()
    if not removed:
        click.echo("ℹ️  No pgbranch hooks installed")
        return
    click.echo(f"✅ Uninstalled {len(removed)} Git hook(s)")
