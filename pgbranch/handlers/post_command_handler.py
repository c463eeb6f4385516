"""
handlers/post_command_handler.py
--------------------------------
Post-command helpers: show template variables, dry-run post-commands.
"""

import click

from pgbranch.handlers.common import load_config, pgbranch_errors
from pgbranch.services.post_command_service import PostCommandExecutor, TemplateContext

_EXAMPLE_BRANCH = "feature/example-branch"


@click.command("templates")
@click.argument("branch_name", required=False, default=_EXAMPLE_BRANCH)
@pgbranch_errors
def templates_command(branch_name: str) -> None:
    """Show the template variables available to post-commands."""
    config = load_config().merged()
    context = TemplateContext.for_branch(config, branch_name)

    click.echo(f"📝 Template variables for branch '{branch_name}':")
    for key, value in context.variables().items():
        if key == "db_password":
            value = "********"
        click.echo(f"  {{{key}}} = {value}")
    if config.database.password is None:
        click.echo("  {db_password} is only available when database.password is set")

    click.echo("\n💡 Example:")
    click.echo(f"  {context.substitute('psql -h {db_host} -p {db_port} -U {db_user} {db_name}')}")


@click.command("test-post-commands")
@click.argument("branch_name")
@pgbranch_errors
def test_post_commands_command(branch_name: str) -> None:
    """Run the post-commands for a branch without connecting to PostgreSQL."""
    effective = load_config()
    config = effective.merged()
    click.echo(f"🧪 Testing post-commands for branch: {branch_name}")
    if not config.post_commands:
        click.echo("ℹ️  No post-commands configured")
        return

    executor = PostCommandExecutor(config, branch_name, effective.project_dir, echo=click.echo)
    count = executor.execute_all()
    click.echo(f"✅ {count}/{len(config.post_commands)} post-command(s) completed")
