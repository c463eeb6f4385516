"""
handlers/config_handler.py
--------------------------
Setup and diagnostics commands: init, config, check.
"""

from dataclasses import replace
from pathlib import Path

import click
import yaml

from pgbranch.config import CONFIG_FILENAMES
from pgbranch.git.repository import GitRepository
from pgbranch.handlers.common import load_config, pgbranch_errors
from pgbranch.models.config import BaseConfig
from pgbranch.repositories.config_repo import ConfigRepository, config_to_dict
from pgbranch.services.check_service import CheckService, CheckStatus
from pgbranch.utils.logger import get_logger

logger = get_logger(__name__)

_STATUS_ICONS = {
    CheckStatus.OK: "✅",
    CheckStatus.WARNING: "⚠️ ",
    CheckStatus.FAILED: "❌",
}


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file.")
@pgbranch_errors
def init_command(force: bool) -> None:
    """Write a default .pgbranch.yml in the current directory."""
    cwd = Path.cwd()
    config_path = cwd / CONFIG_FILENAMES[0]
    if config_path.exists() and not force:
        click.echo("❌ Configuration file already exists. Use --force to overwrite.")
        return

    config = BaseConfig()
    repo = GitRepository.discover(cwd)
    if repo is not None:
        detected = repo.detect_main_branch()
        if detected:
            config = replace(config, git=replace(config.git, main_branch=detected))
            click.echo(f"🔍 Auto-detected main Git branch: {detected}")
        else:
            click.echo(f"⚠️  Could not auto-detect main Git branch, using default: {config.git.main_branch}")

    ConfigRepository().save(config, config_path)
    logger.info(f"Initialized configuration in {cwd}")
    click.echo(f"✅ Initialized pgbranch configuration at: {config_path}")


@click.command("config")
@pgbranch_errors
def config_command() -> None:
    """Show the effective configuration."""
    effective = load_config(require=False)
    merged = effective.merged()

    data = config_to_dict(merged)
    if merged.database.password is not None:
        data["database"]["password"] = "********"

    source = effective.config_path or "built-in defaults"
    click.echo(f"Current configuration ({source}):")
    click.echo(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    click.echo(f"disabled: {str(effective.disabled).lower()}")
    click.echo(f"skip_hooks: {str(effective.skip_hooks).lower()}")
    click.echo(f"current_branch_disabled: {str(effective.current_branch_disabled).lower()}")
    patterns = effective.disabled_branch_patterns()
    if patterns:
        click.echo(f"disabled_branches: {', '.join(patterns)}")


@click.command("check")
@pgbranch_errors
def check_command() -> None:
    """Check configuration, database connectivity and Git setup."""
    click.echo("🔍 Performing system check...\n")
    service = CheckService(load_config(require=False), start_dir=Path.cwd())
    results = service.run_all()
    for result in results:
        click.echo(f"{_STATUS_ICONS[result.status]} {result.label}: {result.message}")

    click.echo()
    if CheckService.all_passed(results):
        click.echo("🎉 All checks passed! pgbranch is ready to use.")
    else:
        click.echo("❌ Some checks failed. Please address the issues above.")
