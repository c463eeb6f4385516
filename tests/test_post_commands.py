"""Tests for post-command parsing, templating and execution."""

import logging
from dataclasses import replace

import pytest

from pgbranch.errors import ConfigError, PostCommandError
from pgbranch.models.config import BaseConfig
from pgbranch.models.post_command import (
    ReplaceCommand,
    ShellCommand,
    SimpleCommand,
    parse_post_command,
    post_command_to_dict,
)
from pgbranch.services.post_command_service import PostCommandExecutor, TemplateContext


def config_with(*commands, password=None) -> BaseConfig:
    config = BaseConfig()
    return replace(config, database=replace(config.database, password=password), post_commands=tuple(commands))


# ── Parsing ───────────────────────────────────────────────

def test_string_is_simple_command():
    assert parse_post_command("make migrate") == SimpleCommand("make migrate")


def test_mapping_without_action_is_shell_command():
    command = parse_post_command({
        "name": "Migrate",
        "command": "python manage.py migrate",
        "working_dir": "backend",
        "continue_on_error": True,
        "condition": "file_exists:manage.py",
        "environment": {"DATABASE_NAME": "{db_name}", "DEBUG": 1},
    })
    assert isinstance(command, ShellCommand)
    assert command.working_dir == "backend"
    assert command.continue_on_error is True
    assert command.environment == {"DATABASE_NAME": "{db_name}", "DEBUG": "1"}


def test_replace_action():
    command = parse_post_command({
        "action": "replace",
        "file": ".env",
        "pattern": "^DATABASE_URL=.*$",
        "replacement": "DATABASE_URL=postgres:///{db_name}",
        "create_if_missing": True,
    })
    assert isinstance(command, ReplaceCommand)
    assert command.create_if_missing is True
    assert command.continue_on_error is False


@pytest.mark.parametrize(
    "raw",
    [
        42,
        ["a", "b"],
        None,
        {"name": "no command"},
        {"command": "x", "retries": 3},
        {"command": ["not", "a", "string"]},
        {"command": "x", "continue_on_error": "yes"},
        {"command": "x", "environment": ["A=1"]},
        {"action": "copy", "file": "a"},
        {"action": "replace", "file": ".env", "pattern": "x"},
    ],
)
def test_invalid_shapes_are_rejected(raw):
    with pytest.raises(ConfigError) as excinfo:
        parse_post_command(raw, index=2)
    assert "entry #3" in str(excinfo.value)


def test_to_dict_drops_unset_fields():
    assert post_command_to_dict(SimpleCommand("ls")) == "ls"
    assert post_command_to_dict(ShellCommand(command="ls", name="List")) == {"name": "List", "command": "ls"}
    assert post_command_to_dict(ReplaceCommand(file="f", pattern="p", replacement="r")) == {
        "action": "replace", "file": "f", "pattern": "p", "replacement": "r",
    }


# ── Template context ──────────────────────────────────────

def test_template_context_for_branch():
    context = TemplateContext.for_branch(BaseConfig(), "Feature/Auth-2")
    assert context.substitute("{branch_name} {db_name} {db_host}:{db_port} {db_user} {template_db} {prefix}") == (
        "Feature/Auth-2 pgbranch_feature_auth_2 localhost:5432 postgres template0 pgbranch"
    )


def test_main_marker_uses_template_database():
    assert TemplateContext.for_branch(BaseConfig(), "_main").db_name == "template0"


def test_password_placeholder_only_when_set():
    without = TemplateContext.for_branch(BaseConfig(), "x")
    assert without.substitute("pw={db_password}") == "pw={db_password}"
    assert "db_password" not in without.variables()

    with_password = TemplateContext.for_branch(config_with(password="s3cret"), "x")
    assert with_password.substitute("pw={db_password}") == "pw=s3cret"


def test_unknown_placeholders_are_left_alone():
    context = TemplateContext.for_branch(BaseConfig(), "x")
    assert context.substitute("{unknown} {{db_name}}") == "{unknown} {pgbranch_x}"


# ── Executor ──────────────────────────────────────────────

def test_shell_commands_run_in_project_dir(project_dir):
    config = config_with(
        SimpleCommand("echo {db_name} > simple.txt"),
        ShellCommand(command='echo "$TARGET" > shell.txt', environment={"TARGET": "{branch_name}"}),
    )
    count = PostCommandExecutor(config, "feature/a", project_dir).execute_all()

    assert count == 2
    assert (project_dir / "simple.txt").read_text().strip() == "pgbranch_feature_a"
    assert (project_dir / "shell.txt").read_text().strip() == "feature/a"


def test_working_dir_is_relative_to_project(project_dir):
    (project_dir / "backend").mkdir()
    config = config_with(ShellCommand(command="pwd > where.txt", working_dir="backend"))
    PostCommandExecutor(config, "x", project_dir).execute_all()
    assert (project_dir / "backend" / "where.txt").exists()


def test_failing_command_raises(project_dir):
    config = config_with(SimpleCommand("exit 3"), SimpleCommand("touch after.txt"))
    with pytest.raises(PostCommandError) as excinfo:
        PostCommandExecutor(config, "x", project_dir).execute_all()
    assert "status 3" in str(excinfo.value)
    assert not (project_dir / "after.txt").exists()


def test_continue_on_error_keeps_going(project_dir, caplog):
    config = config_with(
        ShellCommand(command="exit 1", name="Broken", continue_on_error=True),
        SimpleCommand("touch after.txt"),
    )
    with caplog.at_level(logging.WARNING, logger="pgbranch"):
        count = PostCommandExecutor(config, "x", project_dir).execute_all()
    assert count == 1
    assert (project_dir / "after.txt").exists()
    assert "Broken" in caplog.text


def test_conditions(project_dir):
    (project_dir / "manage.py").write_text("", encoding="utf-8")
    (project_dir / "migrations").mkdir()
    executor = PostCommandExecutor(config_with(), "x", project_dir, environ={"CI": "1", "EMPTY": ""})

    assert executor.check_condition(None)
    assert executor.check_condition("file_exists:manage.py")
    assert not executor.check_condition("file_exists:migrations")
    assert executor.check_condition("dir_exists:migrations")
    assert not executor.check_condition("dir_exists:missing")
    assert executor.check_condition("env:CI")
    assert not executor.check_condition("env:EMPTY")
    assert not executor.check_condition("env:MISSING")


def test_unknown_condition_skips_command(project_dir, caplog):
    config = config_with(ShellCommand(command="touch ran.txt", condition="weekday:monday"))
    with caplog.at_level(logging.WARNING, logger="pgbranch"):
        count = PostCommandExecutor(config, "x", project_dir).execute_all()
    assert count == 0
    assert not (project_dir / "ran.txt").exists()
    assert "Unknown post-command condition" in caplog.text


def test_replace_updates_matching_lines(project_dir):
    env_file = project_dir / ".env"
    env_file.write_text("DEBUG=1\nDATABASE_NAME=old\nOTHER=2\n", encoding="utf-8")
    config = config_with(ReplaceCommand(file=".env", pattern="^DATABASE_NAME=.*$",
                                        replacement="DATABASE_NAME={db_name}"))

    PostCommandExecutor(config, "feature/x", project_dir).execute_all()

    assert env_file.read_text() == "DEBUG=1\nDATABASE_NAME=pgbranch_feature_x\nOTHER=2\n"


def test_replace_is_literal(project_dir):
    target = project_dir / "settings.txt"
    target.write_text("name=old\n", encoding="utf-8")
    config = config_with(ReplaceCommand(file="settings.txt", pattern="old", replacement=r"\1$&"))
    PostCommandExecutor(config, "x", project_dir).execute_all()
    assert target.read_text() == "name=\\1$&\n"


def test_replace_appends_when_pattern_missing(project_dir):
    env_file = project_dir / ".env"
    env_file.write_text("DEBUG=1", encoding="utf-8")
    config = config_with(ReplaceCommand(file=".env", pattern="^DB=.*$", replacement="DB={db_name}"))
    PostCommandExecutor(config, "b", project_dir).execute_all()
    assert env_file.read_text() == "DEBUG=1\nDB=pgbranch_b\n"


def test_replace_creates_missing_file_when_allowed(project_dir):
    config = config_with(ReplaceCommand(file="config/.env", pattern="^DB=.*$",
                                        replacement="DB={db_name}", create_if_missing=True))
    PostCommandExecutor(config, "b", project_dir).execute_all()
    assert (project_dir / "config" / ".env").read_text() == "DB=pgbranch_b\n"


def test_replace_missing_file_is_an_error(project_dir):
    config = config_with(ReplaceCommand(file=".env", pattern="x", replacement="y"))
    with pytest.raises(PostCommandError):
        PostCommandExecutor(config, "b", project_dir).execute_all()


def test_echo_receives_progress(project_dir):
    messages = []
    config = config_with(ShellCommand(command="true", name="Noop"))
    PostCommandExecutor(config, "b", project_dir, echo=messages.append).execute_all()
    assert any("Noop" in message for message in messages)
