"""
models/post_command.py
----------------------
Domain model for commands run after a database branch is created or
switched to.

Three shapes exist on disk and are told apart by shape alone:
    - a plain string                    -> SimpleCommand
    - a mapping without an `action` key -> ShellCommand
    - a mapping with `action: replace`  -> ReplaceCommand
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from pgbranch.errors import ConfigError

_SHELL_KEYS = {"name", "command", "working_dir", "continue_on_error", "condition", "environment"}
_REPLACE_KEYS = {
    "action", "name", "file", "pattern", "replacement",
    "create_if_missing", "continue_on_error", "condition",
}


@dataclass(frozen=True)
class SimpleCommand:
    command: str

    @property
    def name(self) -> Optional[str]:
        return None

    @property
    def continue_on_error(self) -> bool:
        return False

    @property
    def condition(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class ShellCommand:
    """
    A shell command with options.

    Attributes:
        command: Shell command line; template variables are substituted.
        name: Label shown in output.
        working_dir: Directory to run in, relative to the project root.
        continue_on_error: Log and keep going when the command fails.
        condition: Optional guard such as `file_exists:manage.py`.
        environment: Extra environment variables (values are templated).
    """
    command: str
    name: Optional[str] = None
    working_dir: Optional[str] = None
    continue_on_error: bool = False
    condition: Optional[str] = None
    environment: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ReplaceCommand:
    """
    Replace every match of `pattern` in `file` with `replacement`.

    Attributes:
        file: Target file, relative to the project root.
        pattern: Regular expression to look for.
        replacement: Literal text (after template substitution).
        create_if_missing: Create `file` with the replacement as content.
        name, continue_on_error, condition: As for ShellCommand.
    """
    file: str
    pattern: str
    replacement: str
    name: Optional[str] = None
    create_if_missing: bool = False
    continue_on_error: bool = False
    condition: Optional[str] = None


PostCommand = Union[SimpleCommand, ShellCommand, ReplaceCommand]


def _optional_str(data: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"post_commands {where}: '{key}' must be a string, got {type(value).__name__}")
    return value


def _required_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = _optional_str(data, key, where)
    if value is None:
        raise ConfigError(f"post_commands {where}: missing required field '{key}'")
    return value


def _optional_bool(data: Mapping[str, Any], key: str, where: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"post_commands {where}: '{key}' must be true or false")
    return value


def _check_keys(data: Mapping[str, Any], allowed: set[str], where: str) -> None:
    unknown = sorted(str(k) for k in data if k not in allowed)
    if unknown:
        raise ConfigError(f"post_commands {where}: unexpected field(s) {', '.join(unknown)}")


def parse_post_command(raw: Any, index: int = 0) -> PostCommand:
    """
    Parse one post-command entry by its shape.

    Args:
        raw: The decoded YAML value.
        index: Position in the list, used in error messages.

    Returns:
        SimpleCommand, ShellCommand or ReplaceCommand.

    Raises:
        ConfigError: If the entry matches none of the shapes, or matches
            one only partially.
    """
    where = f"entry #{index + 1}"

    if isinstance(raw, str):
        return SimpleCommand(command=raw)

    if not isinstance(raw, Mapping):
        raise ConfigError(
            f"post_commands {where}: expected a string or a mapping, got {type(raw).__name__}"
        )

    if "action" in raw:
        action = raw["action"]
        if action != "replace":
            raise ConfigError(f"post_commands {where}: unsupported action {action!r} (only 'replace' is known)")
        _check_keys(raw, _REPLACE_KEYS, where)
        return ReplaceCommand(
            file=_required_str(raw, "file", where),
            pattern=_required_str(raw, "pattern", where),
            replacement=_required_str(raw, "replacement", where),
            name=_optional_str(raw, "name", where),
            create_if_missing=_optional_bool(raw, "create_if_missing", where),
            continue_on_error=_optional_bool(raw, "continue_on_error", where),
            condition=_optional_str(raw, "condition", where),
        )

    _check_keys(raw, _SHELL_KEYS, where)
    environment = raw.get("environment") or {}
    if not isinstance(environment, Mapping):
        raise ConfigError(f"post_commands {where}: 'environment' must be a mapping")
    return ShellCommand(
        command=_required_str(raw, "command", where),
        name=_optional_str(raw, "name", where),
        working_dir=_optional_str(raw, "working_dir", where),
        continue_on_error=_optional_bool(raw, "continue_on_error", where),
        condition=_optional_str(raw, "condition", where),
        environment={str(k): str(v) for k, v in environment.items()},
    )


def post_command_to_dict(command: PostCommand) -> Union[str, dict[str, Any]]:
    """Render a post-command back into its on-disk shape (None fields dropped)."""
    if isinstance(command, SimpleCommand):
        return command.command

    if isinstance(command, ReplaceCommand):
        data: dict[str, Any] = {
            "action": "replace",
            "name": command.name,
            "file": command.file,
            "pattern": command.pattern,
            "replacement": command.replacement,
            "create_if_missing": command.create_if_missing or None,
            "continue_on_error": command.continue_on_error or None,
            "condition": command.condition,
        }
    else:
        data = {
            "name": command.name,
            "command": command.command,
            "working_dir": command.working_dir,
            "continue_on_error": command.continue_on_error or None,
            "condition": command.condition,
            "environment": dict(command.environment) or None,
        }
    return {k: v for k, v in data.items() if v is not None}
