"""
utils/yaml_fields.py
--------------------
Typed field readers for decoded YAML documents.

Each reader returns None when the key is missing or null and raises
ConfigError (with the file path) when the value has the wrong type.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Type, TypeVar

import yaml

from pgbranch.errors import ConfigError

E = TypeVar("E", bound=Enum)


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """
    Read a YAML file that must contain a mapping (an empty file is `{}`).

    Raises:
        ConfigError: On I/O failure, invalid YAML or a non-mapping document.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config file: {exc}", path) from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file: {exc}", path) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping at the top level", path)
    return data


def section(data: Mapping[str, Any], key: str, path: Path) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping", path)
    return value


def get_str(data: Mapping[str, Any], key: str, path: Path, where: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    # Unquoted YAML scalars like `develop` are strings, but `2024` is not.
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"'{where}.{key}' must be a string", path)
    return str(value)


def get_int(data: Mapping[str, Any], key: str, path: Path, where: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{where}.{key}' must be an integer", path)
    return value


def get_bool(data: Mapping[str, Any], key: str, path: Path, where: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"'{where}.{key}' must be true or false", path)
    return value


def get_str_list(data: Mapping[str, Any], key: str, path: Path, where: str) -> Optional[tuple[str, ...]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or any(isinstance(v, (list, dict)) or v is None for v in value):
        raise ConfigError(f"'{where}.{key}' must be a list of strings", path)
    return tuple(str(v) for v in value)


def get_enum(data: Mapping[str, Any], key: str, enum_type: Type[E], path: Path, where: str) -> Optional[E]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return enum_type(str(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise ConfigError(f"'{where}.{key}' must be one of: {allowed} (got {value!r})", path) from None


def get_enum_list(data: Mapping[str, Any], key: str, enum_type: Type[E], path: Path,
                  where: str) -> Optional[tuple[E, ...]]:
    values = get_str_list(data, key, path, where)
    if values is None:
        return None
    allowed = ", ".join(m.value for m in enum_type)
    parsed = []
    for v in values:
        try:
            parsed.append(enum_type(v.lower()))
        except ValueError:
            raise ConfigError(f"'{where}.{key}' entries must be one of: {allowed} (got {v!r})", path) from None
    return tuple(parsed)
