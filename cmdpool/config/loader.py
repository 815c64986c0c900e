import json
import shlex
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import (
    ConfigError,
    RunConfiguration,
    UnsupportedConfigFormatError,
    validate_configuration,
)

PROFILE_KEYS = {
    "command",
    "concurrency",
    "total_tasks",
    "timeout",
    "delay_ms",
    "stop_on_fail",
    "quiet",
    "env",
    "working_dir",
}


def load_profile(path: str | Path) -> Mapping[str, Any]:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    return _parse_file(pure_path, fmt)


def load_configuration(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RunConfiguration:
    """Build a validated run configuration.

    Values from the profile at ``path`` are read first; any key present in
    ``overrides`` with a non-None value replaces them.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        raw.update(load_profile(path))

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    return build_configuration(raw)


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    match fmt:
        case "yaml":
            return _parse_yaml(path)
        case "toml":
            return _parse_toml(path)
        case "json":
            return _parse_json(path)
        case _:
            raise AssertionError("Unreachable")


def _parse_yaml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML") from exc

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: YAML parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def _parse_toml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: invalid TOML") from exc

    return raw_file


def _parse_json(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON") from exc

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: JSON parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def build_configuration(raw: Mapping[str, Any]) -> RunConfiguration:
    for key in raw.keys():
        if key not in PROFILE_KEYS:
            raise ConfigError(f"Can't process: {key}")

    if "command" not in raw:
        raise ConfigError("Missing 'command' field")

    command = _build_command(raw["command"])

    concurrency = _int_field(raw, "concurrency", 1)
    total_tasks = _int_field(raw, "total_tasks", None)
    timeout = _number_field(raw, "timeout", None)
    delay_ms = _number_field(raw, "delay_ms", 100)
    stop_on_fail = _bool_field(raw, "stop_on_fail")
    quiet = _bool_field(raw, "quiet")
    env = _build_env(raw.get("env", {}))
    working_dir = None

    if "working_dir" in raw and raw["working_dir"] is not None:
        if not isinstance(raw["working_dir"], str):
            raise ConfigError("The working_dir should be a string")

        if len(raw["working_dir"].strip()) < 1:
            raise ConfigError("Please provide a working_dir string or remove this field")

        working_dir = raw["working_dir"].strip()

    if delay_ms is not None and delay_ms < 0:
        raise ConfigError(f"delay_ms can't be negative, got {delay_ms}")

    config = RunConfiguration(
        command=command,
        concurrency=concurrency,
        total_tasks=total_tasks,
        timeout_s=float(timeout) if timeout is not None else None,
        stop_on_fail=stop_on_fail,
        quiet=quiet,
        launch_delay_s=(delay_ms or 0) / 1000.0,
        env=env,
        working_dir=working_dir,
    )
    return validate_configuration(config)


def _build_command(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        try:
            argv = shlex.split(value)
        except ValueError as exc:
            raise ConfigError(f"Can't split command: {value!r}") from exc
    elif isinstance(value, (list, tuple)):
        argv = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(f"{item} should be a string in the command list")
            argv.append(item)
    else:
        raise ConfigError(f"The command should be a string or a list, got {type(value)}")

    if len(argv) < 1 or len(argv[0].strip()) < 1:
        raise ConfigError("No command provided to execute")

    return tuple(argv)


def _int_field(raw: Mapping[str, Any], key: str, default: int | None) -> int | None:
    value = raw.get(key, default)
    if value is None:
        return None
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' must be an integer, got {type(value)}")
    return value


def _number_field(
    raw: Mapping[str, Any], key: str, default: float | None
) -> float | None:
    value = raw.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {type(value)}")
    return value


def _bool_field(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean, got {type(value)}")
    return value


def _build_env(value: Any) -> dict[str, str]:
    env = {}

    if not isinstance(value, Mapping):
        raise ConfigError("Env should be a mapping")

    for key, item in value.items():
        if not isinstance(key, str):
            raise ConfigError(f"{key} should be a string")

        if len(key.strip()) < 1:
            raise ConfigError("A key can't be empty")

        if not isinstance(item, str):
            raise ConfigError(f"{item} should be a string")

        env[key.strip()] = item

    return env
