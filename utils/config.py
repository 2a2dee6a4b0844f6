from __future__ import annotations
import dataclasses
import json
import os
from pathlib import Path
from typing import Any, Dict

from dacite import from_dict

DEFAULT_CONFIG_FILE = "config.json"


@dataclasses.dataclass
class Database:
    path: str = "./data/taskflow.db"


@dataclasses.dataclass
class LoggingConsole:
    enabled: bool = True
    renderer: str = "json"


@dataclasses.dataclass
class LoggingRotation:
    enabled: bool = True
    max_bytes: int = 10_000_000
    backup_count: int = 5


@dataclasses.dataclass
class LoggingFile:
    enabled: bool = False
    level: str = "DEBUG"
    path: str = "logs/taskflow.log"
    rotation: LoggingRotation = dataclasses.field(default_factory=LoggingRotation)


@dataclasses.dataclass
class Logging:
    level: str = "INFO"
    console: LoggingConsole = dataclasses.field(default_factory=LoggingConsole)
    file: LoggingFile = dataclasses.field(default_factory=LoggingFile)


@dataclasses.dataclass
class Features:
    enable_notifications: bool = True


@dataclasses.dataclass
class Reasoning:
    max_iterations: int = 10
    timeout_ms: int = 30000


@dataclasses.dataclass
class Config:
    database: Database = dataclasses.field(default_factory=Database)
    logging: Logging = dataclasses.field(default_factory=Logging)
    features: Features = dataclasses.field(default_factory=Features)
    reasoning: Reasoning = dataclasses.field(default_factory=Reasoning)


def _env_bool(value: str) -> bool:
    return value.strip().lower() == "true" or value.strip() == "1"


def _env_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise ValueError(f"Invalid {key}: {value!r}. Must be an integer.") from e


def _read_file(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {p}: {e}") from e
    return data if isinstance(data, dict) else {}


def _apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Environment variables win over the config file."""
    env = os.environ

    if "DATABASE_PATH" in env:
        raw.setdefault("database", {})["path"] = env["DATABASE_PATH"]

    logging_cfg = raw.setdefault("logging", {})
    if "LOG_LEVEL" in env:
        logging_cfg["level"] = env["LOG_LEVEL"]
    if "LOG_FORMAT" in env:
        log_format = env["LOG_FORMAT"].strip().lower()
        if log_format not in {"json", "text"}:
            raise ValueError(f"Invalid LOG_FORMAT: {env['LOG_FORMAT']}. Must be 'json' or 'text'.")
        logging_cfg.setdefault("console", {})["renderer"] = "json" if log_format == "json" else "pretty"

    if "ENABLE_NOTIFICATIONS" in env:
        raw.setdefault("features", {})["enable_notifications"] = _env_bool(env["ENABLE_NOTIFICATIONS"])

    reasoning_cfg = raw.setdefault("reasoning", {})
    if "REASONING_MAX_ITERATIONS" in env:
        reasoning_cfg["max_iterations"] = _env_int("REASONING_MAX_ITERATIONS", env["REASONING_MAX_ITERATIONS"])
    if "REASONING_TIMEOUT_MS" in env:
        reasoning_cfg["timeout_ms"] = _env_int("REASONING_TIMEOUT_MS", env["REASONING_TIMEOUT_MS"])

    return raw


def ensure_database_directory(db_path: str) -> None:
    """Create the parent directory of a file-backed database."""
    if db_path == ":memory:":
        return
    Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def load_config(path: str | Path | None = DEFAULT_CONFIG_FILE) -> Config:
    raw = _apply_env_overrides(_read_file(path))
    config = from_dict(Config, raw)
    if config.database.path != ":memory:":
        config.database.path = str(Path(config.database.path).expanduser().resolve())
    ensure_database_directory(config.database.path)
    return config
