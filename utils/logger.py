"""
Structured logging module using structlog

Features
--------
• Structured logging with automatic context
• JSON or pretty console rendering (LOG_FORMAT / LOG_CONSOLE_RENDERER)
• Optional file logging with rotation
• Automatic method entry/exit tracing
"""
from __future__ import annotations
import json
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict
from functools import wraps

import structlog

_RENDERER_ALIASES = {"json": "json", "pretty": "pretty", "text": "pretty"}


def _supports_colour() -> bool:
    """True if stderr seems to handle ANSI colour codes."""
    if os.getenv("NO_COLOR"):
        return False
    if sys.platform == "win32" and os.getenv("TERM") != "xterm":
        return False
    return sys.stderr.isatty()


def _read_cfg(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Logging config file not found: {p}")
    try:
        return json.loads(p.read_text()).get("logging", {})
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in logging config: {e}") from e


def _resolve_renderer(cfg: Dict[str, Any]) -> str:
    """Env wins over config: LOG_CONSOLE_RENDERER, then LOG_FORMAT, then logging.console.renderer."""
    explicit = os.getenv("LOG_CONSOLE_RENDERER")
    if explicit:
        return _RENDERER_ALIASES.get(explicit.strip().lower(), "pretty")

    log_format = os.getenv("LOG_FORMAT")
    if log_format:
        normalized = log_format.strip().lower()
        if normalized not in {"json", "text"}:
            raise ValueError(f"Invalid LOG_FORMAT: {log_format}. Must be 'json' or 'text'.")
        return _RENDERER_ALIASES[normalized]

    configured = str(cfg.get("console", {}).get("renderer", "pretty")).lower()
    if configured not in _RENDERER_ALIASES:
        raise ValueError(
            f"Invalid console logging renderer option: {configured!r}. Allowed: json, pretty"
        )
    return _RENDERER_ALIASES[configured]


def init_logger(config_path: str | Path | None = None) -> None:
    """Configure structlog with console and optional file output."""
    cfg = _read_cfg(config_path)
    level_name = (os.getenv("LOG_LEVEL") or cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if _resolve_renderer(cfg) == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=_supports_colour())

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    console_cfg = cfg.get("console", {})
    if console_cfg.get("enabled", True):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
            )
        )
        root.addHandler(stream_handler)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared_processors,
                    structlog.stdlib.ProcessorFormatter.wrap_for_formatter],  # type: ignore[list-item]
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Setup file logging if enabled
    file_cfg = cfg.get("file", {})
    if file_cfg.get("enabled", False):
        path = Path(file_cfg.get("path", "logs/taskflow.log"))
        path.parent.mkdir(parents=True, exist_ok=True)

        if file_cfg.get("rotation", {}).get("enabled", True):
            handler = RotatingFileHandler(
                path,
                maxBytes=file_cfg.get("rotation", {}).get("max_bytes", 10_000_000),
                backupCount=file_cfg.get("rotation", {}).get("backup_count", 5),
            )
        else:
            handler = logging.FileHandler(path)  # type: ignore[assignment]

        handler.setLevel(getattr(logging, file_cfg.get("level", "DEBUG").upper(), logging.DEBUG))
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
            )
        )
        root.addHandler(handler)


def get_logger(name: str):
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def trace_method(func):
    """Decorator to automatically trace method entry/exit at debug level."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        logger = get_logger(func.__module__)
        method_name = f"{self.__class__.__name__}.{func.__name__}"

        logger.debug("method_entry", method=method_name)
        try:
            result = func(self, *args, **kwargs)
            logger.debug("method_exit", method=method_name, success=True)
            return result
        except Exception as e:
            logger.debug("method_exit", method=method_name, success=False, error=str(e))
            raise
    return wrapper
