"""Exceptions raised by tools and the tool registry."""
from __future__ import annotations

from typing import Iterable, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class ToolError(Exception):
    """Base exception for all tool-related errors."""

    def __init__(self, message: str, tool_name: Optional[str] = None):
        super().__init__(message)
        self.tool_name = tool_name
        logger.warning(
            "tool_error",
            error_type=self.__class__.__name__,
            tool_name=tool_name,
            message=message,
        )


class ToolNotFoundError(ToolError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str, available: Iterable[str]):
        self.available = list(available)
        super().__init__(
            f"Tool not found: {tool_name}. Available: {', '.join(self.available)}",
            tool_name,
        )


class DuplicateToolError(ToolError):
    """A tool with the same name is already registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool already registered: {tool_name}", tool_name)
