"""
Application-wide error taxonomy. Every error carries a machine-readable code
and a message safe to show on the command line.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    AGENT_ERROR = "AGENT_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class TaskFlowError(Exception):
    """Base exception for all task management errors."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.details = details or {}

        logger.warning(
            "taskflow_error",
            error_type=self.__class__.__name__,
            code=self.code.value,
            message=message,
        )


class ValidationError(TaskFlowError):
    """Input failed boundary validation."""

    code = ErrorCode.VALIDATION_ERROR


class NotFoundError(TaskFlowError):
    """A referenced entity does not exist."""

    code = ErrorCode.NOT_FOUND


class AgentError(TaskFlowError):
    """An agent could not be registered, found or invoked."""

    code = ErrorCode.AGENT_ERROR


class StorageError(TaskFlowError):
    """The backing store failed."""

    code = ErrorCode.STORAGE_ERROR
