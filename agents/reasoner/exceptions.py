from __future__ import annotations

from agents.models import ReasoningPhase
from utils.logger import get_logger

logger = get_logger(__name__)


class ReasoningError(Exception):
    """Base exception for all reasoning-related errors."""

    def __init__(self, message: str):
        super().__init__(message)
        logger.warning(
            "reasoning_error",
            error_type=self.__class__.__name__,
            message=message,
        )


class PhaseError(ReasoningError):
    """An unexpected exception escaped one phase of the reasoning loop."""

    def __init__(self, phase: ReasoningPhase, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)
