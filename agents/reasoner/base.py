from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from agents.models import ReasoningResult
from agents.validators import ReasoningOptions


class Intent(str, Enum):
    """Goal intents recognised by keyword matching."""

    PRIORITIZATION = "prioritization"
    DEADLINE = "deadline"
    ORDERING = "ordering"
    ANALYSIS = "analysis"
    GENERAL = "general"


@dataclass
class PlannedAction:
    """A tool call chosen by the plan phase and consumed by the act phase of the same iteration."""

    tool: str
    reason: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReflectionResult:
    goal_achieved: bool
    confidence: float
    recommendations: List[str]
    summary: str
    should_continue: bool


class BaseReasoner(ABC):
    """Contract every reasoner exposes to the agent layer."""

    @abstractmethod
    def reason(
        self,
        goal: str,
        options: Optional[Union[ReasoningOptions, Dict[str, Any]]] = None,
    ) -> ReasoningResult:
        """Run a full reasoning session for ``goal`` and return exactly one result."""
        raise NotImplementedError

    @abstractmethod
    def list_tools(self) -> List[Dict[str, str]]:
        raise NotImplementedError
