from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from agents.base_agent import BaseAgent, Handler, Params
from agents.models import ReasoningResult
from agents.reasoner.base import BaseReasoner
from agents.validators import ReasoningOptions, validate, validate_goal


def _option_overrides(params: Params) -> Dict[str, Any]:
    """Pick option values from ``params`` by field name or camelCase alias, keyed by field name."""
    overrides: Dict[str, Any] = {}
    for name, field in ReasoningOptions.model_fields.items():
        for key in (field.alias, name):
            if key and params.get(key) is not None:
                overrides[name] = params[key]
    return overrides


class ReasoningAgent(BaseAgent):
    """Exposes a reasoner to the agent layer."""

    class Action(str, Enum):
        REASON = "reason"
        GET_TOOLS = "get_tools"

    def __init__(self, reasoner: BaseReasoner, defaults: Optional[ReasoningOptions] = None):
        super().__init__(
            name="reasoning-agent",
            display_name="Reasoning Agent",
            description=(
                "Autonomous agent that analyzes tasks and provides intelligent "
                "recommendations using structured reasoning"
            ),
        )
        self.reasoner = reasoner
        self.defaults = defaults or ReasoningOptions()

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            self.Action.REASON: self.reason,
            self.Action.GET_TOOLS: self.get_tools,
        }

    def reason(self, params: Params) -> ReasoningResult:
        goal = validate_goal(params.get("goal"))
        options = validate(ReasoningOptions, {**self.defaults.model_dump(), **_option_overrides(params)})

        self.logger.info("reasoning_requested", goal=goal, options=options.model_dump())
        result = self.reasoner.reason(goal, options)
        self.logger.info(
            "reasoning_complete",
            session_id=result.session_id,
            confidence=result.confidence,
            recommendation_count=len(result.recommendations),
            duration_ms=result.total_duration_ms,
        )
        return result

    def get_tools(self, params: Params) -> Dict[str, Any]:
        return {"tools": self.reasoner.list_tools()}
