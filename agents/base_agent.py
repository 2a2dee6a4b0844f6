"""BaseAgent
================

Common envelope for every agent: a named component that accepts an action
plus a parameter bag and always answers with an ``AgentResponse``. Each
subclass declares its actions as a string ``Enum`` and maps every member to a
handler; the action string is parsed into that enum before dispatch.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, Union

from agents.exceptions import AgentError, TaskFlowError, ValidationError
from agents.models import AgentInfo, AgentResponse, AgentStatus
from utils.logger import get_logger

Params = Dict[str, Any]
Handler = Callable[[Params], Any]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class BaseAgent(ABC):
    """Parses actions, dispatches to handlers and converts failures into responses."""

    Action: Type[Enum]

    def __init__(self, *, name: str, display_name: str, description: str):
        self.name = name
        self.display_name = display_name
        self.description = description
        self.status = AgentStatus.ACTIVE
        self.logger = get_logger(__name__).bind(agent=name)
        self.logger.debug("agent_initialized", capabilities=self.capabilities)

    @property
    def capabilities(self) -> List[str]:
        return [action.value for action in self.Action]

    @abstractmethod
    def handlers(self) -> Mapping[Enum, Handler]:
        """Return the handler for every member of ``Action``."""
        raise NotImplementedError

    def get_info(self) -> AgentInfo:
        return AgentInfo(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            capabilities=self.capabilities,
            status=self.status,
        )

    def supports_action(self, action: Union[str, Enum]) -> bool:
        value = action.value if isinstance(action, Enum) else action
        try:
            self.parse_action(value)
        except AgentError:
            return False
        return True

    def set_status(self, status: AgentStatus) -> None:
        self.status = status
        self.logger.info("agent_status_changed", status=status.value)

    def execute(self, action: Union[str, Enum], params: Optional[Params] = None) -> AgentResponse:
        """Run ``action`` and wrap the outcome. Never raises."""
        name = action.value if isinstance(action, Enum) else str(action)
        params = dict(params or {})
        self.logger.debug("action_executing", action=name)

        try:
            handler = self.handlers()[self.parse_action(name)]
            data = handler(params)
        except Exception as exc:
            message = exc.user_message if isinstance(exc, TaskFlowError) else str(exc)
            self.logger.error("action_failed", action=name, error=message)
            return AgentResponse(success=False, agent=self.name, action=name, error=message)

        self.logger.debug("action_completed", action=name)
        return AgentResponse(success=True, agent=self.name, action=name, data=data)

    def parse_action(self, name: str) -> Enum:
        """Map an action string to ``Action``; camelCase spellings such as ``getTools`` are accepted."""
        for candidate in (name, _CAMEL_BOUNDARY.sub("_", name).lower()):
            try:
                return self.Action(candidate)
            except ValueError:
                continue
        raise AgentError(
            f"Action '{name}' not supported. Available: {', '.join(self.capabilities)}",
            details={"agent": self.name},
        )

    @staticmethod
    def validate_params(params: Params, required: Iterable[str]) -> None:
        missing = [key for key in required if params.get(key) is None]
        if missing:
            raise ValidationError(f"Missing required parameters: {', '.join(missing)}")
