from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from agents.base_agent import BaseAgent, Handler, Params
from agents.exceptions import AgentError
from agents.models import AgentInfo, AgentResponse
from agents.registry import AgentRegistry


class CoordinatorAgent(BaseAgent):
    """Routes requests to the specialised agents held by a registry."""

    class Action(str, Enum):
        ROUTE = "route"
        LIST_AGENTS = "list_agents"
        GET_AGENT_STATUS = "get_agent_status"

    def __init__(self, registry: AgentRegistry):
        super().__init__(
            name="coordinator",
            display_name="Coordinator Agent",
            description="Routes requests to appropriate specialized agents",
        )
        self.registry = registry

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            self.Action.ROUTE: self.route_request,
            self.Action.LIST_AGENTS: self.list_agents,
            self.Action.GET_AGENT_STATUS: self.get_agent_status,
        }

    def route_request(self, params: Params) -> AgentResponse:
        self.validate_params(params, ["agent", "action"])
        target = self.registry.get_agent_or_raise(params["agent"])

        self.logger.debug("request_routing", target_agent=target.name, target_action=params["action"])
        response = target.execute(params["action"], params.get("params") or {})
        self.logger.debug("request_routed", target_agent=target.name, success=response.success)
        return response

    def list_agents(self, params: Params) -> List[AgentInfo]:
        return self.registry.list_agents()

    def get_agent_status(self, params: Params) -> AgentInfo:
        self.validate_params(params, ["name"])
        return self.registry.get_agent_or_raise(params["name"]).get_info()

    def route_to(self, agent: str, action: str, params: Optional[Dict[str, Any]] = None) -> AgentResponse:
        """Route and unwrap: returns the target agent's response, raising if routing itself failed."""
        response = self.execute(self.Action.ROUTE, {"agent": agent, "action": action, "params": params or {}})
        if not response.success:
            raise AgentError(response.error or "Unknown routing error")
        return response.data
