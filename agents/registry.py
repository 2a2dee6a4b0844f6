from __future__ import annotations

from typing import Dict, List, Optional

from agents.base_agent import BaseAgent
from agents.exceptions import AgentError, NotFoundError
from agents.models import AgentInfo
from utils.logger import get_logger

logger = get_logger(__name__)


class AgentRegistry:
    """Name-keyed collection of agents, in registration order."""

    def __init__(self) -> None:
        self._agents: Dict[str, BaseAgent] = {}

    def register(self, agent: BaseAgent) -> None:
        if agent.name in self._agents:
            raise AgentError(f"Agent already registered: {agent.name}")
        self._agents[agent.name] = agent
        logger.debug("agent_registered", name=agent.name)

    def get_agent(self, name: str) -> Optional[BaseAgent]:
        return self._agents.get(name)

    def get_agent_or_raise(self, name: str) -> BaseAgent:
        agent = self._agents.get(name)
        if agent is None:
            raise NotFoundError(
                f"Agent not found: {name}. Available agents: {', '.join(self._agents)}"
            )
        return agent

    def list_agents(self) -> List[AgentInfo]:
        return [agent.get_info() for agent in self._agents.values()]

    def has_agent(self, name: str) -> bool:
        return name in self._agents

    def agent_names(self) -> List[str]:
        return list(self._agents)

    def find_agents_by_capability(self, capability: str) -> List[BaseAgent]:
        return [agent for agent in self._agents.values() if agent.supports_action(capability)]
