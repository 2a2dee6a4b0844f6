from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from agents.coordinator import CoordinatorAgent
from agents.notification_agent import NotificationAgent
from agents.reasoner.engine import ReasoningEngine
from agents.reasoning_agent import ReasoningAgent
from agents.registry import AgentRegistry
from agents.task_agent import TaskAgent
from agents.tools.base import ToolRegistry
from agents.tools.task_tools import build_tool_registry
from agents.validators import ReasoningOptions
from storage.sqlite_store import SqliteStorage
from utils.config import Config
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AgentSystem:
    """Everything one process needs, wired once and passed around explicitly."""

    config: Config
    storage: SqliteStorage
    tools: ToolRegistry
    engine: ReasoningEngine
    registry: AgentRegistry
    coordinator: CoordinatorAgent
    task_agent: TaskAgent
    notification_agent: NotificationAgent
    reasoning_agent: ReasoningAgent

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> "AgentSystem":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def build_agents(config: Optional[Config] = None, storage: Optional[SqliteStorage] = None) -> AgentSystem:
    """
    Wire storage, tools, the reasoning engine and all agents together.

    Args:
        config: Loaded configuration; defaults are used when omitted.
        storage: An already-open store. When omitted one is opened at
            ``config.database.path``.
    """
    config = config or Config()
    storage = storage or SqliteStorage(config.database.path)

    tools = build_tool_registry(storage)
    engine = ReasoningEngine(storage, storage, tools)

    task_agent = TaskAgent(storage)
    notification_agent = NotificationAgent(storage)
    reasoning_agent = ReasoningAgent(
        engine,
        defaults=ReasoningOptions(
            max_iterations=config.reasoning.max_iterations,
            timeout_ms=config.reasoning.timeout_ms,
        ),
    )

    registry = AgentRegistry()
    registry.register(task_agent)
    registry.register(notification_agent)
    registry.register(reasoning_agent)
    coordinator = CoordinatorAgent(registry)
    registry.register(coordinator)

    logger.debug("agents_built", agents=registry.agent_names(), database=storage.db_path)
    return AgentSystem(
        config=config,
        storage=storage,
        tools=tools,
        engine=engine,
        registry=registry,
        coordinator=coordinator,
        task_agent=task_agent,
        notification_agent=notification_agent,
        reasoning_agent=reasoning_agent,
    )
