"""
Built-in read-only query and analysis tools over the task store.

Urgency score = priority weight (urgent 4, high 3, medium 2, low 1)
              + 2 if the due date is already past
              + 1 if the task is due within the next 24 hours.
Ties keep store order (Python's sort is stable).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from agents.models import Task, TaskPriority, TaskStatus
from agents.tools.base import FunctionTool, NoParams, ToolRegistry
from agents.tools.exceptions import ToolError
from agents.validators import TaskFilters
from storage.base import TaskStore
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TOOL_LIMIT = 100

PRIORITY_WEIGHTS: Dict[str, int] = {
    TaskPriority.URGENT.value: 4,
    TaskPriority.HIGH.value: 3,
    TaskPriority.MEDIUM.value: 2,
    TaskPriority.LOW.value: 1,
}
DEFAULT_PRIORITY_WEIGHT = 2
OVERDUE_BONUS = 2
DUE_SOON_BONUS = 1
DUE_SOON_HOURS = 24


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------- parameter models ------------------------

class _ToolParams(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class QueryTasksParams(_ToolParams):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    limit: int = Field(default=DEFAULT_TOOL_LIMIT, ge=1, le=1000)


class TaskListParams(_ToolParams):
    """``tasks`` omitted means the tool loads its own task set from the store."""

    tasks: Optional[List[Task]] = None


class FindDependenciesParams(_ToolParams):
    task_id: str = Field(alias="taskId", min_length=1)


# ----------------------------- tools -----------------------------------

class TaskTools:
    """Tool bodies bound to one store and one clock."""

    def __init__(self, store: TaskStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def urgency_score(self, task: Task, now: datetime) -> int:
        score = PRIORITY_WEIGHTS.get(task.priority.value, DEFAULT_PRIORITY_WEIGHT)
        due = task.due_date
        if due is not None:
            if due.tzinfo is None:
                due = due.replace(tzinfo=timezone.utc)
            if due < now:
                score += OVERDUE_BONUS
            hours_until_due = (due - now).total_seconds() / 3600
            if 0 < hours_until_due < DUE_SOON_HOURS:
                score += DUE_SOON_BONUS
        return score

    def rank(self, tasks: List[Task]) -> List[Tuple[Task, int]]:
        now = self.clock()
        scored = [(task, self.urgency_score(task, now)) for task in tasks]
        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    def query_tasks(self, params: QueryTasksParams) -> Dict[str, Any]:
        tasks = self.store.list_tasks(
            TaskFilters(status=params.status, priority=params.priority, limit=params.limit)
        )
        return {"tasks": [t.model_dump(mode="json") for t in tasks], "count": len(tasks)}

    def analyze_priorities(self, params: TaskListParams) -> Dict[str, Any]:
        tasks = params.tasks
        if tasks is None:
            tasks = self.store.list_tasks(TaskFilters(limit=DEFAULT_TOOL_LIMIT))

        ranked = self.rank(tasks)
        top = ranked[0][0].title if ranked else "none"
        return {
            "ranked_tasks": [
                {
                    "id": task.id,
                    "title": task.title,
                    "priority": task.priority.value,
                    "status": task.status.value,
                    "due_date": task.due_date.isoformat() if task.due_date else None,
                    "urgency_score": score,
                }
                for task, score in ranked
            ],
            "summary": f"Analyzed {len(tasks)} tasks. Top priority: {top}",
        }

    def find_overdue(self, params: NoParams) -> Dict[str, Any]:
        overdue = self.store.get_overdue_tasks(now=self.clock())
        if overdue:
            summary = f"Found {len(overdue)} overdue task(s): {', '.join(t.title for t in overdue)}"
        else:
            summary = "No overdue tasks found"
        return {
            "tasks": [t.model_dump(mode="json") for t in overdue],
            "count": len(overdue),
            "summary": summary,
        }

    def find_dependencies(self, params: FindDependenciesParams) -> Dict[str, Any]:
        task = self.store.get_task(params.task_id)
        if task is None:
            raise ToolError(f"Task not found: {params.task_id}", "find_dependencies")

        related = []
        for other in self.store.list_tasks(TaskFilters(limit=DEFAULT_TOOL_LIMIT)):
            if other.id == task.id:
                continue
            shared = [tag for tag in other.tags if tag in task.tags]
            if shared:
                related.append(
                    {"id": other.id, "title": other.title, "tags": other.tags, "shared_tags": shared}
                )

        return {
            "task": {"id": task.id, "title": task.title, "tags": task.tags},
            "related_tasks": related,
            "summary": f'Found {len(related)} related task(s) for "{task.title}"',
        }

    def suggest_order(self, params: TaskListParams) -> Dict[str, Any]:
        tasks = params.tasks
        if tasks is None:
            tasks = self.store.list_tasks(TaskFilters(status=TaskStatus.PENDING, limit=DEFAULT_TOOL_LIMIT))

        analysis = self.analyze_priorities(TaskListParams(tasks=tasks))
        ranked = analysis["ranked_tasks"]
        return {
            "suggested_order": [
                {
                    "order": position,
                    "id": item["id"],
                    "title": item["title"],
                    "reason": f"Urgency score: {item['urgency_score']}",
                }
                for position, item in enumerate(ranked, start=1)
            ],
            "summary": f"Suggested order for {len(ranked)} tasks based on priority and urgency",
        }


def register_task_tools(registry: ToolRegistry, tools: TaskTools) -> ToolRegistry:
    """Register the built-in tools in their canonical order."""
    registry.register(FunctionTool(
        "query_tasks", "Get tasks matching specified criteria", tools.query_tasks, QueryTasksParams,
    ))
    registry.register(FunctionTool(
        "analyze_priorities", "Analyze tasks and rank by priority and urgency",
        tools.analyze_priorities, TaskListParams,
    ))
    registry.register(FunctionTool(
        "find_overdue", "Find all overdue tasks", tools.find_overdue,
    ))
    registry.register(FunctionTool(
        "find_dependencies", "Find tasks with shared tags (potential dependencies)",
        tools.find_dependencies, FindDependenciesParams,
    ))
    registry.register(FunctionTool(
        "suggest_order", "Suggest optimal execution order for tasks", tools.suggest_order, TaskListParams,
    ))
    # Same computation as analyze_priorities under a second name.
    registry.register(FunctionTool(
        "calculate_urgency", "Calculate urgency scores for tasks", tools.analyze_priorities, TaskListParams,
    ))
    logger.debug("builtin_tools_registered", count=len(registry.list_names()))
    return registry


def build_tool_registry(store: TaskStore, clock: Callable[[], datetime] = utc_now) -> ToolRegistry:
    return register_task_tools(ToolRegistry(), TaskTools(store, clock))
