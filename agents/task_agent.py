from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping

from agents.base_agent import BaseAgent, Handler, Params
from agents.exceptions import NotFoundError
from agents.models import Task
from agents.validators import CreateTaskInput, TaskFilters, UpdateTaskInput, validate
from storage.sqlite_store import SqliteStorage


class TaskAgent(BaseAgent):
    """Task CRUD over the store."""

    class Action(str, Enum):
        CREATE = "create"
        GET = "get"
        UPDATE = "update"
        DELETE = "delete"
        LIST = "list"
        GET_OVERDUE = "get_overdue"

    def __init__(self, storage: SqliteStorage):
        super().__init__(
            name="task-agent",
            display_name="Task Agent",
            description="Manages task creation, retrieval, updates, and deletion",
        )
        self.storage = storage

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            self.Action.CREATE: self.create_task,
            self.Action.GET: self.get_task,
            self.Action.UPDATE: self.update_task,
            self.Action.DELETE: self.delete_task,
            self.Action.LIST: self.list_tasks,
            self.Action.GET_OVERDUE: self.get_overdue_tasks,
        }

    def create_task(self, params: Params) -> Task:
        task = self.storage.create_task(validate(CreateTaskInput, params))
        self.logger.info("task_created", task_id=task.id, title=task.title)
        return task

    def get_task(self, params: Params) -> Task:
        self.validate_params(params, ["id"])
        task = self.storage.get_task(params["id"])
        if task is None:
            raise NotFoundError(f"Task not found: {params['id']}")
        return task

    def update_task(self, params: Params) -> Task:
        self.validate_params(params, ["id"])
        fields = {key: value for key, value in params.items() if key != "id"}
        task = self.storage.update_task(params["id"], validate(UpdateTaskInput, fields))
        if task is None:
            raise NotFoundError(f"Task not found: {params['id']}")
        self.logger.info("task_updated", task_id=task.id)
        return task

    def delete_task(self, params: Params) -> Dict[str, Any]:
        self.validate_params(params, ["id"])
        if not self.storage.delete_task(params["id"]):
            raise NotFoundError(f"Task not found: {params['id']}")
        self.logger.info("task_deleted", task_id=params["id"])
        return {"deleted": True, "id": params["id"]}

    def list_tasks(self, params: Params) -> List[Task]:
        filters = validate(TaskFilters, {k: v for k, v in params.items() if v is not None})
        tasks = self.storage.list_tasks(filters)
        self.logger.debug("tasks_listed", count=len(tasks))
        return tasks

    def get_overdue_tasks(self, params: Params) -> List[Task]:
        tasks = self.storage.get_overdue_tasks()
        self.logger.debug("overdue_tasks_retrieved", count=len(tasks))
        return tasks
