from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping

from agents.base_agent import BaseAgent, Handler, Params
from agents.exceptions import ValidationError
from agents.models import Notification, NotificationType
from agents.validators import NotificationFilters, validate
from storage.sqlite_store import SqliteStorage

_MESSAGES = {
    NotificationType.TASK_CREATED: "Task created: {title}",
    NotificationType.TASK_UPDATED: "Task updated: {title}",
    NotificationType.TASK_COMPLETED: "Task completed: {title}",
    NotificationType.TASK_OVERDUE: "Task overdue: {title}",
}


class NotificationAgent(BaseAgent):
    """Records task events and lets the user list and clear them."""

    class Action(str, Enum):
        NOTIFY = "notify"
        LIST = "list"
        CLEAR = "clear"

    def __init__(self, storage: SqliteStorage):
        super().__init__(
            name="notification-agent",
            display_name="Notification Agent",
            description="Manages task event notifications",
        )
        self.storage = storage

    def handlers(self) -> Mapping[Enum, Handler]:
        return {
            self.Action.NOTIFY: self.create_notification,
            self.Action.LIST: self.list_notifications,
            self.Action.CLEAR: self.clear_notifications,
        }

    def create_notification(self, params: Params) -> Notification:
        self.validate_params(params, ["type", "task_id", "message"])
        try:
            kind = NotificationType(params["type"])
        except ValueError:
            raise ValidationError(f"Unknown notification type: {params['type']}") from None

        notification = self.storage.create_notification(kind, params["task_id"], params["message"])
        self.logger.debug("notification_created", type=kind.value, task_id=params["task_id"])
        return notification

    def list_notifications(self, params: Params) -> List[Notification]:
        filters = validate(NotificationFilters, {k: v for k, v in params.items() if v is not None})
        notifications = self.storage.list_notifications(filters)
        self.logger.debug("notifications_listed", count=len(notifications))
        return notifications

    def clear_notifications(self, params: Params) -> Dict[str, Any]:
        cleared = self.storage.mark_all_notifications_read()
        self.logger.info("notifications_cleared", count=cleared)
        return {"cleared": cleared}

    # Helpers used by other components when a task event happens.

    def notify(self, kind: NotificationType, task_id: str, title: str):
        return self.execute(
            self.Action.NOTIFY,
            {"type": kind.value, "task_id": task_id, "message": _MESSAGES[kind].format(title=title)},
        )

    def notify_task_created(self, task_id: str, title: str):
        return self.notify(NotificationType.TASK_CREATED, task_id, title)

    def notify_task_updated(self, task_id: str, title: str):
        return self.notify(NotificationType.TASK_UPDATED, task_id, title)

    def notify_task_completed(self, task_id: str, title: str):
        return self.notify(NotificationType.TASK_COMPLETED, task_id, title)

    def notify_task_overdue(self, task_id: str, title: str):
        return self.notify(NotificationType.TASK_OVERDUE, task_id, title)
