"""
SQLite-backed task store, notification log and reasoning step log.
"""
from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence
from uuid import uuid4

from agents.exceptions import StorageError, ValidationError
from agents.models import (
    Notification,
    NotificationType,
    ReasoningPhase,
    ReasoningStep,
    Task,
    TaskStatus,
)
from agents.validators import CreateTaskInput, NotificationFilters, TaskFilters, UpdateTaskInput
from storage.base import StepLog, TaskStore
from utils.logger import get_logger, trace_method

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  description TEXT,
  status TEXT NOT NULL DEFAULT 'pending',
  priority TEXT NOT NULL DEFAULT 'medium',
  due_date TEXT,
  tags TEXT DEFAULT '[]',
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date);

CREATE TABLE IF NOT EXISTS notifications (
  id TEXT PRIMARY KEY,
  type TEXT NOT NULL,
  task_id TEXT NOT NULL,
  message TEXT NOT NULL,
  read INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL,
  FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_notifications_task ON notifications(task_id);
CREATE INDEX IF NOT EXISTS idx_notifications_read ON notifications(read);

CREATE TABLE IF NOT EXISTS reasoning_steps (
  id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL,
  step_number INTEGER NOT NULL,
  phase TEXT NOT NULL,
  input TEXT NOT NULL,
  output TEXT NOT NULL,
  duration_ms INTEGER NOT NULL,
  created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_reasoning_steps_session ON reasoning_steps(session_id);
"""

# Same-status updates are always accepted; done and cancelled may be reopened.
ALLOWED_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DONE, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.PENDING, TaskStatus.DONE, TaskStatus.CANCELLED}),
    TaskStatus.DONE: frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS}),
    TaskStatus.CANCELLED: frozenset({TaskStatus.PENDING}),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db_time(value: datetime) -> str:
    """Fixed-width UTC ISO string so that text comparison orders chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteStorage(TaskStore, StepLog):
    """Single-connection SQLite store; ``":memory:"`` gives a throwaway database.

    The connection may be shared between threads. All access to it is
    serialized through one re-entrant lock.
    """

    def __init__(self, db_path: str = ":memory:"):
        logger.debug("database_initializing", path=db_path)
        self.db_path = db_path
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to open database at {db_path}: {exc}") from exc
        logger.info("database_initialized", path=db_path)

    def __enter__(self) -> "SqliteStorage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("database_closed", path=self.db_path)

    # ----------------------------- tasks -----------------------------------

    @trace_method
    def create_task(self, input: CreateTaskInput) -> Task:
        now = _now()
        task = Task(
            id=uuid4().hex,
            title=input.title,
            description=input.description,
            status=TaskStatus.PENDING,
            priority=input.priority,
            due_date=input.due_date,
            tags=list(input.tags),
            created_at=now,
            updated_at=now,
        )
        with self._write():
            self._conn.execute(
                """
                INSERT INTO tasks (id, title, description, status, priority, due_date, tags, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id,
                    task.title,
                    task.description,
                    task.status.value,
                    task.priority.value,
                    _to_db_time(task.due_date) if task.due_date else None,
                    json.dumps(task.tags),
                    _to_db_time(task.created_at),
                    _to_db_time(task.updated_at),
                ),
            )
        logger.debug("task_created", task_id=task.id, title=task.title)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        rows = self._query("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return self._row_to_task(rows[0]) if rows else None

    @trace_method
    def update_task(self, task_id: str, input: UpdateTaskInput) -> Optional[Task]:
        with self._lock:
            return self._apply_update(task_id, input)

    def _apply_update(self, task_id: str, input: UpdateTaskInput) -> Optional[Task]:
        existing = self.get_task(task_id)
        if existing is None:
            return None

        fields = input.model_fields_set
        updates: List[str] = []
        values: List[object] = []

        if "title" in fields and input.title is not None:
            updates.append("title = ?")
            values.append(input.title)
        if "description" in fields:
            updates.append("description = ?")
            values.append(input.description)
        if "status" in fields and input.status is not None:
            self._check_transition(existing, input.status)
            updates.append("status = ?")
            values.append(input.status.value)
        if "priority" in fields and input.priority is not None:
            updates.append("priority = ?")
            values.append(input.priority.value)
        if "due_date" in fields:
            updates.append("due_date = ?")
            values.append(_to_db_time(input.due_date) if input.due_date else None)
        if "tags" in fields and input.tags is not None:
            updates.append("tags = ?")
            values.append(json.dumps(input.tags))

        if not updates:
            return existing

        updates.append("updated_at = ?")
        values.append(_to_db_time(_now()))
        values.append(task_id)

        with self._write():
            self._conn.execute(f"UPDATE tasks SET {', '.join(updates)} WHERE id = ?", values)
        logger.debug("task_updated", task_id=task_id, fields=sorted(fields))
        return self.get_task(task_id)

    @trace_method
    def delete_task(self, task_id: str) -> bool:
        with self._write():
            cursor = self._conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("task_deleted", task_id=task_id)
        return deleted

    def list_tasks(self, filters: Optional[TaskFilters] = None) -> List[Task]:
        filters = filters or TaskFilters(limit=None)
        sql = "SELECT * FROM tasks WHERE 1=1"
        params: List[object] = []

        if filters.status:
            sql += " AND status = ?"
            params.append(filters.status.value)
        if filters.priority:
            sql += " AND priority = ?"
            params.append(filters.priority.value)

        sql += " ORDER BY created_at DESC, rowid DESC"

        if filters.limit:
            sql += " LIMIT ?"
            params.append(filters.limit)

        rows = self._query(sql, params)
        return [self._row_to_task(row) for row in rows]

    def get_overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        rows = self._query(
            """
            SELECT * FROM tasks
            WHERE due_date IS NOT NULL
              AND due_date < ?
              AND status NOT IN ('done', 'cancelled')
            ORDER BY due_date ASC, rowid ASC
            """,
            (_to_db_time(now or _now()),),
        )
        return [self._row_to_task(row) for row in rows]

    # ----------------------------- notifications ---------------------------

    def create_notification(self, type: NotificationType, task_id: str, message: str) -> Notification:
        notification = Notification(
            id=uuid4().hex,
            type=type,
            task_id=task_id,
            message=message,
            read=False,
            created_at=_now(),
        )
        with self._write():
            self._conn.execute(
                """
                INSERT INTO notifications (id, type, task_id, message, read, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (
                    notification.id,
                    notification.type.value,
                    task_id,
                    message,
                    _to_db_time(notification.created_at),
                ),
            )
        return notification

    def list_notifications(self, filters: Optional[NotificationFilters] = None) -> List[Notification]:
        filters = filters or NotificationFilters()
        sql = "SELECT * FROM notifications WHERE 1=1"
        params: List[object] = []
        if filters.unread:
            sql += " AND read = 0"
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(filters.limit)

        rows = self._query(sql, params)
        return [
            Notification(
                id=row["id"],
                type=NotificationType(row["type"]),
                task_id=row["task_id"],
                message=row["message"],
                read=row["read"] == 1,
                created_at=_from_db_time(row["created_at"]),
            )
            for row in rows
        ]

    def mark_all_notifications_read(self) -> int:
        with self._write():
            cursor = self._conn.execute("UPDATE notifications SET read = 1 WHERE read = 0")
        return cursor.rowcount

    # ----------------------------- reasoning steps -------------------------

    def save_step(
        self,
        session_id: str,
        step_number: int,
        phase: ReasoningPhase,
        input: str,
        output: str,
        duration_ms: int,
    ) -> ReasoningStep:
        step = ReasoningStep(
            id=uuid4().hex,
            session_id=session_id,
            step_number=step_number,
            phase=phase,
            input=input,
            output=output,
            duration_ms=max(0, int(duration_ms)),
            created_at=_now(),
        )
        with self._write():
            self._conn.execute(
                """
                INSERT INTO reasoning_steps (id, session_id, step_number, phase, input, output, duration_ms, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    step.id,
                    step.session_id,
                    step.step_number,
                    step.phase.value,
                    step.input,
                    step.output,
                    step.duration_ms,
                    _to_db_time(step.created_at),
                ),
            )
        return step

    def get_steps(self, session_id: str) -> List[ReasoningStep]:
        rows = self._query(
            "SELECT * FROM reasoning_steps WHERE session_id = ? ORDER BY step_number ASC",
            (session_id,),
        )
        return [
            ReasoningStep(
                id=row["id"],
                session_id=row["session_id"],
                step_number=row["step_number"],
                phase=ReasoningPhase(row["phase"]),
                input=row["input"],
                output=row["output"],
                duration_ms=row["duration_ms"],
                created_at=_from_db_time(row["created_at"]),
            )
            for row in rows
        ]

    # ----------------------------- helpers ---------------------------------

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        """Transaction scope that commits on success and rolls back on error."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as exc:
                raise StorageError(f"Database write failed: {exc}") from exc

    def _query(self, sql: str, params: Sequence[object] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    @staticmethod
    def _check_transition(task: Task, target: TaskStatus) -> None:
        if target == task.status or target in ALLOWED_TRANSITIONS[task.status]:
            return
        raise ValidationError(
            f"Invalid status transition: {task.status.value} -> {target.value}",
            details={"task_id": task.id},
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            status=TaskStatus(row["status"]),
            priority=row["priority"],
            due_date=_from_db_time(row["due_date"]),
            tags=json.loads(row["tags"] or "[]"),
            created_at=_from_db_time(row["created_at"]),
            updated_at=_from_db_time(row["updated_at"]),
        )

