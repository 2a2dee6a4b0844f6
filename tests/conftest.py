from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from agents.models import ReasoningPhase, ReasoningStep, Task
from agents.validators import CreateTaskInput, TaskFilters
from storage.base import StepLog, TaskStore
from storage.sqlite_store import SqliteStorage

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def add_task(storage: SqliteStorage, title: str, **fields) -> Task:
    return storage.create_task(CreateTaskInput(title=title, **fields))


def days_from_now(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


class TickingClock:
    """Monotonic clock double that advances ``step`` seconds on every read."""

    def __init__(self, step: float = 0.001, start: float = 100.0):
        self.step = step
        self.current = start
        self.reads = 0

    def __call__(self) -> float:
        value = self.current
        self.current += self.step
        self.reads += 1
        return value


class FailingStore(TaskStore):
    def __init__(self, message: str = "store unavailable"):
        self.message = message

    def list_tasks(self, filters: Optional[TaskFilters] = None) -> List[Task]:
        raise RuntimeError(self.message)

    def get_overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        raise RuntimeError(self.message)

    def get_task(self, task_id: str) -> Optional[Task]:
        raise RuntimeError(self.message)


class RecordingStepLog(StepLog):
    """Wraps a real step log and remembers every save call."""

    def __init__(self, inner: StepLog):
        self.inner = inner
        self.saved: List[ReasoningStep] = []

    def save_step(
        self,
        session_id: str,
        step_number: int,
        phase: ReasoningPhase,
        input: str,
        output: str,
        duration_ms: int,
    ) -> ReasoningStep:
        step = self.inner.save_step(session_id, step_number, phase, input, output, duration_ms)
        self.saved.append(step)
        return step

    def get_steps(self, session_id: str) -> List[ReasoningStep]:
        return self.inner.get_steps(session_id)


@pytest.fixture
def storage():
    store = SqliteStorage(":memory:")
    yield store
    store.close()


@pytest.fixture
def step_log(storage):
    return RecordingStepLog(storage)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for key in (
        "DATABASE_PATH",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "LOG_CONSOLE_RENDERER",
        "ENABLE_NOTIFICATIONS",
        "REASONING_MAX_ITERATIONS",
        "REASONING_TIMEOUT_MS",
    ):
        monkeypatch.delenv(key, raising=False)
