from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from agents.models import ReasoningPhase, ReasoningStep, Task
from agents.validators import TaskFilters


class TaskStore(ABC):
    """Read side of the task store, as consumed by the reasoning core."""

    @abstractmethod
    def list_tasks(self, filters: Optional[TaskFilters] = None) -> List[Task]: ...

    @abstractmethod
    def get_overdue_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        """Tasks whose due date is strictly before ``now`` and that are not done or cancelled."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]: ...


class StepLog(ABC):
    """Append-only persistence of reasoning steps for audit and replay."""

    @abstractmethod
    def save_step(
        self,
        session_id: str,
        step_number: int,
        phase: ReasoningPhase,
        input: str,
        output: str,
        duration_ms: int,
    ) -> ReasoningStep: ...

    @abstractmethod
    def get_steps(self, session_id: str) -> List[ReasoningStep]: ...
