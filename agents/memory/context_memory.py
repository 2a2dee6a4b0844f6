"""Session-scoped reasoning context and step history."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from agents.models import ReasoningPhase, ReasoningStep, Task
from agents.tools.task_tools import utc_now
from agents.validators import TaskFilters
from storage.base import StepLog, TaskStore
from utils.logger import get_logger

logger = get_logger(__name__)

CONTEXT_TASK_LIMIT = 1000


@dataclass
class TaskStats:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    overdue_count: int = 0


@dataclass
class ReasoningContext:
    """Snapshot of store state plus the goal and session it belongs to."""

    goal: str
    session_id: str
    tasks: List[Task] = field(default_factory=list)
    overdue_tasks: List[Task] = field(default_factory=list)
    stats: TaskStats = field(default_factory=TaskStats)
    previous_steps: List[ReasoningStep] = field(default_factory=list)


class ContextMemory:
    """
    Builds context snapshots and records the steps of one reasoning session.

    One instance serves one session at a time; ``initialize_context`` starts a
    new session and drops any history left from the previous one.
    """

    def __init__(
        self,
        store: TaskStore,
        step_log: StepLog,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.step_log = step_log
        self.clock = clock
        self.session_id: Optional[str] = None
        self._steps: List[ReasoningStep] = []

    def initialize_context(self, goal: str, session_id: Optional[str] = None) -> ReasoningContext:
        self.session_id = session_id or uuid4().hex
        self._steps = []
        logger.debug("context_initializing", session_id=self.session_id, goal=goal)
        return self._build_context(goal, self.session_id)

    def refresh_context(self, context: ReasoningContext) -> ReasoningContext:
        """Recompute tasks and stats from the store, keeping goal, session and history."""
        refreshed = self._build_context(context.goal, context.session_id)
        refreshed.previous_steps = self.get_current_steps()
        return refreshed

    def add_step(
        self,
        session_id: str,
        step_number: int,
        phase: ReasoningPhase,
        input: str,
        output: str,
        duration_ms: int,
    ) -> ReasoningStep:
        step = self.step_log.save_step(session_id, step_number, phase, input, output, duration_ms)
        self._steps.append(step)
        logger.debug(
            "reasoning_step_added",
            session_id=session_id,
            step_number=step_number,
            phase=phase.value,
            duration_ms=duration_ms,
        )
        return step

    def get_current_steps(self) -> List[ReasoningStep]:
        return list(self._steps)

    def get_session_steps(self, session_id: str) -> List[ReasoningStep]:
        return self.step_log.get_steps(session_id)

    def clear_session(self) -> None:
        self.session_id = None
        self._steps = []

    def _build_context(self, goal: str, session_id: str) -> ReasoningContext:
        tasks = self.store.list_tasks(TaskFilters(limit=CONTEXT_TASK_LIMIT))
        overdue = self.store.get_overdue_tasks(now=self.clock())
        return ReasoningContext(
            goal=goal,
            session_id=session_id,
            tasks=tasks,
            overdue_tasks=overdue,
            stats=self._calculate_stats(tasks, overdue),
            previous_steps=self.get_current_steps(),
        )

    @staticmethod
    def _calculate_stats(tasks: List[Task], overdue: List[Task]) -> TaskStats:
        return TaskStats(
            total=len(tasks),
            by_status=dict(Counter(t.status.value for t in tasks)),
            by_priority=dict(Counter(t.priority.value for t in tasks)),
            overdue_count=len(overdue),
        )
