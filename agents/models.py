"""Data models for the agent layer."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "TaskStatus",
    "TaskPriority",
    "Task",
    "NotificationType",
    "Notification",
    "ReasoningPhase",
    "ReasoningStep",
    "ReasoningResult",
    "AgentStatus",
    "AgentInfo",
    "AgentResponse",
]


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Task(BaseModel):
    """A unit of work owned by the task store."""

    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class NotificationType(str, Enum):
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_OVERDUE = "task_overdue"


class Notification(BaseModel):
    id: str
    type: NotificationType
    task_id: str
    message: str
    read: bool = False
    created_at: datetime


class ReasoningPhase(str, Enum):
    """The five phases of one reasoning iteration, in execution order."""

    OBSERVE = "observe"
    THINK = "think"
    PLAN = "plan"
    ACT = "act"
    REFLECT = "reflect"


class ReasoningStep(BaseModel):
    """One persisted phase record. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    step_number: int = Field(ge=1)
    phase: ReasoningPhase
    input: str
    output: str
    duration_ms: int = Field(ge=0)
    created_at: datetime


class ReasoningResult(BaseModel):
    """Terminal output of one reasoning session."""

    goal: str
    result: str
    confidence: float = Field(ge=0.0, le=1.0)
    steps: List[ReasoningStep] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    session_id: str
    total_duration_ms: int = Field(ge=0)


class AgentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class AgentInfo(BaseModel):
    name: str
    display_name: str
    description: str
    capabilities: List[str]
    status: AgentStatus = AgentStatus.ACTIVE


class AgentResponse(BaseModel):
    """Envelope returned by every agent action."""

    success: bool
    agent: str
    action: str
    data: Any = None
    error: Optional[str] = None
