"""
Boundary validation for everything that enters the system from a caller:
task input, list filters, notification filters and reasoning requests.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from agents.exceptions import ValidationError
from agents.models import TaskPriority, TaskStatus

ModelT = TypeVar("ModelT", bound=BaseModel)

MAX_GOAL_LENGTH = 1000


def _normalize_due_date(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize_tags(tags: List[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        tag = tag.strip()
        if not tag:
            raise ValueError("Tag cannot be empty")
        if len(tag) > 50:
            raise ValueError("Tag must be 50 characters or less")
        if tag not in seen:
            seen.append(tag)
    return seen


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CreateTaskInput(_Input):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _normalize_due_date(value)

    @field_validator("tags")
    @classmethod
    def _tags_valid(cls, value: List[str]) -> List[str]:
        return _normalize_tags(value)


class UpdateTaskInput(_Input):
    """Only fields explicitly set are applied (see ``model_fields_set``)."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    tags: Optional[List[str]] = None

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _normalize_due_date(value)

    @field_validator("tags")
    @classmethod
    def _tags_valid(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return None if value is None else _normalize_tags(value)


class TaskFilters(_Input):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    limit: Optional[int] = Field(default=50, ge=1, le=1000)


class NotificationFilters(_Input):
    unread: Optional[bool] = None
    limit: int = Field(default=20, ge=1, le=100)


class ReasoningOptions(_Input):
    max_iterations: int = Field(default=10, ge=1, le=100, alias="maxIterations")
    timeout_ms: int = Field(default=30000, ge=1, le=300000, alias="timeoutMs")
    include_steps: bool = Field(default=False, alias="includeSteps")


class ReasoningGoal(_Input):
    goal: str = Field(max_length=MAX_GOAL_LENGTH)

    @field_validator("goal", mode="before")
    @classmethod
    def _goal_required(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Goal is required")
        return value


def format_validation_errors(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        message = err.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{loc}: {message}" if loc else message)
    return "; ".join(parts)


def validate(model: Type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model`` or raise ``ValidationError``."""
    if data is None:
        data = {}
    try:
        if isinstance(data, model):
            return data
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Validation failed: {format_validation_errors(exc)}") from exc


def validate_goal(goal: Any) -> str:
    """Return the goal unchanged when it is a non-blank string within length limits."""
    return validate(ReasoningGoal, {"goal": goal}).goal
