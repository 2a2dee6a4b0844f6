from datetime import datetime, timezone

import pytest

from agents.exceptions import ValidationError
from agents.validators import (
    CreateTaskInput,
    NotificationFilters,
    ReasoningOptions,
    TaskFilters,
    UpdateTaskInput,
    validate,
    validate_goal,
)


def test_create_task_minimal_defaults():
    task = validate(CreateTaskInput, {"title": "Do it"})
    assert task.priority.value == "medium"
    assert task.tags == []
    assert task.due_date is None


def test_create_task_accepts_camel_case_due_date_and_normalizes_to_utc():
    task = validate(CreateTaskInput, {"title": "t", "dueDate": "2026-10-20T10:00:00+02:00"})
    assert task.due_date == datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)
    assert task.due_date.tzinfo is timezone.utc


def test_naive_due_date_is_treated_as_utc():
    task = validate(CreateTaskInput, {"title": "t", "due_date": "2026-10-20T10:00:00"})
    assert task.due_date == datetime(2026, 10, 20, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "data, fragment",
    [
        ({}, "title"),
        ({"title": ""}, "title"),
        ({"title": "   "}, "Title is required"),
        ({"title": "x" * 201}, "title"),
        ({"title": "t", "description": "d" * 2001}, "description"),
        ({"title": "t", "priority": "critical"}, "priority"),
        ({"title": "t", "tags": [""]}, "Tag cannot be empty"),
        ({"title": "t", "tags": ["x" * 51]}, "Tag must be 50 characters or less"),
        ({"title": "t", "owner": "me"}, "owner"),
    ],
)
def test_create_task_rejects_invalid_input(data, fragment):
    with pytest.raises(ValidationError) as exc_info:
        validate(CreateTaskInput, data)
    assert exc_info.value.message.startswith("Validation failed:")
    assert fragment in exc_info.value.message


def test_update_task_tracks_explicitly_set_fields():
    update = validate(UpdateTaskInput, {"description": None, "status": "done"})
    assert update.model_fields_set == {"description", "status"}


def test_task_filters_limit_bounds():
    assert validate(TaskFilters, {}).limit == 50
    with pytest.raises(ValidationError):
        validate(TaskFilters, {"limit": 0})
    with pytest.raises(ValidationError):
        validate(TaskFilters, {"limit": 1001})


def test_notification_filters_defaults_and_bounds():
    assert validate(NotificationFilters, None).limit == 20
    with pytest.raises(ValidationError):
        validate(NotificationFilters, {"limit": 101})


def test_reasoning_options_defaults_and_aliases():
    assert validate(ReasoningOptions, None) == ReasoningOptions(max_iterations=10, timeout_ms=30000, include_steps=False)
    options = validate(ReasoningOptions, {"maxIterations": 3, "timeoutMs": 500, "includeSteps": True})
    assert (options.max_iterations, options.timeout_ms, options.include_steps) == (3, 500, True)


@pytest.mark.parametrize(
    "data",
    [
        {"max_iterations": 0},
        {"max_iterations": 101},
        {"timeout_ms": 0},
        {"timeout_ms": 300001},
    ],
)
def test_reasoning_options_out_of_range(data):
    with pytest.raises(ValidationError):
        validate(ReasoningOptions, data)


def test_validate_returns_existing_instance_unchanged():
    options = ReasoningOptions(max_iterations=2)
    assert validate(ReasoningOptions, options) is options


@pytest.mark.parametrize("goal", [None, "", "   "])
def test_validate_goal_requires_text(goal):
    with pytest.raises(ValidationError, match="Goal is required"):
        validate_goal(goal)


def test_validate_goal_length_limit():
    assert validate_goal("x" * 1000) == "x" * 1000
    with pytest.raises(ValidationError):
        validate_goal("x" * 1001)
