import json
from datetime import datetime, timezone

from agents.models import (
    AgentInfo,
    Notification,
    NotificationType,
    ReasoningPhase,
    ReasoningResult,
    ReasoningStep,
    Task,
    TaskPriority,
)
from utils.cli import (
    dump_json,
    format_agent_table,
    format_notification_list,
    format_reasoning_result,
    format_task,
    format_task_table,
)

WHEN = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


def _task(**fields) -> Task:
    base = dict(id="abcdef1234567890", title="Write docs", created_at=WHEN, updated_at=WHEN)
    base.update(fields)
    return Task(**base)


def test_format_task_verbose():
    task = _task(priority=TaskPriority.HIGH, due_date=WHEN, description="All of them", tags=["docs", "q4"])

    assert format_task(task, verbose=True).splitlines() == [
        "abcdef12 Write docs  pending high (due: 2026-10-17)",
        "  All of them",
        "  tags: docs, q4",
    ]
    assert format_task(task) == "abcdef12 Write docs  pending high (due: 2026-10-17)"


def test_format_task_table():
    assert format_task_table([]) == "No tasks found."

    table = format_task_table([_task(), _task(id="1234567890", title="x" * 40)])
    assert table.splitlines()[-1] == "Total: 2 task(s)"
    assert "x" * 29 not in table


def test_format_notification_list():
    assert format_notification_list([]) == "No notifications found."

    notes = [
        Notification(id="1", type=NotificationType.TASK_CREATED, task_id="t", message="Task created: a", created_at=WHEN),
        Notification(id="2", type=NotificationType.TASK_COMPLETED, task_id="t", message="Task completed: a", read=True, created_at=WHEN),
    ]
    text = format_notification_list(notes)

    assert "✨ Task created: a (unread)" in text
    assert "✅ Task completed: a (read)" in text
    assert text.splitlines()[-1] == "1 unread notification(s)"


def test_format_agent_table():
    agents = [AgentInfo(name="task-agent", display_name="Task Agent", description="d", capabilities=["create", "get"])]
    assert format_agent_table(agents).splitlines()[-1] == "Total: 1 agent(s)"


def test_format_reasoning_result_with_steps():
    step = ReasoningStep(
        id="s1",
        session_id="sess",
        step_number=1,
        phase=ReasoningPhase.OBSERVE,
        input="in",
        output="line one\nline two",
        duration_ms=3,
        created_at=WHEN,
    )
    result = ReasoningResult(
        goal="what next?",
        result="All good",
        confidence=0.7,
        steps=[step],
        recommendations=["Review and update task priorities regularly"],
        session_id="sess",
        total_duration_ms=12,
    )

    text = format_reasoning_result(result, show_steps=True)

    assert "[Step 1] OBSERVE (3ms)" in text
    assert "  line two" in text
    assert f"  {'█' * 14}{'░' * 6} 70%" in text
    assert "  1. Review and update task priorities regularly" in text
    assert text.splitlines()[-3:] == ["Session: sess", "Duration: 12ms", "Steps: 1"]
    assert "[Step 1]" not in format_reasoning_result(result)


def test_dump_json_handles_nested_models():
    data = {"tasks": [_task()], "count": 1}
    parsed = json.loads(dump_json(data))
    assert parsed["tasks"][0]["created_at"] == "2026-10-17T09:30:00Z"
    assert parsed["count"] == 1
