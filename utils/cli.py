"""CLI utility functions for rendering agent output."""
import json
from typing import Any, List

from pydantic import BaseModel

from agents.models import AgentInfo, Notification, ReasoningResult, ReasoningStep, Task

RULE = "─" * 63

_NOTIFICATION_ICONS = {
    "task_created": "✨",
    "task_updated": "📝",
    "task_completed": "✅",
    "task_overdue": "⚠️",
}


def to_jsonable(data: Any) -> Any:
    """Convert models (and containers of models) into plain JSON-ready values."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {key: to_jsonable(value) for key, value in data.items()}
    return data


def dump_json(data: Any) -> str:
    return json.dumps(to_jsonable(data), indent=2, ensure_ascii=False)


def format_task(task: Task, verbose: bool = False) -> str:
    line = f"{task.id[:8]} {task.title}  {task.status.value} {task.priority.value}"
    if task.due_date:
        line += f" (due: {task.due_date.date().isoformat()})"
    if verbose and task.description:
        line += f"\n  {task.description}"
    if verbose and task.tags:
        line += f"\n  tags: {', '.join(task.tags)}"
    return line


def format_task_table(tasks: List[Task]) -> str:
    if not tasks:
        return "No tasks found."

    lines = [f"{'ID':<10} {'TITLE':<30} {'STATUS':<12} {'PRIORITY':<10} {'DUE DATE':<12}", "─" * 80]
    for task in tasks:
        due = task.due_date.date().isoformat() if task.due_date else "-"
        lines.append(
            f"{task.id[:8]:<10} {task.title[:28]:<30} {task.status.value:<12} {task.priority.value:<10} {due:<12}"
        )
    lines.append("─" * 80)
    lines.append(f"Total: {len(tasks)} task(s)")
    return "\n".join(lines)


def format_notification_list(notifications: List[Notification]) -> str:
    if not notifications:
        return "No notifications found."

    lines = ["Notifications", "─" * 60]
    for n in notifications:
        icon = _NOTIFICATION_ICONS.get(n.type.value, "📢")
        state = "(read)" if n.read else "(unread)"
        lines.append(f"{icon} {n.message} {state}")
        lines.append(f"   {n.created_at.isoformat(timespec='seconds')}")
        lines.append("")

    unread = sum(1 for n in notifications if not n.read)
    if unread:
        lines.append(f"{unread} unread notification(s)")
    return "\n".join(lines)


def format_agent_info(agent: AgentInfo) -> str:
    return "\n".join([
        f"{agent.display_name} ({agent.name})",
        f"  Status: {agent.status.value}",
        f"  {agent.description}",
        f"  Capabilities: {', '.join(agent.capabilities)}",
    ])


def format_agent_table(agents: List[AgentInfo]) -> str:
    lines = [f"{'NAME':<20} {'STATUS':<10} {'CAPABILITIES':<40}", "─" * 75]
    for agent in agents:
        lines.append(f"{agent.name:<20} {agent.status.value:<10} {', '.join(agent.capabilities[:4]):<40}")
    lines.append("─" * 75)
    lines.append(f"Total: {len(agents)} agent(s)")
    return "\n".join(lines)


def _indent(text: str) -> str:
    return "\n".join(f"  {line}" for line in text.split("\n"))


def format_step(step: ReasoningStep) -> str:
    return "\n".join([
        f"[Step {step.step_number}] {step.phase.value.upper()} ({step.duration_ms}ms)",
        "Input:",
        _indent(step.input),
        "Output:",
        _indent(step.output),
        "",
    ])


def format_reasoning_result(result: ReasoningResult, show_steps: bool = False) -> str:
    lines = ["═" * 63, "REASONING RESULT".center(63), "═" * 63, "", "Goal:", f"  {result.goal}", ""]

    if show_steps and result.steps:
        lines += ["Reasoning Steps:", RULE]
        lines += [format_step(step) for step in result.steps]
        lines += [RULE, ""]

    lines += ["Analysis:", "", result.result, ""]

    filled = round(result.confidence * 20)
    lines += [
        "Confidence:",
        f"  {'█' * filled}{'░' * (20 - filled)} {round(result.confidence * 100)}%",
        "",
    ]

    if result.recommendations:
        lines.append("Recommendations:")
        lines += [f"  {i}. {rec}" for i, rec in enumerate(result.recommendations, start=1)]
        lines.append("")

    lines += [
        RULE,
        f"Session: {result.session_id}",
        f"Duration: {result.total_duration_ms}ms",
        f"Steps: {len(result.steps)}",
    ]
    return "\n".join(lines)
