#!/usr/bin/env python3

##############################################
#                                            #
#         TASKFLOW COMMAND LINE              #
#                                            #
##############################################

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dacite import DaciteError
from dotenv import load_dotenv

from agents.models import AgentResponse, TaskStatus
from agents.prebuilt import AgentSystem, build_agents
from utils.cli import (
    dump_json,
    format_agent_info,
    format_agent_table,
    format_notification_list,
    format_reasoning_result,
    format_task,
    format_task_table,
)
from utils.config import DEFAULT_CONFIG_FILE, load_config
from utils.logger import get_logger, init_logger

logger = get_logger(__name__)

Command = Callable[[AgentSystem, argparse.Namespace], int]


def _split_tags(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


def _fail(message: Optional[str]) -> int:
    print(f"Error: {message or 'Unknown error'}", file=sys.stderr)
    return 1


def _emit(args: argparse.Namespace, data: Any, render: Callable[[Any], str]) -> int:
    print(dump_json(data) if args.json else render(data))
    return 0


def _respond(args: argparse.Namespace, response: AgentResponse, render: Callable[[Any], str]) -> int:
    if not response.success:
        return _fail(response.error)
    return _emit(args, response.data, render)


# ----------------------------- task ------------------------------------

def cmd_task_create(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.task_agent.execute("create", _drop_none({
        "title": args.title,
        "description": args.description,
        "priority": args.priority,
        "due_date": args.due,
        "tags": _split_tags(args.tags),
    }))
    if not response.success:
        return _fail(response.error)

    task = response.data
    if system.config.features.enable_notifications:
        system.notification_agent.notify_task_created(task.id, task.title)

    if not args.json:
        print("Task created successfully!")
    return _emit(args, task, lambda t: format_task(t, verbose=True))


def cmd_task_list(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.task_agent.execute("list", _drop_none({
        "status": args.status,
        "priority": args.priority,
        "limit": args.limit,
    }))
    return _respond(args, response, format_task_table)


def cmd_task_get(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.task_agent.execute("get", {"id": args.id})
    return _respond(args, response, lambda t: format_task(t, verbose=True))


def cmd_task_update(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.task_agent.execute("update", _drop_none({
        "id": args.id,
        "title": args.title,
        "description": args.description,
        "status": args.status,
        "priority": args.priority,
        "due_date": args.due,
        "tags": _split_tags(args.tags),
    }))
    if not response.success:
        return _fail(response.error)

    task = response.data
    if system.config.features.enable_notifications:
        if args.status == TaskStatus.DONE.value:
            system.notification_agent.notify_task_completed(task.id, task.title)
        else:
            system.notification_agent.notify_task_updated(task.id, task.title)

    if not args.json:
        print("Task updated successfully!")
    return _emit(args, task, lambda t: format_task(t, verbose=True))


def cmd_task_delete(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.task_agent.execute("delete", {"id": args.id})
    return _respond(args, response, lambda data: f"Task {data['id'][:8]} deleted successfully.")


# ----------------------------- agent -----------------------------------

def cmd_agent_list(system: AgentSystem, args: argparse.Namespace) -> int:
    return _respond(args, system.coordinator.execute("list_agents"), format_agent_table)


def cmd_agent_status(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.coordinator.execute("get_agent_status", {"name": args.name})
    return _respond(args, response, format_agent_info)


def cmd_agent_invoke(system: AgentSystem, args: argparse.Namespace) -> int:
    try:
        params = json.loads(args.params)
    except json.JSONDecodeError:
        return _fail("Invalid JSON in --params")
    if not isinstance(params, dict):
        return _fail("--params must be a JSON object")

    response = system.coordinator.execute("route", {"agent": args.name, "action": args.action, "params": params})
    if not response.success:
        return _fail(response.error)

    routed: AgentResponse = response.data
    if args.json:
        print(dump_json(routed))
        return 0 if routed.success else 1
    if not routed.success:
        return _fail(f"Agent error: {routed.error}")
    print("Agent invocation successful:")
    print(dump_json(routed.data))
    return 0


# ----------------------------- notifications ---------------------------

def cmd_notifications_list(system: AgentSystem, args: argparse.Namespace) -> int:
    response = system.notification_agent.execute("list", _drop_none({
        "unread": True if args.unread else None,
        "limit": args.limit,
    }))
    return _respond(args, response, format_notification_list)


def cmd_notifications_clear(system: AgentSystem, args: argparse.Namespace) -> int:
    def render(data: Dict[str, int]) -> str:
        cleared = data.get("cleared", 0)
        return f"✓ Cleared {cleared} notification(s)" if cleared else "No notifications to clear."

    return _respond(args, system.notification_agent.execute("clear"), render)


# ----------------------------- reason ----------------------------------

def cmd_reason(system: AgentSystem, args: argparse.Namespace) -> int:
    if not args.json:
        print("🤔 Thinking...\n")

    response = system.reasoning_agent.execute("reason", _drop_none({
        "goal": args.goal,
        "max_iterations": args.max_iterations,
        "timeout_ms": args.timeout,
        "include_steps": bool(args.show_steps or args.json),
    }))
    return _respond(args, response, lambda r: format_reasoning_result(r, show_steps=args.show_steps))


# ----------------------------- parser ----------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskflow",
        description="Multi-agent task management with an autonomous reasoning agent",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to config.json")
    commands = parser.add_subparsers(dest="command", required=True)

    task = commands.add_parser("task", help="Task management commands").add_subparsers(dest="task_command", required=True)

    create = task.add_parser("create", help="Create a new task")
    create.add_argument("title")
    create.add_argument("-d", "--description")
    create.add_argument("-p", "--priority", default="medium", choices=["low", "medium", "high", "urgent"])
    create.add_argument("--due", help="Due date (ISO 8601)")
    create.add_argument("-t", "--tags", help="Comma-separated tags")
    create.set_defaults(handler=cmd_task_create)

    listing = task.add_parser("list", help="List tasks")
    listing.add_argument("-s", "--status")
    listing.add_argument("-p", "--priority")
    listing.add_argument("-n", "--limit", type=int, default=50)
    listing.set_defaults(handler=cmd_task_list)

    get = task.add_parser("get", help="Get a task by ID")
    get.add_argument("id")
    get.set_defaults(handler=cmd_task_get)

    update = task.add_parser("update", help="Update an existing task")
    update.add_argument("id")
    update.add_argument("--title")
    update.add_argument("-d", "--description")
    update.add_argument("-s", "--status")
    update.add_argument("-p", "--priority")
    update.add_argument("--due", help="New due date (ISO 8601)")
    update.add_argument("-t", "--tags", help="New comma-separated tags")
    update.set_defaults(handler=cmd_task_update)

    delete = task.add_parser("delete", help="Delete a task")
    delete.add_argument("id")
    delete.set_defaults(handler=cmd_task_delete)

    agent = commands.add_parser("agent", help="Agent management commands").add_subparsers(dest="agent_command", required=True)
    agent.add_parser("list", help="List all agents").set_defaults(handler=cmd_agent_list)

    status = agent.add_parser("status", help="Show one agent's status")
    status.add_argument("name")
    status.set_defaults(handler=cmd_agent_status)

    invoke = agent.add_parser("invoke", help="Invoke an agent action directly")
    invoke.add_argument("name")
    invoke.add_argument("-a", "--action", required=True)
    invoke.add_argument("--params", default="{}", help="JSON object of parameters")
    invoke.set_defaults(handler=cmd_agent_invoke)

    notifications = commands.add_parser("notifications", help="Notification commands").add_subparsers(
        dest="notifications_command", required=True
    )
    notif_list = notifications.add_parser("list", help="List notifications")
    notif_list.add_argument("-u", "--unread", action="store_true")
    notif_list.add_argument("-n", "--limit", type=int, default=20)
    notif_list.set_defaults(handler=cmd_notifications_list)
    notifications.add_parser("clear", help="Mark all notifications as read").set_defaults(
        handler=cmd_notifications_clear
    )

    reason = commands.add_parser("reason", help="Ask the reasoning agent to analyze your tasks")
    reason.add_argument("goal")
    reason.add_argument("-m", "--max-iterations", type=int)
    reason.add_argument("--timeout", type=int, help="Timeout in milliseconds")
    reason.add_argument("--show-steps", action="store_true")
    reason.set_defaults(handler=cmd_reason)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        init_logger(args.config if Path(args.config).is_file() else None)
        if args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
    except (ValueError, DaciteError) as exc:
        return _fail(str(exc))

    handler: Command = args.handler
    try:
        with build_agents(config) as system:
            return handler(system, args)
    except Exception as exc:
        logger.exception("command_failed", command=args.command, error=str(exc))
        return _fail(str(exc))


if __name__ == "__main__":
    sys.exit(main())
