"""
Command line interface for Remember The Milk.

Usage:
    rtm auth
    rtm add "Buy groceries"
    rtm list
    rtm list Work                      # tasks from the 'Work' list
    rtm list --filter "priority:1"
    rtm complete 123456 789012 345678
    rtm set-name 123456 789012 345678 "Updated task name"
    rtm set-priority 123456 789012 345678 1
    rtm set-due 123456 789012 345678 tomorrow

Requirements:
    Set environment variables or create a .env file with:
    - RTM_API_KEY
    - RTM_SECRET_KEY
    - RTM_TOKEN_PATH (optional, default: ~/.rtm_token)
    - RTM_TOKEN (optional, skips the token file)
"""

from __future__ import annotations

import argparse
import json
import sys
import webbrowser
from pathlib import Path
from typing import Any, Sequence

from rtm_client.auth import AuthFlow
from rtm_client.config import ConfigManager
from rtm_client.exceptions import RtmClientError
from rtm_client.factory import RtmClientFactory
from rtm_client.logging_config import configure_logging
from rtm_client.models import PRIORITIES, PRIORITY_LABELS, TaskListResult, TaskRef
from rtm_client.services.task_service import TaskService


def browser_prompt(url: str) -> None:
    """Open ``url`` in a browser and block until the user presses Enter."""

    print("Please visit this URL to authorize the application:")
    print(url)
    print("")
    webbrowser.open(url)
    input("Press Enter after authorization...")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtm", description="Remember The Milk command line interface"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw API response as JSON",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        help="Path to .env file (default: ./.env)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    auth = sub.add_parser("auth", help="Authenticate with Remember The Milk")
    auth.add_argument(
        "--check",
        action="store_true",
        help="Verify the stored token instead of starting a new handshake",
    )

    add = sub.add_parser("add", help="Add a new task")
    add.add_argument("name", help="Task name (Smart Add syntax is parsed)")

    list_ = sub.add_parser("list", help="List tasks (optionally filtered)")
    list_.add_argument(
        "target",
        nargs="?",
        help="List name, or a filter when it contains ':'",
    )
    list_.add_argument("-f", "--filter", help="RTM search filter, e.g. 'priority:1'")

    for name, help_text in (
        ("delete", "Delete a task"),
        ("complete", "Mark a task as completed"),
        ("uncomplete", "Mark a completed task as incomplete"),
    ):
        _add_task_ref_arguments(sub.add_parser(name, help=help_text))

    set_name = sub.add_parser("set-name", help="Update task name")
    _add_task_ref_arguments(set_name)
    set_name.add_argument("name", help="New task name")

    set_priority = sub.add_parser("set-priority", help="Set task priority (N, 1, 2, 3)")
    _add_task_ref_arguments(set_priority)
    set_priority.add_argument(
        "priority",
        choices=PRIORITIES,
        help="N (none), 1 (high), 2 (medium), 3 (low)",
    )

    set_due = sub.add_parser("set-due", help="Set task due date")
    _add_task_ref_arguments(set_due)
    set_due.add_argument("due", help="Due date, e.g. 'tomorrow', '2024-12-31', 'next week'")

    return parser


def _add_task_ref_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("list_id")
    parser.add_argument("taskseries_id")
    parser.add_argument("task_id")


def resolve_filter(target: str | None, explicit: str | None) -> str | None:
    """Turn the positional list argument into an RTM filter."""

    if explicit:
        return explicit
    if not target:
        return None
    return target if ":" in target else f"list:{target}"


def format_task_list(result: TaskListResult) -> str:
    lines: list[str] = []
    for task_list in result.lists:
        if not task_list.taskseries:
            continue
        lines.append("")
        lines.append(f"List: {task_list.name or task_list.id}")
        lines.append("━" * 50)
        for series in task_list.taskseries:
            if not series.task:
                continue
            task = series.task[0]
            priority = "" if task.priority == "N" else f"[P{task.priority}]"
            due = f" (due: {task.due})" if task.due else ""
            status = " ✓" if task.is_completed else ""
            lines.append(f"{priority} {series.name}{due}{status}")
            lines.append(
                f"  IDs: list={task_list.id}, series={series.id}, task={task.id}"
            )
    return "\n".join(lines) if lines else "No tasks found."


def run_command(args: argparse.Namespace, service: TaskService) -> tuple[Any, str]:
    """Execute the parsed command and return (raw result, human message)."""

    command = args.command
    if command == "auth":
        if args.check:
            flow = AuthFlow(service.client, browser_prompt)  # type: ignore[arg-type]
            auth = flow.check_token(service.get_token())
            user = auth.get("user") or {}
            return auth, f"Token is valid for user {user.get('username', '?')} ({auth.get('perms')})"
        token = service.authenticate(browser_prompt)
        return {"token": token}, f"Authentication successful!\nToken: {token}"

    if command == "add":
        return service.add_task(args.name), f"Task added: {args.name}"

    if command == "list":
        envelope = service.get_task_list(resolve_filter(args.target, args.filter))
        return envelope, format_task_list(TaskListResult.from_envelope(envelope))

    ref = TaskRef(args.list_id, args.taskseries_id, args.task_id)
    if command == "delete":
        return service.delete_task(ref), "Task deleted successfully"
    if command == "complete":
        return service.complete_task(ref), "Task completed successfully"
    if command == "uncomplete":
        return service.uncomplete_task(ref), "Task marked as incomplete successfully"
    if command == "set-name":
        return service.set_task_name(ref, args.name), f"Task name updated to: {args.name}"
    if command == "set-priority":
        return (
            service.set_task_priority(ref, args.priority),
            f"Task priority set to: {PRIORITY_LABELS[args.priority]}",
        )
    if command == "set-due":
        return service.set_task_due_date(ref, args.due), f"Task due date set to: {args.due}"

    raise ValueError(f"Unknown command '{command}'.")


def main(argv: Sequence[str] | None = None, *, service: TaskService | None = None) -> int:
    """Main entry point for the ``rtm`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)

    owns_service = service is None
    try:
        if service is None:
            config = ConfigManager(dotenv_path=args.dotenv) if args.dotenv else ConfigManager()
            service = RtmClientFactory.create_from_config(config, prompt=browser_prompt)
        result, message = run_command(args, service)
    except RtmClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130
    finally:
        if owns_service and service is not None:
            service.close()

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print(message)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
