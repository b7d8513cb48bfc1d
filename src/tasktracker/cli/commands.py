# src/tasktracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from ..core.errors import PersistenceError, TrackerError, ValidationError
from ..core.preferences import PROVIDERS
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.status_policy import is_in_progress
from ..tasks.task_models import Priority, Task, TaskSearchHit, TaskStatus

CommandHandler = Callable[[AppState, list[str]], str | Awaitable[str]]

logger = logging.getLogger(__name__)

_OPTION_KEYS_ADD = {"status", "priority", "blocker", "description"}
_OPTION_KEYS_EDIT = {
    "title",
    "description",
    "status",
    "priority",
    "blocker",
    "assigned",
    "start",
    "end",
}
_CLEARABLE = {
    "description": "description",
    "blocker": "blocker",
    "assigned": "assigned_date",
    "start": "start_date",
    "end": "end_date",
}
_EMPTY_VALUES = {"", "-"}


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Handlers may be plain functions or coroutines. TrackerError is turned
        into a visible reply; nothing is retried.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            result = handler(state, args)
            if inspect.isawaitable(result):
                result = await result
        except ValidationError as e:
            return f"Invalid input: {e}"
        except PersistenceError as e:
            logger.error("Command /%s failed: %s", name, e)
            return f"Could not save/load data: {e}"
        except TrackerError as e:
            return f"Error: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Anything else is sent to the assistant as a question.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----

def _int_arg(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{what} must be a number, got {raw!r}.") from None


def _split_options(args: list[str], allowed: set[str]) -> tuple[list[str], dict[str, str]]:
    """Separate key=value tokens (known keys only) from positional words."""
    positional: list[str] = []
    options: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in allowed:
            options[key.lower()] = value
        else:
            positional.append(a)
    return positional, options


def _status_arg(raw: str) -> TaskStatus:
    status = TaskStatus.parse(raw)
    if status is None:
        choices = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Unknown status {raw!r}. Choose one of: {choices}.")
    return status


def _priority_arg(raw: str) -> Priority:
    priority = Priority.parse(raw)
    if priority is None:
        raise ValidationError(f"Unknown priority {raw!r}. Choose High, Medium or Low.")
    return priority


def _date_arg(raw: str, what: str) -> datetime:
    try:
        value = datetime.fromisoformat(raw.strip())
    except ValueError:
        raise ValidationError(f"{what} must look like YYYY-MM-DD, got {raw!r}.") from None
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _fmt_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


def _format_card(t: Task) -> str:
    blocker = f"  [blocked: {t.blocker.strip()}]" if t.is_blocked and t.blocker else ""
    return f"#{t.id} {t.title} ({t.priority.value}){blocker}"


def _format_task_details(t: Task) -> str:
    return "\n".join(
        [
            f"Task #{t.id}: {t.title}",
            f"  Project:     {t.project_id}",
            f"  Status:      {t.status.value}",
            f"  Priority:    {t.priority.value}",
            f"  Blocker:     {(t.blocker or '').strip() or '-'}",
            f"  Assigned:    {_fmt_date(t.assigned_date)}",
            f"  Started:     {_fmt_date(t.start_date)}",
            f"  Deployed:    {_fmt_date(t.end_date)}",
            f"  Description: {(t.description or '').strip() or '-'}",
        ]
    )


def _format_hit(h: TaskSearchHit) -> str:
    return f"#{h.task_id} {h.title} [{h.status.value}, {h.priority.value}] in {h.project_name} (project {h.project_id})"


# ---- commands ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    prefs = state.preferences
    model = prefs.cloud_model if prefs.provider == "cloud" else prefs.local_model
    key = "set" if prefs.has_api_key else "not set"
    return (
        "Status:\n"
        f"  Database: {getattr(state.settings, 'db_path', '?')}\n"
        f"  Assistant provider: {prefs.provider} (model: {model})\n"
        f"  Cloud API key: {key}"
    )


async def cmd_projects(state: AppState, args: list[str]) -> str:
    projects = await task_api.list_projects(state)
    if not projects:
        return "No projects yet. Create one with /project add <name>."
    counts = await task_api.project_task_counts(state)
    lines = ["Projects:"]
    for p in projects:
        lines.append(f"  [{p.id}] {p.name} ({counts.get(p.id, 0)} tasks)")
    return "\n".join(lines)


async def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project add <name>
    /project rename <id> <name>
    /project rm <id>
    /project move <id> <target_id>
    """
    usage = (
        "Usage:\n"
        "  /project add <name>\n"
        "  /project rename <id> <name>\n"
        "  /project rm <id>\n"
        "  /project move <id> <target_id>"
    )
    if not args:
        return usage

    sub = args[0].lower()

    if sub == "add":
        project = await task_api.create_project(state, " ".join(args[1:]))
        return f"Project created: [{project.id}] {project.name}"

    if sub == "rename" and len(args) >= 2:
        project_id = _int_arg(args[1], "Project id")
        if await task_api.rename_project(state, project_id, " ".join(args[2:])):
            return f"Project {project_id} renamed."
        return f"Project {project_id} not found."

    if sub in ("rm", "delete") and len(args) == 2:
        project_id = _int_arg(args[1], "Project id")
        if await task_api.delete_project(state, project_id):
            return f"Project {project_id} and all its tasks deleted."
        return f"Project {project_id} not found."

    if sub == "move" and len(args) == 3:
        dragged = _int_arg(args[1], "Project id")
        target = _int_arg(args[2], "Target project id")
        projects = await task_api.reorder_projects(state, dragged, target)
        if projects is None:
            return "Order unchanged."
        return "New order: " + ", ".join(p.name for p in projects)

    return usage


async def cmd_board(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /board <project_id>"
    project_id = _int_arg(args[0], "Project id")
    board = await task_api.load_board(state, project_id)

    lines = [f"Board for project {project_id}:"]
    for status, tasks in board.items():
        lines.append(f"  {status.value} ({len(tasks)})")
        lines.extend(f"    {_format_card(t)}" for t in tasks)
    in_progress = sum(len(ts) for s, ts in board.items() if is_in_progress(s))
    lines.append(f"  In progress: {in_progress}")
    return "\n".join(lines)


async def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <project_id> <title> [status=..] [priority=..] [blocker=..] [description=..]
    /task show <id>
    /task edit <id> key=value ...   (title, description, status, priority, blocker, assigned, start, end)
    /task move <id> <status>
    /task rm <id>
    """
    usage = (
        "Usage:\n"
        '  /task add <project_id> <title> [status="Code Changed"] [priority=High] [blocker=..] [description=..]\n'
        "  /task show <id>\n"
        "  /task edit <id> key=value ...  (title, description, status, priority, blocker, assigned, start, end; '-' clears)\n"
        "  /task move <id> <status>\n"
        "  /task rm <id>"
    )
    if not args:
        return usage

    sub = args[0].lower()

    if sub == "add" and len(args) >= 2:
        project_id = _int_arg(args[1], "Project id")
        words, opts = _split_options(args[2:], _OPTION_KEYS_ADD)
        task = await task_api.create_task(
            state,
            project_id,
            title=" ".join(words),
            description=opts.get("description"),
            status=_status_arg(opts["status"]) if "status" in opts else TaskStatus.NOT_STARTED,
            priority=_priority_arg(opts["priority"]) if "priority" in opts else Priority.MEDIUM,
            blocker=opts.get("blocker"),
        )
        return f"Task created: {_format_card(task)} in {task.status.value}"

    if sub == "show" and len(args) == 2:
        task_id = _int_arg(args[1], "Task id")
        task = await task_api.get_task(state, task_id)
        return _format_task_details(task) if task else f"Task {task_id} not found."

    if sub == "edit" and len(args) >= 3:
        task_id = _int_arg(args[1], "Task id")
        words, opts = _split_options(args[2:], _OPTION_KEYS_EDIT)
        if words or not opts:
            return usage

        clear = frozenset(
            _CLEARABLE[k] for k, v in opts.items() if k in _CLEARABLE and v.strip() in _EMPTY_VALUES
        )
        given = {k: v for k, v in opts.items() if not (k in _CLEARABLE and v.strip() in _EMPTY_VALUES)}

        task = await task_api.save_task_edit(
            state,
            task_id,
            title=given.get("title"),
            description=given.get("description"),
            status=_status_arg(given["status"]) if "status" in given else None,
            priority=_priority_arg(given["priority"]) if "priority" in given else None,
            blocker=given.get("blocker"),
            assigned_date=_date_arg(given["assigned"], "Assigned date") if "assigned" in given else None,
            start_date=_date_arg(given["start"], "Start date") if "start" in given else None,
            end_date=_date_arg(given["end"], "End date") if "end" in given else None,
            clear=clear,
        )
        return "Saved.\n" + _format_task_details(task)

    if sub == "move" and len(args) >= 3:
        task_id = _int_arg(args[1], "Task id")
        status = _status_arg(" ".join(args[2:]))
        task = await task_api.move_task(state, task_id, status)
        if task is None:
            return f"Task {task_id} not found."
        return f"Task #{task.id} -> {task.status.value} (started {_fmt_date(task.start_date)}, deployed {_fmt_date(task.end_date)})"

    if sub in ("rm", "delete") and len(args) == 2:
        task_id = _int_arg(args[1], "Task id")
        if await task_api.delete_task(state, task_id):
            return f"Task {task_id} deleted."
        return f"Task {task_id} not found."

    return usage


async def cmd_search(state: AppState, args: list[str]) -> str:
    query = " ".join(args)
    hits = await task_api.search_tasks(state, query)
    if not hits:
        if len(query.strip()) < 2:
            return "Type at least 2 characters to search."
        return f"No tasks match {query!r}."
    return "\n".join(["Matches:", *(f"  {_format_hit(h)}" for h in hits)])


def cmd_provider(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Assistant provider is {state.preferences.provider}. Use /provider local|cloud."
    name = args[0].lower()
    if name not in PROVIDERS:
        return "Usage: /provider local|cloud"
    state.update_preferences(provider=name)
    if name == "cloud" and not state.preferences.has_api_key:
        return "Provider set to cloud. Set an API key with /apikey <key> before asking."
    return f"Provider set to {name}."


def cmd_model(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or args[0].lower() not in PROVIDERS:
        prefs = state.preferences
        return f"Models: local={prefs.local_model}, cloud={prefs.cloud_model}. Usage: /model local|cloud <name>"
    which, name = args[0].lower(), args[1].strip()
    if not name:
        raise ValidationError("Model name is required.")
    if which == "cloud":
        state.update_preferences(cloud_model=name)
    else:
        state.update_preferences(local_model=name)
    return f"{which.capitalize()} model set to {name}."


def cmd_apikey(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /apikey <key> | /apikey clear"
    if args[0].lower() == "clear":
        state.update_preferences(api_key="")
        return "Cloud API key cleared."
    state.update_preferences(api_key=args[0].strip())
    return "Cloud API key saved."


def cmd_clear(state: AppState, args: list[str]) -> str:
    state.assistant.clear()
    return "Conversation cleared."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database and assistant settings.")
registry.register("projects", cmd_projects, help_text="List projects in sidebar order.")
registry.register("project", cmd_project, help_text="Projects: /project add | rename | rm | move.")
registry.register("board", cmd_board, help_text="Kanban board of a project: /board <project_id>.")
registry.register("task", cmd_task, help_text="Tasks: /task add | show | edit | move | rm.")
registry.register("search", cmd_search, help_text="Search task titles: /search <text>.", aliases=["s"])
registry.register("provider", cmd_provider, help_text="Assistant provider: /provider local|cloud.")
registry.register("model", cmd_model, help_text="Assistant model: /model local|cloud <name>.")
registry.register("apikey", cmd_apikey, help_text="Cloud API key: /apikey <key> | /apikey clear.")
registry.register("clear", cmd_clear, help_text="Clear the assistant conversation.")
