# src/tasktracker/core/assistant.py

"""
Assistant Bridge.

Pure prompt-and-forward:
- read all projects/tasks from the store,
- render them as a <TASKS>...</TASKS> text snapshot,
- add the persona prompt, the recent conversation and the question,
- send the single prompt to the configured provider and relay the answer.

Key invariants:
- history sent to the model only contains exchanges that completed successfully,
- failures never escape ask(): they become assistant entries with a warning prefix,
  so the conversation stays usable,
- a hung provider is cut off by an overall deadline and reported as a NetworkError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from ..tasks.status_policy import is_done, is_in_progress, is_testing
from ..tasks.task_models import Project, Task, utc_now
from .errors import AssistantError, NetworkError, PersistenceError
from .persona import ASSISTANT_NAME, WELCOME_MESSAGE, get_system_prompt
from .ports import ChatMessage, InferenceProvider, TaskRepo

logger = logging.getLogger(__name__)

WARNING_PREFIX = "⚠️ "
_DESCRIPTION_MAX_CHARS = 300

ProviderFactory = Callable[[], InferenceProvider]


@dataclass(slots=True)
class ChatEntry:
    role: Literal["user", "assistant"]
    text: str
    timestamp: datetime
    is_error: bool = False
    # False for the welcome line, errors, and questions whose answer failed.
    in_history: bool = True


def _fmt_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


def _sanitize_for_tasks_block(text: str) -> str:
    """Task text must not be able to close the snapshot block early."""
    if not text:
        return ""
    out = text.replace("\x00", "")
    return out.replace("<TASKS>", "[TASKS]").replace("</TASKS>", "[/TASKS]")


def _format_task_line(t: Task) -> str:
    parts = [f"status: {t.status.value}", f"priority: {t.priority.value}"]
    if t.is_blocked:
        parts.append(f"BLOCKED: {_sanitize_for_tasks_block((t.blocker or '').strip())}")
    parts.append(f"assigned: {_fmt_date(t.assigned_date)}")
    if t.start_date is not None:
        parts.append(f"started: {_fmt_date(t.start_date)}")
    if t.end_date is not None:
        parts.append(f"deployed: {_fmt_date(t.end_date)}")

    line = f"- [TASK {t.id}] {_sanitize_for_tasks_block(t.title)} ({'; '.join(parts)})"

    desc = (t.description or "").strip()
    if desc:
        if len(desc) > _DESCRIPTION_MAX_CHARS:
            desc = desc[:_DESCRIPTION_MAX_CHARS] + "…"
        line += f"\n  description: {_sanitize_for_tasks_block(' '.join(desc.split()))}"
    return line


def _project_summary(tasks: Sequence[Task]) -> str:
    in_progress = sum(1 for t in tasks if is_in_progress(t.status))
    testing = sum(1 for t in tasks if is_testing(t.status))
    done = sum(1 for t in tasks if is_done(t.status))
    blocked = sum(1 for t in tasks if t.is_blocked)
    return (
        f"{len(tasks)} tasks: {in_progress} in progress ({testing} in testing), "
        f"{done} deployed, {blocked} blocked"
    )


def build_task_context(projects: Sequence[Project], tasks: Sequence[Task]) -> str:
    """Textual snapshot of every project and task, grouped in sidebar order."""
    by_project: dict[int, list[Task]] = {}
    for t in tasks:
        by_project.setdefault(t.project_id, []).append(t)

    sections: list[str] = []
    for p in projects:
        project_tasks = by_project.get(p.id, [])
        header = f"Project: {_sanitize_for_tasks_block(p.name)} ({_project_summary(project_tasks)})"
        lines = [header, *(_format_task_line(t) for t in project_tasks)]
        sections.append("\n".join(lines))

    body = "\n\n".join(sections) if sections else "(no projects yet)"
    return f"<TASKS>\n{body}\n</TASKS>"


def build_prompt(
    *,
    system_prompt: str,
    context: str,
    history: Sequence[ChatMessage],
    question: str,
) -> str:
    lines = [system_prompt.strip(), "", context, ""]

    if history:
        lines.append("Conversation so far:")
        for m in history:
            speaker = "User" if m["role"] == "user" else ASSISTANT_NAME
            lines.append(f"{speaker}: {m['content']}")
        lines.append("")

    lines.append(f"User: {question}")
    lines.append(f"{ASSISTANT_NAME}:")
    return "\n".join(lines)


class AssistantBridge:
    """Chat panel backend: keeps the transcript and forwards questions to a provider."""

    def __init__(
        self,
        store: TaskRepo,
        provider_factory: ProviderFactory,
        *,
        timeout_seconds: float = 30.0,
        max_history_messages: int = 20,
    ) -> None:
        self._store = store
        self._provider_factory = provider_factory
        self._timeout_s = max(0.001, float(timeout_seconds))
        self._max_history = max(0, int(max_history_messages))
        self.transcript: list[ChatEntry] = []
        self.clear()

    def clear(self) -> None:
        self.transcript = [
            ChatEntry(role="assistant", text=WELCOME_MESSAGE, timestamp=utc_now(), in_history=False)
        ]

    def history(self) -> list[ChatMessage]:
        msgs: list[ChatMessage] = [
            {"role": e.role, "content": e.text} for e in self.transcript if e.in_history
        ]
        if self._max_history == 0:
            return []
        return msgs[-self._max_history :]

    def _snapshot(self) -> tuple[list[Project], list[Task]]:
        return self._store.list_projects(), self._store.list_all_tasks()

    async def _answer(self, question: str) -> str:
        projects, tasks = await asyncio.to_thread(self._snapshot)
        prompt = build_prompt(
            system_prompt=get_system_prompt(),
            context=build_task_context(projects, tasks),
            history=self.history(),
            question=question,
        )

        provider = self._provider_factory()
        try:
            answer = await asyncio.wait_for(provider.ask(prompt), timeout=self._timeout_s)
        except TimeoutError as e:
            raise NetworkError(
                f"No answer within {self._timeout_s:.0f}s. The model server may be busy; try again."
            ) from e

        answer = (answer or "").strip()
        if not answer:
            raise NetworkError("The model returned an empty answer.")
        return answer

    def _error_entry(self, message: str) -> ChatEntry:
        return ChatEntry(
            role="assistant",
            text=f"{WARNING_PREFIX}{message}",
            timestamp=utc_now(),
            is_error=True,
            in_history=False,
        )

    async def ask(self, question: str) -> ChatEntry | None:
        """
        Ask a question about the tasks. Returns the assistant entry appended to
        the transcript (an error entry on failure), or None for blank input.
        """
        q = (question or "").strip()
        if not q:
            return None

        user_entry = ChatEntry(role="user", text=q, timestamp=utc_now(), in_history=False)
        self.transcript.append(user_entry)

        try:
            answer = await self._answer(q)
        except (AssistantError, PersistenceError) as e:
            logger.info("Assistant error (%s): %s", e.__class__.__name__, e)
            entry = self._error_entry(str(e))
        else:
            user_entry.in_history = True
            entry = ChatEntry(role="assistant", text=answer, timestamp=utc_now())

        self.transcript.append(entry)
        return entry
