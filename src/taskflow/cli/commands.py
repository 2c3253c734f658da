# src/taskflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import cast

from ..core.errors import AIUnavailable, TaskflowError, ValidationError
from ..core.state import AppState
from ..llm.client import friendly_completion_error_message
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, str], Awaitable[str]]
CommandHandler3 = Callable[[AppState, str, CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

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

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Core errors are rendered as their message; they never escape.
        """
        if not line.startswith("/"):
            return None

        name, _, rest = line[1:].partition(" ")
        name = name.strip().lower()
        if not name:
            return "Empty command. Use /help to list available commands."

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                return await cast(CommandHandler3, handler)(state, rest.strip(), emit)
            return await cast(CommandHandler2, handler)(state, rest.strip())
        except AIUnavailable as e:
            cause = e.__cause__
            return friendly_completion_error_message(cause) if cause is not None else str(e)
        except TaskflowError as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _split_title(rest: str) -> tuple[str, str]:
    """'Title | description' -> (title, description)."""
    title, _, description = rest.partition("|")
    return title.strip(), description.strip()


def _resolve_task_ref(state: AppState, ref: str) -> str:
    """1-based index into the last listing, or a task id."""
    ref = ref.strip()
    if not ref:
        raise ValidationError("Task number or id is required")
    if ref.isdigit():
        n = int(ref)
        if 1 <= n <= len(state.last_listing):
            return state.last_listing[n - 1]
    return ref


def _fmt_date(iso: str) -> str:
    try:
        return datetime.fromisoformat(iso).astimezone().strftime("%Y-%m-%d")
    except ValueError:
        return iso


def _render_tasks(state: AppState, tasks: list[Task]) -> str:
    pending = [t for t in tasks if not t.is_completed]
    completed = [t for t in tasks if t.is_completed]
    ordered = pending + completed
    state.last_listing = [t.id for t in ordered]

    lines = [f"{len(pending)} pending, {len(completed)} completed"]
    if not pending:
        lines.append("No active tasks. Use /add to create one.")
    for i, t in enumerate(ordered, start=1):
        if i == 1 and pending:
            lines.append("Active Tasks:")
        if i == len(pending) + 1:
            lines.append("Completed:")
        mark = "x" if t.is_completed else " "
        lines.append(f"  {i}. [{mark}] {t.title}  ({_fmt_date(t.created_at)})")
        if t.description:
            for d in t.description.splitlines():
                lines.append(f"        {d}")
    return "\n".join(lines)


def _render_draft(state: AppState) -> str:
    draft = state.session.draft
    if draft is None:
        return "No task is being edited."
    head = "Create New Task" if draft.is_new else "Edit Task"
    lines = [f"{head}: {draft.title}"]
    if draft.description:
        lines.append(draft.description)
    if draft.suggestions:
        lines.append("AI Suggestions (use /accept <n>):")
        lines.extend(f"  {i}. {s}" for i, s in enumerate(draft.suggestions, start=1))
    return "\n".join(lines)


# ---- handlers ----


async def cmd_help(state: AppState, rest: str) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, rest: str) -> str:
    account = await state.session.get_account()
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    who = f"{account.name} <{account.email}>" if account else "not signed in"
    ai = "offline demo" if state.offline else f"models (priority -> fallback): {models}"
    return f"Status:\n  User: {who}\n  AI: {ai}"


async def cmd_register(state: AppState, rest: str) -> str:
    parts = rest.split()
    if len(parts) < 3:
        return "Usage: /register <name> <email> <password>"
    *name_parts, email, password = parts
    account = await state.session.register(" ".join(name_parts), email, password)
    return f"Signed in as {account.name}." if account else "Account created."


async def cmd_login(state: AppState, rest: str) -> str:
    parts = rest.split()
    if len(parts) != 2:
        return "Usage: /login <email> <password>"
    account = await state.session.login(parts[0], parts[1])
    return f"Signed in as {account.name}." if account else "Signed in."


async def cmd_logout(state: AppState, rest: str) -> str:
    await state.session.logout()
    state.last_listing = []
    return "Signed out."


async def cmd_whoami(state: AppState, rest: str) -> str:
    account = await state.session.get_account()
    if account is None:
        return "Not signed in. Use /login or /register."
    return f"{account.name} <{account.email}> (id={account.id})"


async def cmd_tasks(state: AppState, rest: str) -> str:
    account = await state.session.get_account()
    if account is None:
        return "Not signed in. Use /login or /register."
    return _render_tasks(state, await state.session.get_tasks())


async def cmd_add(state: AppState, rest: str) -> str:
    title, description = _split_title(rest)
    await state.session.create_task(title, description or None)
    return _render_tasks(state, state.session.tasks)


async def cmd_edit(state: AppState, rest: str) -> str:
    """
    /edit <n>                    -> open the task in the editor
    /edit <n> title | desc       -> update title/description directly
    """
    ref, _, body = rest.partition(" ")
    task_id = _resolve_task_ref(state, ref)
    if not body.strip():
        await state.session.open_editor(task_id)
        return _render_draft(state)
    title, description = _split_title(body)
    await state.session.update_task(task_id, title=title, description=description or None)
    return _render_tasks(state, state.session.tasks)


async def cmd_done(state: AppState, rest: str) -> str:
    await state.session.toggle_task(_resolve_task_ref(state, rest))
    return _render_tasks(state, state.session.tasks)


async def cmd_rm(state: AppState, rest: str) -> str:
    await state.session.delete_task(_resolve_task_ref(state, rest))
    return _render_tasks(state, state.session.tasks)


async def cmd_new(state: AppState, rest: str) -> str:
    draft = await state.session.open_editor()
    draft.title, draft.description = _split_title(rest)
    return _render_draft(state)


async def cmd_suggest(state: AppState, rest: str, emit: CommandEmitter | None = None) -> str:
    """
    /suggest                     -> suggest subtasks for the open draft
    /suggest title | desc        -> open a new draft with that title, then suggest
    """
    if rest.strip() or state.session.draft is None:
        draft = await state.session.open_editor()
        draft.title, draft.description = _split_title(rest)
    if emit is not None:
        emit("Thinking...")
    await state.session.suggest_subtasks()
    return _render_draft(state)


async def cmd_accept(state: AppState, rest: str) -> str:
    ref = rest.strip()
    if not ref.isdigit():
        return "Usage: /accept <n>"
    state.session.accept_suggestion(int(ref) - 1)
    return _render_draft(state)


async def cmd_save(state: AppState, rest: str) -> str:
    await state.session.save_draft()
    return _render_tasks(state, state.session.tasks)


async def cmd_cancel(state: AppState, rest: str) -> str:
    state.session.close_editor()
    return "Edit discarded."


async def cmd_prioritize(state: AppState, rest: str, emit: CommandEmitter | None = None) -> str:
    if emit is not None:
        emit("Analyzing...")
    summary = await state.session.prioritize()
    if summary is None:
        return "No tasks to analyze."
    return f"AI Analysis:\n{summary}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show the signed-in user and AI mode.")
registry.register("register", cmd_register, help_text="Create an account: /register <name> <email> <password>.")
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("tasks", cmd_tasks, help_text="List tasks (newest first).", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> [| description].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> [<title> [| description]].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n>.", aliases=["toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n>.", aliases=["delete"])
registry.register("new", cmd_new, help_text="Start a task draft: /new <title> [| description].")
registry.register("suggest", cmd_suggest, help_text="AI subtasks for the draft: /suggest [<title> [| description]].")
registry.register("accept", cmd_accept, help_text="Append suggestion <n> to the draft description.")
registry.register("save", cmd_save, help_text="Save the open draft.")
registry.register("cancel", cmd_cancel, help_text="Discard the open draft.")
registry.register("prioritize", cmd_prioritize, help_text="AI focus recommendation for your tasks.", aliases=["ai"])
