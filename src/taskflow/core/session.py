# src/taskflow/core/session.py

"""
Client session controller.

Holds the presentation layer's view of the world (current account, task list,
the one task being edited, the last AI analysis) and runs every user action
against the core.

Cache policy is invalidate-then-refetch:
- a mutation never patches its result into the cache
- it marks the affected collection(s) stale and reloads them from the store
  before returning, so callers always observe authoritative state

Each control (auth, save, toggle, delete, suggest, prioritize) allows one
in-flight operation; starting it again while busy raises OperationInProgress.
Task mutations from different controls share one lock, held across the
repository write and the refetch, so they never interleave on the task
collection.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

from ..accounts.account_models import Account
from ..accounts.directory import AccountDirectory
from ..advisor.advisor import AIAdvisor
from ..tasks.task_models import Task, TaskStatus
from ..tasks.task_repository import _UNSET, TaskRepository
from .errors import NotAuthenticated, NotFound, OperationInProgress, TaskflowError, ValidationError

logger = logging.getLogger(__name__)

CONTROL_AUTH = "auth"
CONTROL_SAVE = "save"
CONTROL_TOGGLE = "toggle"
CONTROL_DELETE = "delete"
CONTROL_SUGGEST = "suggest"
CONTROL_PRIORITIZE = "prioritize"


@dataclass(frozen=True, slots=True)
class Notice:
    level: str  # "success" | "error"
    text: str


NoticeCallback = Callable[[Notice], None]


@dataclass(slots=True)
class TaskDraft:
    """Unsaved edit state for a new (task_id=None) or existing task."""

    task_id: str | None = None
    title: str = ""
    description: str = ""
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return self.task_id is None

    def accept_suggestion(self, which: int | str) -> str:
        """
        Append one suggestion to the description as a "- item" line and drop it
        from the suggestion list. `which` is a 0-based index or the text itself.
        """
        if isinstance(which, int):
            if not 0 <= which < len(self.suggestions):
                raise ValidationError("No such suggestion")
            index = which
        else:
            if which not in self.suggestions:
                raise ValidationError("No such suggestion")
            index = self.suggestions.index(which)
        text = self.suggestions.pop(index)

        line = f"- {text}"
        self.description = f"{self.description}\n{line}" if self.description else line
        return text


class ClientSession:
    def __init__(
        self,
        directory: AccountDirectory,
        repository: TaskRepository,
        advisor: AIAdvisor,
        *,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self._directory = directory
        self._repository = repository
        self._advisor = advisor
        self._on_notice = on_notice

        self._account: Account | None = None
        self._account_stale = True
        self._tasks: list[Task] = []
        self._tasks_stale = True

        self._busy: set[str] = set()
        self._tasks_lock = asyncio.Lock()

        self.draft: TaskDraft | None = None
        self.analysis: str | None = None
        self.notices: list[Notice] = []

    # ---- plumbing ----

    def _notify(self, level: str, text: str) -> None:
        notice = Notice(level=level, text=text)
        self.notices.append(notice)
        if self._on_notice is not None:
            try:
                self._on_notice(notice)
            except Exception:
                logger.exception("Notice callback failed")

    @staticmethod
    async def _call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(fn, *args, **kwargs)

    @contextlib.asynccontextmanager
    async def _operation(self, control: str | None) -> AsyncIterator[None]:
        if control is not None:
            if control in self._busy:
                raise OperationInProgress(context={"control": control})
            self._busy.add(control)
        try:
            yield
        except TaskflowError as e:
            self._notify("error", str(e))
            raise
        except Exception:
            logger.exception("Operation failed control=%s", control)
            self._notify("error", "Something went wrong. Please try again.")
            raise
        finally:
            if control is not None:
                self._busy.discard(control)

    def is_busy(self, control: str) -> bool:
        return control in self._busy

    def invalidate(self, *, account: bool = False, tasks: bool = False) -> None:
        if account:
            self._account_stale = True
        if tasks:
            self._tasks_stale = True

    async def _refetch(self) -> None:
        await self._load_account()
        await self._load_tasks()

    async def _load_account(self) -> Account | None:
        if self._account_stale:
            self._account = await self._call(self._directory.current_account)
            self._account_stale = False
        return self._account

    async def _load_tasks(self) -> list[Task]:
        if self._tasks_stale:
            account = await self._load_account()
            if account is None:
                self._tasks = []
            else:
                self._tasks = await self._call(self._repository.list_tasks, account.id)
            self._tasks_stale = False
        return list(self._tasks)

    async def _require_account(self) -> Account:
        account = await self._load_account()
        if account is None:
            raise NotAuthenticated()
        return account

    def _reset_view_state(self) -> None:
        self.draft = None
        self.analysis = None

    # ---- cached snapshots (no I/O) ----

    @property
    def account(self) -> Account | None:
        return self._account

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def counts(self) -> tuple[int, int]:
        """(pending, completed) for the cached list."""
        completed = sum(1 for t in self._tasks if t.is_completed)
        return len(self._tasks) - completed, completed

    # ---- queries ----

    async def get_account(self) -> Account | None:
        async with self._operation(None):
            return await self._load_account()

    async def get_tasks(self) -> list[Task]:
        async with self._operation(None):
            return await self._load_tasks()

    # ---- auth ----

    async def register(self, name: str, email: str, password: str) -> Account | None:
        async with self._operation(CONTROL_AUTH):
            await self._call(self._directory.register, name, email, password)
            self._reset_view_state()
            self.invalidate(account=True, tasks=True)
            await self._refetch()
        self._notify("success", "Account created!")
        return self._account

    async def login(self, email: str, password: str) -> Account | None:
        async with self._operation(CONTROL_AUTH):
            await self._call(self._directory.login, email, password)
            self._reset_view_state()
            self.invalidate(account=True, tasks=True)
            await self._refetch()
        self._notify("success", "Welcome back!")
        return self._account

    async def logout(self) -> None:
        async with self._operation(CONTROL_AUTH):
            await self._call(self._directory.logout)
            self._reset_view_state()
            self.invalidate(account=True, tasks=True)
            await self._refetch()

    # ---- tasks ----

    async def create_task(self, title: str, description: str | None = None) -> Task:
        async with self._operation(CONTROL_SAVE), self._tasks_lock:
            if not (title or "").strip():
                raise ValidationError("Title is required")
            account = await self._require_account()
            task = await self._call(self._repository.create_task, account.id, title, description)
            self.invalidate(tasks=True)
            await self._load_tasks()
        self._notify("success", "Task created")
        return task

    async def update_task(
        self,
        task_id: str,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
        status: Any = _UNSET,
    ) -> Task:
        async with self._operation(CONTROL_SAVE), self._tasks_lock:
            if title is not _UNSET and not (title or "").strip():
                raise ValidationError("Title is required")
            account = await self._require_account()
            task = await self._call(
                self._repository.update_task,
                account.id,
                task_id,
                title=title,
                description=description,
                status=status,
            )
            self.invalidate(tasks=True)
            await self._load_tasks()
        return task

    async def toggle_task(self, task_id: str) -> Task:
        async with self._operation(CONTROL_TOGGLE), self._tasks_lock:
            account = await self._require_account()
            current = next((t for t in await self._load_tasks() if t.id == task_id), None)
            if current is None:
                raise NotFound(context={"task_id": task_id})
            task = await self._call(
                self._repository.update_task, account.id, task_id, status=current.status.toggled()
            )
            self.invalidate(tasks=True)
            await self._load_tasks()
        if task.status is TaskStatus.COMPLETED:
            self._notify("success", "Task completed!")
        return task

    async def delete_task(self, task_id: str) -> None:
        async with self._operation(CONTROL_DELETE), self._tasks_lock:
            account = await self._require_account()
            await self._call(self._repository.delete_task, account.id, task_id)
            self.invalidate(tasks=True)
            await self._load_tasks()
        self._notify("success", "Task deleted")

    # ---- edit draft ----

    async def open_editor(self, task_id: str | None = None) -> TaskDraft:
        """Open a draft for a new task (task_id=None) or a copy of an existing one.

        Any previously open draft is discarded.
        """
        async with self._operation(None):
            await self._require_account()
            if task_id is None:
                self.draft = TaskDraft()
                return self.draft
            task = next((t for t in await self._load_tasks() if t.id == task_id), None)
            if task is None:
                raise NotFound(context={"task_id": task_id})
            self.draft = TaskDraft(task_id=task.id, title=task.title, description=task.description or "")
            return self.draft

    def close_editor(self) -> None:
        self.draft = None

    def accept_suggestion(self, which: int | str) -> str:
        if self.draft is None:
            raise ValidationError("No task is being edited")
        return self.draft.accept_suggestion(which)

    async def suggest_subtasks(self) -> list[str]:
        draft = self.draft
        async with self._operation(CONTROL_SUGGEST):
            if draft is None:
                raise ValidationError("No task is being edited")
            if not draft.title.strip():
                raise ValidationError("Please enter a title first")
            await self._require_account()
            suggestions = await self._call(
                self._advisor.suggest_subtasks, draft.title, draft.description
            )
        if self.draft is not draft:
            logger.debug("Draft closed while suggestions were pending; dropping result")
            return suggestions
        draft.suggestions = list(suggestions)
        self._notify("success", "AI Suggestions generated!")
        return suggestions

    async def save_draft(self) -> Task:
        draft = self.draft
        if draft is None:
            raise ValidationError("No task is being edited")
        if draft.is_new:
            task = await self.create_task(draft.title, draft.description)
        else:
            task = await self.update_task(
                draft.task_id, title=draft.title, description=draft.description
            )
        if self.draft is draft:
            self.draft = None
        return task

    # ---- AI analysis ----

    async def prioritize(self) -> str | None:
        async with self._operation(CONTROL_PRIORITIZE):
            await self._require_account()
            tasks = await self._load_tasks()
            if not tasks:
                return None
            self.analysis = await self._call(self._advisor.prioritize, tasks)
        return self.analysis

    def dismiss_analysis(self) -> None:
        self.analysis = None
