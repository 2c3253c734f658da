# src/taskflow/tasks/task_repository.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..core.errors import NotFound, ValidationError
from ..core.ports import Record, RecordStore
from ..storage.record_store import TASKS
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _coerce_status(value: Any) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(str(value))
    except ValueError:
        raise ValidationError(f"Unknown task status: {value!r}") from None


class TaskRepository:
    """
    CRUD over the "tasks" collection.

    Every call is scoped by user_id: tasks owned by other accounts are
    invisible (not listed, not updatable, not deletable).

    Ordering: newest task first. create() inserts at the front; nothing re-sorts.
    """

    def __init__(self, store: RecordStore, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def _owned(rec: Record, user_id: str) -> bool:
        return rec.get("userId") == user_id

    def list_tasks(self, user_id: str) -> list[Task]:
        return [Task.from_record(r) for r in self._store.read(TASKS) if self._owned(r, user_id)]

    def count_tasks(self, user_id: str) -> int:
        return len(self.list_tasks(user_id))

    def get_task(self, user_id: str, task_id: str) -> Task:
        for task in self.list_tasks(user_id):
            if task.id == task_id:
                return task
        raise NotFound(context={"task_id": task_id})

    def create_task(self, user_id: str, title: str, description: str | None = None) -> Task:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        task = Task(
            id=uuid.uuid4().hex,
            title=title,
            description=description or None,
            status=TaskStatus.PENDING,
            created_at=self._clock().isoformat(),
            user_id=user_id,
        )

        records = self._store.read(TASKS)
        records.insert(0, task.to_record())
        self._store.write(TASKS, records)
        logger.debug("Task created id=%s user_id=%s", task.id, user_id)
        return task

    def update_task(
        self,
        user_id: str,
        task_id: str,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
        status: Any = _UNSET,
    ) -> Task:
        """
        Merge the supplied fields over the stored task.

        Fields left unset keep their stored values. id, created_at and
        user_id never change.
        """
        records = self._store.read(TASKS)
        index = next(
            (
                i
                for i, r in enumerate(records)
                if r.get("id") == task_id and self._owned(r, user_id)
            ),
            -1,
        )
        if index == -1:
            raise NotFound(context={"task_id": task_id})

        merged = dict(records[index])

        if title is not _UNSET:
            title = (title or "").strip()
            if not title:
                raise ValidationError("Title is required")
            merged["title"] = title

        if description is not _UNSET:
            merged["description"] = description or None

        if status is not _UNSET:
            merged["status"] = _coerce_status(status).value

        changed = sorted(k for k, v in merged.items() if records[index].get(k) != v)
        records[index] = merged
        self._store.write(TASKS, records)
        logger.debug("Task updated id=%s changed=%s", task_id, changed)
        return Task.from_record(merged)

    def delete_task(self, user_id: str, task_id: str) -> None:
        """Remove the task if present. A missing id is not an error."""
        records = self._store.read(TASKS)
        kept = [r for r in records if not (r.get("id") == task_id and self._owned(r, user_id))]
        if len(kept) == len(records):
            logger.debug("Task delete: id=%s not found, nothing to do", task_id)
            return
        self._store.write(TASKS, kept)
        logger.debug("Task deleted id=%s", task_id)
