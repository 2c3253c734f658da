# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """Closed two-value task status. There is no in-progress or soft-deleted state."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING

    def toggled(self) -> TaskStatus:
        return TaskStatus.PENDING if self is TaskStatus.COMPLETED else TaskStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str | None
    status: TaskStatus
    created_at: str  # ISO-8601 UTC
    user_id: str

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "createdAt": self.created_at,
            "userId": self.user_id,
        }

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Task:
        desc = rec.get("description")
        return cls(
            id=str(rec.get("id") or ""),
            title=str(rec.get("title") or ""),
            description=str(desc) if desc is not None else None,
            status=TaskStatus.from_db(rec.get("status")),
            created_at=str(rec.get("createdAt") or ""),
            user_id=str(rec.get("userId") or ""),
        )
