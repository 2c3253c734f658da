# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..accounts.directory import AccountDirectory
from ..advisor.advisor import AIAdvisor
from ..tasks.task_repository import TaskRepository
from .ports import CompletionClient, RecordStore
from .session import ClientSession


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    store: RecordStore
    llm: CompletionClient
    directory: AccountDirectory
    repository: TaskRepository
    advisor: AIAdvisor
    session: ClientSession

    offline: bool = False

    # Task ids in the order of the last rendered listing (for "/done 2" style refs).
    last_listing: list[str] = field(default_factory=list)
