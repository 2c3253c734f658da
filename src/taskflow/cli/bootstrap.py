# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (record store, completion client) into
  the core components and the session controller.
"""

from __future__ import annotations

import logging

from ..accounts.directory import AccountDirectory
from ..advisor.advisor import AIAdvisor
from ..config import get_settings
from ..core.ports import CompletionClient, RecordStore
from ..core.session import ClientSession, NoticeCallback
from ..core.state import AppState
from ..llm.client import CompletionError, OpenRouterCompletionClient
from ..llm.offline import OfflineCompletionClient
from ..storage.record_store import SQLiteRecordStore
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_path.parent.mkdir(parents=True, exist_ok=True)


def build_completion_client(settings) -> tuple[CompletionClient, bool]:
    """Return (client, offline). Falls back to the offline client when the API is not configured."""
    if getattr(settings, "offline_mode", False):
        return OfflineCompletionClient(), True
    try:
        return OpenRouterCompletionClient(settings), False
    except CompletionError as e:
        logger.warning("AI provider not configured (%s); using offline demo client.", e)
        return OfflineCompletionClient(), True


def create_initial_state(
    *,
    settings=None,
    store: RecordStore | None = None,
    llm: CompletionClient | None = None,
    on_notice: NoticeCallback | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Settings, store and completion client are injectable for tests.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if store is None:
        _ensure_local_dirs(settings)
        store = SQLiteRecordStore(settings.store_path)

    offline = False
    if llm is None:
        llm, offline = build_completion_client(settings)

    directory = AccountDirectory(store)
    repository = TaskRepository(store)
    advisor = AIAdvisor(llm)

    return AppState(
        settings=settings,
        store=store,
        llm=llm,
        directory=directory,
        repository=repository,
        advisor=advisor,
        session=ClientSession(directory, repository, advisor, on_notice=on_notice),
        offline=offline,
    )
