# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.accounts.directory import AccountDirectory
from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.state import AppState
from taskflow.tasks.task_repository import TaskRepository

from .fakes import CountingRecordStore, FakeCompletionClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        store_path=tmp_path / "taskflow.sqlite3",
        offline_mode=True,
        llm_models=["test/model"],
    )


@pytest.fixture()
def store() -> CountingRecordStore:
    return CountingRecordStore()


@pytest.fixture()
def llm() -> FakeCompletionClient:
    return FakeCompletionClient('["Buy domain","Configure DNS"]')


@pytest.fixture()
def directory(store: CountingRecordStore) -> AccountDirectory:
    return AccountDirectory(store)


@pytest.fixture()
def repo(store: CountingRecordStore) -> TaskRepository:
    return TaskRepository(store)


@pytest.fixture()
def state(settings: SimpleNamespace, store: CountingRecordStore, llm: FakeCompletionClient) -> AppState:
    """AppState wired with an in-memory store and a deterministic completion client."""
    return create_initial_state(settings=settings, store=store, llm=llm)
