# tests/test_session.py

from __future__ import annotations

import asyncio
import threading

import pytest

from taskflow.advisor.advisor import AIAdvisor
from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.errors import (
    AIUnavailable,
    InvalidCredentials,
    NotAuthenticated,
    NotFound,
    OperationInProgress,
    ValidationError,
)
from taskflow.core.session import CONTROL_SUGGEST, ClientSession, TaskDraft
from taskflow.tasks.task_models import TaskStatus

from .fakes import FailingCompletionClient, FakeCompletionClient, RendezvousRecordStore


@pytest.fixture()
def session(state) -> ClientSession:
    return state.session


async def _signed_in(session: ClientSession) -> None:
    await session.register("Ada", "a@x.com", "pw")


@pytest.mark.asyncio
async def test_no_account_until_login(session: ClientSession) -> None:
    assert await session.get_account() is None
    assert await session.get_tasks() == []

    with pytest.raises(NotAuthenticated):
        await session.create_task("Anything")


@pytest.mark.asyncio
async def test_register_login_logout_refresh_account(session: ClientSession) -> None:
    account = await session.register("Ada", "a@x.com", "pw")
    assert account is not None and account.email == "a@x.com"
    assert session.notices[-1].text == "Account created!"

    await session.logout()
    assert session.account is None
    assert session.tasks == []

    again = await session.login("a@x.com", "whatever")
    assert again == account
    assert session.notices[-1].text == "Welcome back!"


@pytest.mark.asyncio
async def test_failed_login_notifies_and_keeps_state(session: ClientSession) -> None:
    await _signed_in(session)
    await session.create_task("Keep me")

    with pytest.raises(InvalidCredentials):
        await session.login("nobody@x.com", "pw")

    assert session.notices[-1].level == "error"
    assert session.notices[-1].text == "Invalid credentials"
    assert [t.title for t in session.tasks] == ["Keep me"]
    assert not session.is_busy("auth")


@pytest.mark.asyncio
async def test_mutations_refetch_from_store(session: ClientSession, store) -> None:
    await _signed_in(session)
    reads_before = store.reads["tasks"]

    created = await session.create_task("Write report", "Q3")
    assert store.reads["tasks"] > reads_before
    assert [t.id for t in session.tasks] == [created.id]

    # A write behind the controller's back is only visible after invalidation.
    store.write("tasks", [])
    assert [t.id for t in await session.get_tasks()] == [created.id]
    session.invalidate(tasks=True)
    assert await session.get_tasks() == []


@pytest.mark.asyncio
async def test_create_requires_title_before_repository(session: ClientSession, store) -> None:
    await _signed_in(session)
    writes = store.writes["tasks"]

    with pytest.raises(ValidationError):
        await session.create_task("   ", "desc")

    assert store.writes["tasks"] == writes
    assert session.notices[-1].text == "Title is required"


@pytest.mark.asyncio
async def test_toggle_flips_status_and_counts(session: ClientSession) -> None:
    await _signed_in(session)
    t = await session.create_task("Gym")

    done = await session.toggle_task(t.id)
    assert done.status is TaskStatus.COMPLETED
    assert session.counts() == (0, 1)
    assert session.notices[-1].text == "Task completed!"

    undone = await session.toggle_task(t.id)
    assert undone.status is TaskStatus.PENDING
    assert session.counts() == (1, 0)

    with pytest.raises(NotFound):
        await session.toggle_task("missing")


@pytest.mark.asyncio
async def test_delete_missing_task_succeeds(session: ClientSession) -> None:
    await _signed_in(session)
    t = await session.create_task("Keep")
    await session.delete_task("missing")
    assert [x.id for x in session.tasks] == [t.id]
    assert session.notices[-1].text == "Task deleted"


@pytest.mark.asyncio
async def test_open_editor_replaces_previous_draft(session: ClientSession) -> None:
    await _signed_in(session)
    a = await session.create_task("A", "first")
    b = await session.create_task("B")

    draft_a = await session.open_editor(a.id)
    draft_a.title = "A edited (unsaved)"

    draft_b = await session.open_editor(b.id)
    assert session.draft is draft_b
    assert draft_b.title == "B"

    reopened = await session.open_editor(a.id)
    assert (reopened.title, reopened.description) == ("A", "first")


@pytest.mark.asyncio
async def test_suggest_accept_and_save_draft(session: ClientSession) -> None:
    await _signed_in(session)
    draft = await session.open_editor()
    draft.title = "Launch site"

    suggestions = await session.suggest_subtasks()
    assert suggestions == ["Buy domain", "Configure DNS"]
    assert draft.suggestions == suggestions

    assert session.accept_suggestion(1) == "Configure DNS"
    assert draft.description == "- Configure DNS"
    session.accept_suggestion("Buy domain")
    assert draft.description == "- Configure DNS\n- Buy domain"
    assert draft.suggestions == []

    task = await session.save_draft()
    assert session.draft is None
    assert task.description == "- Configure DNS\n- Buy domain"
    assert session.tasks[0].id == task.id


@pytest.mark.asyncio
async def test_save_draft_updates_existing_task(session: ClientSession) -> None:
    await _signed_in(session)
    t = await session.create_task("Old", "keep status")
    await session.toggle_task(t.id)

    draft = await session.open_editor(t.id)
    draft.title = "New"
    saved = await session.save_draft()

    assert saved.id == t.id
    assert saved.title == "New"
    assert saved.status is TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_suggest_requires_title(session: ClientSession) -> None:
    await _signed_in(session)
    await session.open_editor()
    with pytest.raises(ValidationError, match="title first"):
        await session.suggest_subtasks()


@pytest.mark.asyncio
async def test_suggest_failure_is_typed_and_not_stored(state) -> None:
    state.session._advisor = AIAdvisor(FailingCompletionClient())
    session = state.session
    await _signed_in(session)
    draft = await session.open_editor()
    draft.title = "Launch site"

    with pytest.raises(AIUnavailable):
        await session.suggest_subtasks()
    assert draft.suggestions == []
    assert session.notices[-1].level == "error"


@pytest.mark.asyncio
async def test_suggest_result_dropped_when_draft_closed(state) -> None:
    gate = asyncio.Event()
    loop = asyncio.get_running_loop()

    class SlowClient(FakeCompletionClient):
        def complete(self, prompt: str, *, expect_json_array_of_strings: bool = False) -> str:
            asyncio.run_coroutine_threadsafe(gate.wait(), loop).result(timeout=5)
            return super().complete(prompt, expect_json_array_of_strings=expect_json_array_of_strings)

    state.session._advisor = AIAdvisor(SlowClient('["x"]'))
    session = state.session
    await _signed_in(session)
    draft = await session.open_editor()
    draft.title = "T"

    pending = asyncio.create_task(session.suggest_subtasks())
    await asyncio.sleep(0.05)
    assert session.is_busy(CONTROL_SUGGEST)
    with pytest.raises(OperationInProgress):
        await session.suggest_subtasks()

    session.close_editor()
    gate.set()
    assert await pending == ["x"]
    assert draft.suggestions == []
    assert not session.is_busy(CONTROL_SUGGEST)


@pytest.mark.asyncio
async def test_prioritize_skips_empty_list(state, llm) -> None:
    session = state.session
    await _signed_in(session)

    assert await session.prioritize() is None
    assert llm.calls == []

    llm.next_text = "Do the report first."
    await session.create_task("Report")
    assert await session.prioritize() == "Do the report first."
    assert session.analysis == "Do the report first."

    await session.logout()
    assert session.analysis is None


@pytest.mark.asyncio
async def test_task_mutations_from_different_controls_do_not_interleave(settings, llm) -> None:
    store = RendezvousRecordStore()
    session = create_initial_state(settings=settings, store=store, llm=llm).session
    await _signed_in(session)
    existing = await session.create_task("Existing")

    store.barrier = threading.Barrier(2)
    await asyncio.gather(session.create_task("New"), session.toggle_task(existing.id))
    store.barrier = None

    session.invalidate(tasks=True)
    tasks = await session.get_tasks()
    assert sorted((t.title, t.status) for t in tasks) == [
        ("Existing", TaskStatus.COMPLETED),
        ("New", TaskStatus.PENDING),
    ]


@pytest.mark.asyncio
async def test_create_and_delete_both_persist_when_overlapping(settings, llm) -> None:
    store = RendezvousRecordStore()
    session = create_initial_state(settings=settings, store=store, llm=llm).session
    await _signed_in(session)
    doomed = await session.create_task("Doomed")

    store.barrier = threading.Barrier(2)
    await asyncio.gather(session.delete_task(doomed.id), session.create_task("Fresh"))
    store.barrier = None

    session.invalidate(tasks=True)
    assert [t.title for t in await session.get_tasks()] == ["Fresh"]


@pytest.mark.asyncio
async def test_update_task_accepts_only_known_fields(session: ClientSession) -> None:
    await _signed_in(session)
    t = await session.create_task("Plan", "notes")

    with pytest.raises(TypeError):
        await session.update_task(t.id, priority="high")
    assert session.notices[-1].text == "Task created"

    done = await session.update_task(t.id, status=TaskStatus.COMPLETED)
    assert (done.title, done.description, done.status) == ("Plan", "notes", TaskStatus.COMPLETED)


def test_accept_suggestion_consumes_one_duplicate() -> None:
    draft = TaskDraft(title="Trip", suggestions=["Pack", "Book hotel", "Pack"])

    assert draft.accept_suggestion(2) == "Pack"
    assert draft.suggestions == ["Pack", "Book hotel"]

    draft.accept_suggestion("Pack")
    assert draft.suggestions == ["Book hotel"]
    assert draft.description == "- Pack\n- Pack"
