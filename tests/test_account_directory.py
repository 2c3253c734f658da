# tests/test_account_directory.py

from __future__ import annotations

import pytest

from taskflow.accounts.directory import AccountDirectory
from taskflow.core.errors import DuplicateAccount, InvalidCredentials, ValidationError
from taskflow.storage.record_store import ACCOUNTS, InMemoryRecordStore


def test_register_issues_token_and_persists_account(directory: AccountDirectory) -> None:
    account, token = directory.register("Ada", "a@x.com", "pw")

    assert account.email == "a@x.com"
    assert account.name == "Ada"
    assert token.account_id == account.id
    assert token.token.startswith(f"taskflow-token-{account.id}-")
    assert directory.current_token() == token
    assert directory.current_account() == account


def test_duplicate_email_is_rejected_without_growing_directory(store, directory) -> None:
    directory.register("Ada", "a@x.com", "pw")
    with pytest.raises(DuplicateAccount):
        directory.register("Other Ada", "a@x.com", "pw2")
    assert len(store.read(ACCOUNTS)) == 1


def test_email_match_is_case_sensitive(directory: AccountDirectory) -> None:
    directory.register("Ada", "a@x.com", "pw")
    directory.register("Ada Upper", "A@x.com", "pw")
    assert len(directory.list_accounts()) == 2
    with pytest.raises(InvalidCredentials):
        directory.login("A@X.COM", "pw")


def test_register_requires_name_and_email(directory: AccountDirectory) -> None:
    with pytest.raises(ValidationError):
        directory.register("Ada", "   ", "pw")
    with pytest.raises(ValidationError):
        directory.register("", "a@x.com", "pw")


def test_login_ignores_password_with_placeholder_verifier(directory: AccountDirectory) -> None:
    account, _ = directory.register("Ada", "a@x.com", "secret")
    directory.logout()

    logged_in, token = directory.login("a@x.com", "anything at all")
    assert logged_in == account
    assert token.account_id == account.id

    with pytest.raises(InvalidCredentials):
        directory.login("nobody@x.com", "secret")


def test_login_consults_credential_verifier() -> None:
    class StrictVerifier:
        def __init__(self) -> None:
            self.passwords: dict[str, str] = {}

        def enroll(self, account_id: str, password: str) -> None:
            self.passwords[account_id] = password

        def verify(self, account_id: str, password: str) -> bool:
            return self.passwords.get(account_id) == password

    directory = AccountDirectory(InMemoryRecordStore(), verifier=StrictVerifier())
    directory.register("Ada", "a@x.com", "right")
    directory.logout()

    with pytest.raises(InvalidCredentials):
        directory.login("a@x.com", "wrong")
    assert directory.current_token() is None

    account, _ = directory.login("a@x.com", "right")
    assert directory.current_account() == account


def test_logout_is_idempotent(directory: AccountDirectory) -> None:
    directory.logout()
    directory.register("Ada", "a@x.com", "pw")
    directory.logout()
    directory.logout()
    assert directory.current_token() is None
    assert directory.current_account() is None


def test_current_account_resolves_by_token_owner_not_first_account(store) -> None:
    ticks = iter([1000.0, 1001.0, 1002.0, 1003.0])
    directory = AccountDirectory(store, clock=lambda: next(ticks))

    first, _ = directory.register("First", "first@x.com", "pw")
    second, t2 = directory.register("Second", "second@x.com", "pw")
    assert directory.current_account() == second

    _, t3 = directory.login("first@x.com", "pw")
    assert directory.current_account() == first
    assert t3.token != t2.token

    # Only one token is retained at a time.
    assert len(store.read("session")) == 1


def test_token_for_vanished_account_resolves_to_none(store, directory) -> None:
    directory.register("Ada", "a@x.com", "pw")
    store.write(ACCOUNTS, [])
    assert directory.current_account() is None
