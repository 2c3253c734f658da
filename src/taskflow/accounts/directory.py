# src/taskflow/accounts/directory.py

"""
Account directory.

Registration, login/logout and session-token resolution over a RecordStore.

Accounts live in the "accounts" collection in registration order.
The active session token (zero or one) lives in the "session" collection.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from ..core.errors import DuplicateAccount, InvalidCredentials, ValidationError
from ..core.ports import CredentialVerifier, RecordStore
from ..storage.record_store import ACCOUNTS, SESSION
from .account_models import Account, SessionToken

logger = logging.getLogger(__name__)


class PlaceholderCredentialVerifier:
    """
    Accepts any password and stores nothing.

    Login succeeds for any known email. Swap in a real verifier
    (hashing + storage) without touching AccountDirectory.
    """

    def enroll(self, account_id: str, password: str) -> None:
        return

    def verify(self, account_id: str, password: str) -> bool:
        return True


class AccountDirectory:
    def __init__(
        self,
        store: RecordStore,
        *,
        verifier: CredentialVerifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._verifier: CredentialVerifier = verifier or PlaceholderCredentialVerifier()
        self._clock = clock

    # ---- helpers ----

    def list_accounts(self) -> list[Account]:
        return [Account.from_record(r) for r in self._store.read(ACCOUNTS)]

    def _find_by_email(self, email: str) -> Account | None:
        for acc in self.list_accounts():
            if acc.email == email:
                return acc
        return None

    def _issue_token(self, account: Account) -> SessionToken:
        token = SessionToken.issue(account.id, self._clock())
        # Replaces any previous token: at most one is retained.
        self._store.write(SESSION, [token.to_record()])
        return token

    # ---- public API ----

    def register(self, name: str, email: str, password: str) -> tuple[Account, SessionToken]:
        name = (name or "").strip()
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")
        if not name:
            raise ValidationError("Name is required")

        records = self._store.read(ACCOUNTS)
        if any(r.get("email") == email for r in records):
            raise DuplicateAccount(context={"email": email})

        account = Account(id=uuid.uuid4().hex, email=email, name=name)
        records.append(account.to_record())
        self._store.write(ACCOUNTS, records)
        self._verifier.enroll(account.id, password)

        token = self._issue_token(account)
        logger.info("Account registered id=%s", account.id)
        return account, token

    def login(self, email: str, password: str) -> tuple[Account, SessionToken]:
        email = (email or "").strip()
        account = self._find_by_email(email)
        if account is None:
            logger.debug("Login rejected: unknown email")
            raise InvalidCredentials()
        if not self._verifier.verify(account.id, password):
            logger.debug("Login rejected: verifier refused account_id=%s", account.id)
            raise InvalidCredentials()

        token = self._issue_token(account)
        logger.info("Login account_id=%s", account.id)
        return account, token

    def logout(self) -> None:
        self._store.write(SESSION, [])
        logger.info("Logout")

    def current_token(self) -> SessionToken | None:
        for rec in self._store.read(SESSION):
            token = SessionToken.from_record(rec)
            if token is not None:
                return token
        return None

    def current_account(self) -> Account | None:
        """Resolve the account the persisted token was issued for."""
        token = self.current_token()
        if token is None:
            return None
        for acc in self.list_accounts():
            if acc.id == token.account_id:
                return acc
        logger.warning("Session token refers to unknown account_id=%s", token.account_id)
        return None
