# src/taskflow/accounts/account_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

TOKEN_PREFIX = "taskflow-token"


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    email: str
    name: str

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "name": self.name}

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Account:
        return cls(
            id=str(rec.get("id") or ""),
            email=str(rec.get("email") or ""),
            name=str(rec.get("name") or ""),
        )


@dataclass(frozen=True, slots=True)
class SessionToken:
    """
    Opaque session credential bound to one account.

    issued_at only makes tokens unique; tokens never expire.
    """

    token: str
    account_id: str
    issued_at: float

    @classmethod
    def issue(cls, account_id: str, now_ts: float) -> SessionToken:
        return cls(
            token=f"{TOKEN_PREFIX}-{account_id}-{int(now_ts * 1000)}",
            account_id=account_id,
            issued_at=now_ts,
        )

    def to_record(self) -> dict[str, Any]:
        return {"token": self.token, "accountId": self.account_id, "issuedAt": self.issued_at}

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> SessionToken | None:
        token = rec.get("token")
        account_id = rec.get("accountId")
        if not token or not account_id:
            return None
        try:
            issued_at = float(rec.get("issuedAt") or 0.0)
        except (TypeError, ValueError):
            issued_at = 0.0
        return cls(token=str(token), account_id=str(account_id), issued_at=issued_at)
