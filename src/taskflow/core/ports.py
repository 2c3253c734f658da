# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and LLM providers swappable and makes testing easier.
"""

from typing import Any, Protocol

Record = dict[str, Any]
# JSON-compatible record: {"id": "...", ...}.


class RecordStore(Protocol):
    """
    Named collections of records.

    - read() of a collection that was never written returns []
    - write() replaces the whole collection (no merge)
    """

    def read(self, collection: str) -> list[Record]: ...
    def write(self, collection: str, records: list[Record]) -> None: ...


class CompletionClient(Protocol):
    """Text completion capability (OpenAI/OpenRouter-compatible or offline)."""

    def complete(self, prompt: str, *, expect_json_array_of_strings: bool = False) -> str: ...


class CredentialVerifier(Protocol):
    """Where real password hashing/verification plugs into the account directory."""

    def enroll(self, account_id: str, password: str) -> None: ...
    def verify(self, account_id: str, password: str) -> bool: ...
