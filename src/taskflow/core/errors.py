# src/taskflow/core/errors.py

"""
Typed failures surfaced by the core.

Every error is recoverable at the caller's discretion. The presentation layer
renders str(err) as a transient notice.
"""

from __future__ import annotations

from typing import Any


class TaskflowError(RuntimeError):
    """Base exception for all taskflow errors."""

    default_message = "Operation failed."

    def __init__(self, message: str | None = None, context: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class DuplicateAccount(TaskflowError):
    default_message = "User already exists"


class InvalidCredentials(TaskflowError):
    default_message = "Invalid credentials"


class ValidationError(TaskflowError):
    default_message = "Invalid input"


class NotFound(TaskflowError):
    default_message = "Task not found"


class AIUnavailable(TaskflowError):
    default_message = "AI is currently unavailable."


class NotAuthenticated(TaskflowError):
    default_message = "Please sign in first."


class OperationInProgress(TaskflowError):
    """The same control already has an operation in flight."""

    default_message = "Please wait for the current operation to finish."
