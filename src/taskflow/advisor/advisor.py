# src/taskflow/advisor/advisor.py

"""
AI advisor: subtask suggestions and task-list prioritization.

Each operation is a single best-effort round trip to the completion client
(no retries here). Transport/provider failures surface as AIUnavailable;
malformed subtask output degrades to an empty list.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from ..core.errors import AIUnavailable
from ..core.ports import CompletionClient
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

PRIORITIZE_FALLBACK = "Could not analyze tasks."

SUBTASKS_PROMPT = """
I have a task: "{title}".
Description: "{description}".

Please suggest 3-5 concrete, actionable subtasks to help complete this task.
Return ONLY a JSON array of strings. Do not include markdown formatting.
""".strip()

PRIORITIZE_PROMPT = """
Here is my current task list:
{task_list}

Analyze these tasks and provide a short, encouraging summary (max 100 words) on what I should
focus on first and why. Be a helpful productivity assistant.
""".strip()


def _extract_json_array(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("[") and raw.endswith("]"):
        return raw
    first = raw.find("[")
    last = raw.rfind("]")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def parse_subtasks(raw: str | None) -> list[str]:
    """Parse a JSON array of strings. Anything else yields []."""
    if not raw or not raw.strip():
        return []
    data: Any
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        # Tolerate a code fence or prose around a single array.
        try:
            data = json.loads(_extract_json_array(raw))
        except json.JSONDecodeError:
            logger.info("Advisor: subtask reply is not JSON (len=%d)", len(raw))
            return []
    if not isinstance(data, list):
        logger.info("Advisor: subtask reply is not a list (%s)", type(data).__name__)
        return []
    return [s.strip() for s in data if isinstance(s, str) and s.strip()]


def format_task_list(tasks: Iterable[Task]) -> str:
    return "\n".join(f"- {t.title} ({t.status.value})" for t in tasks)


class AIAdvisor:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def _complete(self, prompt: str, *, expect_json_array_of_strings: bool) -> str:
        try:
            return self._client.complete(
                prompt, expect_json_array_of_strings=expect_json_array_of_strings
            ) or ""
        except Exception as e:
            logger.warning("Advisor: completion failed (%s)", e.__class__.__name__, exc_info=True)
            raise AIUnavailable(context={"cause": str(e)}) from e

    def suggest_subtasks(self, title: str, description: str | None = "") -> list[str]:
        prompt = SUBTASKS_PROMPT.format(title=title, description=description or "")
        raw = self._complete(prompt, expect_json_array_of_strings=True)
        suggestions = parse_subtasks(raw)
        logger.debug("Advisor: %d subtask suggestions", len(suggestions))
        return suggestions

    def prioritize(self, tasks: Iterable[Task]) -> str:
        prompt = PRIORITIZE_PROMPT.format(task_list=format_task_list(tasks))
        text = self._complete(prompt, expect_json_array_of_strings=False)
        if not text.strip():
            return PRIORITIZE_FALLBACK
        return text
