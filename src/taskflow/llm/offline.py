# src/taskflow/llm/offline.py

from __future__ import annotations

import json
import re

_TITLE_RE = re.compile(r'task:\s*"([^"]*)"', re.IGNORECASE)


class OfflineCompletionClient:
    """
    Offline deterministic completion client used for demos when no external API is configured.

    Behavior:
    - JSON array requests (subtask suggestions) -> a generic plan for the quoted task title
    - Anything else (prioritization) -> a fixed offline focus message
    """

    def complete(self, prompt: str, *, expect_json_array_of_strings: bool = False) -> str:
        if expect_json_array_of_strings:
            m = _TITLE_RE.search(prompt or "")
            title = (m.group(1).strip() if m else "") or "the task"
            return json.dumps(
                [
                    f"Clarify the expected outcome of {title}",
                    f"List what is needed to start {title}",
                    f"Do the first concrete step of {title}",
                    f"Review and wrap up {title}",
                ],
                ensure_ascii=False,
            )

        return (
            "Offline demo mode: no external AI is configured. "
            "Start with the oldest pending task and finish it before picking a new one. "
            "Set TASKFLOW_OPENROUTER_API_KEY to enable real recommendations."
        )
