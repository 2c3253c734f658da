# src/taskflow/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = """
You are a planning helper inside a task tracker.
Reply with STRICT JSON only: a JSON array of strings.
No Markdown, no code fences, no commentary.
""".strip()

TEXT_SYSTEM_PROMPT = """
You are a concise, encouraging productivity assistant inside a task tracker.
Plain text only, no Markdown headings.
""".strip()

_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


class CompletionError(RuntimeError):
    """The completion provider could not produce a response."""


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException, TimeoutError)):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible providers answer 404 for models they do not serve
    return isinstance(exc, openai.NotFoundError)


def friendly_completion_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "API key is not set" in msg:
        return "AI is not configured (missing API key). Set TASKFLOW_OPENROUTER_API_KEY in .env."
    if "model list is empty" in msg:
        return "AI is not configured (no models). Set TASKFLOW_LLM_MODELS in .env."
    if "base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set TASKFLOW_OPENROUTER_BASE_URL in .env."
    return msg


def _close_stream(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        try:
            close()
        except (httpx.HTTPError, openai.OpenAIError):
            logger.debug("LLM: stream close failed", exc_info=True)


def _chunk_content(chunk: Any) -> str | None:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) if delta is not None else None


class OpenRouterCompletionClient:
    """
    OpenAI/OpenRouter-compatible completion client.

    Behavior:
    - Tries models in the order from settings (TASKFLOW_LLM_MODELS).
    - If a model doesn't produce a first content token within the first-token
      timeout, abort and try the next model.
    - 404 (model not available) -> model is skipped for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).

    The SDK client is created lazily with automatic retries disabled so that
    fallback across models stays quick.
    """

    def __init__(self, settings: Any) -> None:
        api_key = getattr(settings, "openrouter_api_key", None)
        base_url = str(getattr(settings, "openrouter_base_url", "") or "")

        if not api_key or not str(api_key).strip():
            raise CompletionError("LLM API key is not set. Set TASKFLOW_OPENROUTER_API_KEY in your .env.")
        if not base_url.strip():
            raise CompletionError("LLM base URL is not set. Set TASKFLOW_OPENROUTER_BASE_URL in your .env.")

        self._api_key = str(api_key)
        self._base_url = base_url
        self._models: list[str] = [m.strip() for m in getattr(settings, "llm_models", []) or [] if m.strip()]
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})

        self._first_token_timeout = float(getattr(settings, "llm_first_token_timeout", 20.0))
        connect_s = float(getattr(settings, "llm_connect_timeout", 5.0))
        read_s = max(float(getattr(settings, "llm_read_timeout", 25.0)), self._first_token_timeout)
        self._timeout = httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)

        self._client: OpenAI | None = None
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                base_url=self._base_url,
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def _create_stream(self, *, model: str, messages: list[dict[str, str]], temperature: float) -> Any:
        return self._get_client().chat.completions.create(
            model=model,
            stream=True,
            extra_headers=self._headers or None,
            messages=messages,
            temperature=temperature,
            timeout=self._timeout,
        )

    def _stream_model(self, model: str, messages: list[dict[str, str]], temperature: float) -> Iterable[str]:
        t0 = time.monotonic()
        deadline = t0 + self._first_token_timeout
        used_any = False

        stream = self._create_stream(model=model, messages=messages, temperature=temperature)
        try:
            for chunk in stream:
                if not used_any and time.monotonic() > deadline:
                    raise TimeoutError(f"First token timeout on model: {model}")

                content = _chunk_content(chunk)
                if content:
                    if not used_any:
                        logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                    used_any = True
                    yield content
        finally:
            _close_stream(stream)

    def complete(self, prompt: str, *, expect_json_array_of_strings: bool = False) -> str:
        if not self._models:
            raise CompletionError("LLM model list is empty. Set TASKFLOW_LLM_MODELS in your .env.")

        system_prompt = JSON_SYSTEM_PROMPT if expect_json_array_of_strings else TEXT_SYSTEM_PROMPT
        temperature = 0.2 if expect_json_array_of_strings else 0.7
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        last_error: Exception | None = None
        got_empty = False
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info(
                "LLM: trying model=%s (first_token_timeout=%.1fs, json=%s)",
                model,
                self._first_token_timeout,
                expect_json_array_of_strings,
            )

            try:
                text = "".join(self._stream_model(model, messages, temperature))
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise CompletionError(
                        "LLM authentication failed. Check your API key (TASKFLOW_OPENROUTER_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            if text:
                logger.debug("LLM: completed with model=%s len=%d", model, len(text))
                return text

            logger.info("LLM: model=%s returned no content, trying next", model)
            got_empty = True

        if got_empty:
            # A provider answered, just with nothing; the caller decides the fallback.
            return ""

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise CompletionError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise CompletionError("LLM network/timeout error. Try again later or change models.") from last_error
            raise CompletionError("All LLM models failed.") from last_error

        raise CompletionError("All LLM models failed.")
