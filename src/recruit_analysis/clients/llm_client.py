"""Claude API wrapper with response caching, timeouts and retry logic."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Awaitable, Callable

import anthropic
from tenacity import AsyncRetrying, stop_after_attempt

from recruit_analysis.cache.response_cache import ResponseCache
from recruit_analysis.errors import GenerationError
from recruit_analysis.utils.backoff import BackoffFn, as_tenacity_wait, exponential_backoff

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class EmptyResponseError(Exception):
    """The model answered with no text."""


class LLMClient:
    """Async Claude API client.

    Every call is bounded by ``timeout`` and retried up to ``max_retries``
    times with ``backoff`` between attempts. Text-only prompts are served
    from ``cache`` when a fresh entry exists; document prompts never are.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        *,
        model: str = DEFAULT_MODEL,
        max_retries: int = 3,
        backoff: BackoffFn | None = None,
        cache: ResponseCache | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        # Retries are owned here, not by the SDK.
        kwargs: dict = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.model = model
        self.timeout = timeout if timeout is not None else 60.0
        self.max_retries = max(1, max_retries)
        self.backoff = backoff or exponential_backoff(base=1.0, cap=10.0)
        self.cache = cache
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._sleep = sleep
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    async def generate(self, prompt: str) -> str:
        """Send a prompt to Claude and return the response text.

        Raises GenerationError once every attempt has failed.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")

        if self.cache is not None:
            cached = await asyncio.to_thread(self.cache.get, prompt)
            if cached is not None:
                logger.debug("Cache hit for prompt %s", cached.prompt_fingerprint)
                return cached.response_text

        text = await self._complete([{"role": "user", "content": prompt}])

        if self.cache is not None:
            await asyncio.to_thread(self.cache.put, prompt, text)
        return text

    async def invalidate(self, prompt: str) -> None:
        """Drop the cached response for ``prompt`` so the next call regenerates."""
        if self.cache is not None:
            await asyncio.to_thread(self.cache.delete, prompt)

    async def generate_with_attachment(
        self,
        document_bytes: bytes,
        mime_type: str,
        prompt: str,
    ) -> str:
        """Send a document plus a prompt to Claude. Never cached.

        Args:
            document_bytes: Raw file bytes (PDF, PNG, JPEG, plain text).
            mime_type: MIME type of the document (e.g. "application/pdf").
            prompt: Instructions to apply to the document.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")
        if not document_bytes:
            raise ValueError("document_bytes must not be empty")

        content = [_document_block(document_bytes, mime_type), {"type": "text", "text": prompt}]
        return await self._complete([{"role": "user", "content": content}])

    async def _complete(self, messages: list[dict]) -> str:
        attempt_number = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=as_tenacity_wait(self.backoff),
                sleep=self._sleep,
                reraise=True,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    text = await self._attempt(messages, attempt_number)
        except Exception as exc:
            logger.error("LLM call failed after %d attempts", attempt_number)
            raise GenerationError(
                f"Generation failed after {attempt_number} attempts: {_describe(exc)}",
                last_error=exc,
            ) from exc
        return text

    async def _attempt(self, messages: list[dict], attempt_number: int) -> str:
        logger.debug("LLM call: model=%s attempt=%d", self.model, attempt_number)
        try:
            message = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    messages=messages,
                ),
                timeout=self.timeout,
            )
            text = _message_text(message)
            if not text:
                raise EmptyResponseError("Empty response from model")
        except Exception as exc:
            logger.warning(
                "Generation attempt %d/%d failed: %s",
                attempt_number,
                self.max_retries,
                _describe(exc),
            )
            raise

        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((self.model, input_tokens, output_tokens))
        return text

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary


def _message_text(message) -> str:
    parts = [getattr(block, "text", "") or "" for block in (message.content or [])]
    return "".join(p for p in parts if isinstance(p, str)).strip()


def _document_block(document_bytes: bytes, mime_type: str) -> dict:
    if mime_type.startswith("text/"):
        return {"type": "text", "text": document_bytes.decode("utf-8", errors="replace")}

    b64_data = base64.b64encode(document_bytes).decode("utf-8")
    source = {"type": "base64", "media_type": mime_type, "data": b64_data}
    if mime_type == "application/pdf":
        return {"type": "document", "source": source}
    if mime_type.startswith("image/"):
        return {"type": "image", "source": source}
    raise ValueError(f"Unsupported document type: {mime_type}")


def _describe(exc: BaseException) -> str:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timed out"
    return str(exc) or type(exc).__name__
