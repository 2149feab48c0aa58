"""Tests for LLMClient (Claude API wrapper)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from recruit_analysis.cache.response_cache import ResponseCache
from recruit_analysis.clients.llm_client import LLMClient
from recruit_analysis.errors import GenerationError
from recruit_analysis.utils.backoff import exponential_backoff


def _make_api_message(text: str, input_tokens: int = 100, output_tokens: int = 50) -> MagicMock:
    """Build a mock anthropic Message-like object."""
    message = MagicMock()
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    message.content = [MagicMock(text=text)]
    return message


def _connection_error() -> anthropic.APIConnectionError:
    return anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com"))


@pytest.fixture
def api():
    """Patched AsyncAnthropic; yields the mock client instance."""
    with patch("recruit_analysis.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=_make_api_message("hello world"))
        mock_cls.return_value = mock_client
        yield mock_client


@pytest.fixture
def no_sleep():
    return AsyncMock()


class TestLLMClientInit:
    def test_init_disables_sdk_retries(self):
        """The SDK never retries on its own; the client owns the retry budget."""
        with patch("recruit_analysis.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient()
            mock_cls.assert_called_once_with(max_retries=0)

    def test_init_with_api_key_and_timeout(self):
        with patch("recruit_analysis.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key", timeout=30.0)
            mock_cls.assert_called_once_with(max_retries=0, api_key="test-key", timeout=30.0)


class TestLLMClientGenerate:
    async def test_generate_returns_text(self, api):
        llm = LLMClient(model="test-model", temperature=0.2)
        assert await llm.generate("say hello") == "hello world"

        kwargs = api.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [{"role": "user", "content": "say hello"}]

    async def test_empty_prompt_rejected(self, api):
        with pytest.raises(ValueError):
            await LLMClient().generate("   ")
        api.messages.create.assert_not_awaited()

    async def test_retries_then_succeeds(self, api, no_sleep):
        api.messages.create = AsyncMock(
            side_effect=[_connection_error(), _connection_error(), _make_api_message("ok")]
        )
        llm = LLMClient(max_retries=3, backoff=exponential_backoff(base=1.0), sleep=no_sleep)

        assert await llm.generate("prompt") == "ok"
        assert api.messages.create.await_count == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]

    async def test_exhausted_retries_raise_generation_error(self, api, no_sleep):
        api.messages.create = AsyncMock(side_effect=_connection_error())
        llm = LLMClient(max_retries=3, sleep=no_sleep)

        with pytest.raises(GenerationError) as exc_info:
            await llm.generate("prompt")

        assert api.messages.create.await_count == 3
        assert isinstance(exc_info.value.last_error, anthropic.APIConnectionError)

    async def test_empty_response_is_retried(self, api, no_sleep):
        api.messages.create = AsyncMock(
            side_effect=[_make_api_message("   "), _make_api_message("second time")]
        )
        llm = LLMClient(sleep=no_sleep)
        assert await llm.generate("prompt") == "second time"

    async def test_timeout_counts_as_failed_attempt(self, api, no_sleep):
        async def _hang(**kwargs):
            await asyncio.sleep(5)

        api.messages.create = AsyncMock(side_effect=_hang)
        llm = LLMClient(timeout=0.01, max_retries=2, sleep=no_sleep)

        with pytest.raises(GenerationError, match="timed out"):
            await llm.generate("prompt")
        assert api.messages.create.await_count == 2


class TestLLMClientCache:
    @pytest.fixture
    def cache(self, tmp_path):
        return ResponseCache(db_path=tmp_path / "cache.db", ttl_seconds=60)

    async def test_cache_hit_skips_api(self, api, cache):
        llm = LLMClient(cache=cache)
        first = await llm.generate("same prompt")
        second = await llm.generate("same prompt")

        assert first == second == "hello world"
        assert api.messages.create.await_count == 1

    async def test_failures_are_not_cached(self, api, cache, no_sleep):
        api.messages.create = AsyncMock(side_effect=_connection_error())
        llm = LLMClient(cache=cache, max_retries=1, sleep=no_sleep)

        with pytest.raises(GenerationError):
            await llm.generate("prompt")
        assert cache.get("prompt") is None

    async def test_invalidate_forces_regeneration(self, api, cache):
        llm = LLMClient(cache=cache)
        await llm.generate("prompt")
        await llm.invalidate("prompt")
        await llm.generate("prompt")
        assert api.messages.create.await_count == 2

    async def test_attachment_bypasses_cache(self, api, cache):
        llm = LLMClient(cache=cache)
        await llm.generate_with_attachment(b"%PDF-1.4", "application/pdf", "prompt")
        await llm.generate_with_attachment(b"%PDF-1.4", "application/pdf", "prompt")

        assert api.messages.create.await_count == 2
        assert cache.stats()["total"] == 0


class TestLLMClientAttachment:
    async def test_pdf_sent_as_document_block(self, api):
        await LLMClient().generate_with_attachment(b"%PDF-1.4", "application/pdf", "Review this CV")

        content = api.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "document"
        assert content[0]["source"]["media_type"] == "application/pdf"
        assert content[1] == {"type": "text", "text": "Review this CV"}

    async def test_image_sent_as_image_block(self, api):
        await LLMClient().generate_with_attachment(b"\x89PNG", "image/png", "Review this CV")
        content = api.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"

    async def test_plain_text_inlined(self, api):
        await LLMClient().generate_with_attachment("Jean Dupont".encode(), "text/plain", "Review")
        content = api.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "Jean Dupont"}

    async def test_unsupported_type_rejected(self, api):
        with pytest.raises(ValueError, match="Unsupported"):
            await LLMClient().generate_with_attachment(b"PK", "application/zip", "Review")

    async def test_empty_document_rejected(self, api):
        with pytest.raises(ValueError):
            await LLMClient().generate_with_attachment(b"", "application/pdf", "Review")


class TestLLMClientTokenSummary:
    async def test_token_summary_totals_and_resets(self, api):
        api.messages.create = AsyncMock(
            return_value=_make_api_message("response", input_tokens=10, output_tokens=5)
        )
        llm = LLMClient(model="test-model")
        await llm.generate("one")
        await llm.generate("two")

        summary = llm.get_token_summary()
        assert summary["input"] == 20
        assert summary["output"] == 10
        assert summary["calls"] == [("test-model", 10, 5), ("test-model", 10, 5)]
        assert llm.get_token_summary()["calls"] == []
