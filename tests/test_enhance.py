"""Tests for prompt enhancement providers and EnhanceClient."""

import json

import httpx
import pytest
from openai import AsyncOpenAI

from aigc_router.config import Settings
from aigc_router.errors import CanonicalError, ErrorKind, upstream_error
from aigc_router.llm.base import ENHANCE_INSTRUCTION
from aigc_router.llm.client import EnhanceClient
from aigc_router.llm.providers.gemini import GeminiEnhancer
from aigc_router.llm.providers.groq import GroqEnhancer
from fakes import FakeGenaiModels, StaticEnhancer, fake_genai_client, genai_response, text_part


def completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "llama-3.3-70b-versatile",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 50, "completion_tokens": 40, "total_tokens": 90},
    }


def groq_enhancer(handler, api_key: str = "groq-test-key") -> GroqEnhancer:
    client = AsyncOpenAI(
        api_key=api_key,
        base_url="https://api.groq.com/openai/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        max_retries=0,
    )
    return GroqEnhancer(api_key=api_key, client=client)


class TestGroqEnhancer:
    @pytest.mark.asyncio
    async def test_enhance_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion("  A majestic cat, digital art, 4K  "))

        result = await groq_enhancer(handler).enhance("cat, sky")

        assert result.text == "A majestic cat, digital art, 4K"
        assert result.provider == "groq"
        assert result.usage["total_tokens"] == 90
        assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
        body = seen["body"]
        assert body["model"] == "llama-3.3-70b-versatile"
        assert body["temperature"] == 0.8
        assert body["max_tokens"] == 300
        assert body["messages"] == [
            {"role": "system", "content": ENHANCE_INSTRUCTION},
            {"role": "user", "content": "cat, sky"},
        ]

    @pytest.mark.asyncio
    async def test_auth_error(self):
        def handler(request):
            return httpx.Response(
                401, json={"error": {"message": "Invalid API Key", "type": "invalid_request_error"}}
            )

        with pytest.raises(CanonicalError) as exc_info:
            await groq_enhancer(handler).enhance("cat")

        err = exc_info.value
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "Invalid API Key"
        assert err.http_status == 401
        assert err.title == "Prompt enhancement API error"

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CanonicalError) as exc_info:
            await groq_enhancer(handler).enhance("cat")

        assert exc_info.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        def handler(request):
            return httpx.Response(200, json=completion(""))

        with pytest.raises(CanonicalError) as exc_info:
            await groq_enhancer(handler).enhance("cat")

        assert exc_info.value.kind is ErrorKind.UPSTREAM_ERROR
        assert exc_info.value.title == "Enhancement failed"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=completion("x"))

        with pytest.raises(CanonicalError) as exc_info:
            await groq_enhancer(handler, api_key="").enhance("cat")

        assert exc_info.value.kind is ErrorKind.MISSING_CREDENTIAL
        assert "GROQ_API_KEY" in exc_info.value.message
        assert calls == []


class TestGeminiEnhancer:
    @pytest.mark.asyncio
    async def test_enhance_success(self):
        models = FakeGenaiModels(
            genai_response(text_part("A majestic cat, "), text_part("oil painting"))
        )
        enhancer = GeminiEnhancer(api_key="g", client=fake_genai_client(models))

        result = await enhancer.enhance("cat")

        assert result.text == "A majestic cat, oil painting"
        assert result.provider == "gemini"
        call = models.calls[0]
        assert call["model"] == "gemini-2.5-flash"
        assert call["contents"] == "cat"
        assert call["config"].system_instruction == ENHANCE_INSTRUCTION
        assert call["config"].temperature == 0.8
        assert call["config"].max_output_tokens == 300

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        models = FakeGenaiModels(genai_response())
        enhancer = GeminiEnhancer(api_key="g", client=fake_genai_client(models))

        with pytest.raises(CanonicalError) as exc_info:
            await enhancer.enhance("cat")

        assert exc_info.value.title == "Enhancement failed"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        models = FakeGenaiModels(genai_response(text_part("x")))
        enhancer = GeminiEnhancer(api_key="", client=fake_genai_client(models))

        with pytest.raises(CanonicalError) as exc_info:
            await enhancer.enhance("cat")

        assert exc_info.value.kind is ErrorKind.MISSING_CREDENTIAL
        assert models.calls == []


class TestEnhanceClient:
    @pytest.mark.asyncio
    async def test_trims_keywords(self):
        enhancer = StaticEnhancer()
        client = EnhanceClient({"groq": enhancer})

        result = await client.enhance("  cat, sky  ")

        assert result.text == "a detailed cat"
        assert enhancer.calls == ["cat, sky"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("keywords", ["", "   ", None])
    async def test_blank_keywords(self, keywords):
        enhancer = StaticEnhancer()
        client = EnhanceClient({"groq": enhancer})

        with pytest.raises(CanonicalError) as exc_info:
            await client.enhance(keywords)

        assert exc_info.value.kind is ErrorKind.INVALID_INPUT
        assert exc_info.value.title == "Keywords required"
        assert enhancer.calls == []

    @pytest.mark.asyncio
    async def test_unknown_provider(self):
        client = EnhanceClient({"groq": StaticEnhancer()})

        with pytest.raises(CanonicalError) as exc_info:
            await client.enhance("cat", provider="claude")

        assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        error = upstream_error("rate limited", provider="groq", status_code=429)
        client = EnhanceClient({"groq": StaticEnhancer(error=error)})

        with pytest.raises(CanonicalError) as exc_info:
            await client.enhance("cat")

        assert exc_info.value is error

    def test_from_settings(self):
        client = EnhanceClient.from_settings(Settings(groq_api_key="k"))

        assert isinstance(client.enhancer(), GroqEnhancer)
        assert isinstance(client.enhancer("Gemini"), GeminiEnhancer)
