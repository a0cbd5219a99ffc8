"""Tests for the OpenAI-compatible classification provider"""

import json

import httpx
import pytest

from pandora.engine.errors import ProviderError
from pandora.llm.openai_compatible import OpenAICompatibleClassificationProvider


def make_provider(handler) -> OpenAICompatibleClassificationProvider:
    return OpenAICompatibleClassificationProvider(
        api_key="fw-key",
        model="deepseek-test",
        base_url="https://fireworks.test/inference/v1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def completion(content: str | None, prompt_tokens: int = 50, completion_tokens: int = 12) -> dict:
    return {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
    }


class TestOpenAICompatibleClassificationProvider:
    def setup_method(self):
        self.requests: list[httpx.Request] = []

    def handler_returning(self, body: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(200, json=body)

        return handler

    @pytest.mark.asyncio
    async def test_schema_request_uses_json_mode(self):
        """Should use JSON mode when a schema is given"""
        provider = make_provider(self.handler_returning(completion('[{"root_cause": "timing"}]')))

        response = await provider.classify(
            "Classify these deals", schema={"type": "array"}, system_prompt="You are a RevOps analyst."
        )

        [request] = self.requests
        assert str(request.url) == "https://fireworks.test/inference/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer fw-key"

        payload = json.loads(request.content)
        assert payload["model"] == "deepseek-test"
        assert payload["temperature"] == 0.1
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["messages"] == [
            {"role": "system", "content": "You are a RevOps analyst."},
            {"role": "user", "content": "Classify these deals"},
        ]

        assert response.text == '[{"root_cause": "timing"}]'
        assert response.usage.input_tokens == 50
        assert response.usage.output_tokens == 12

    @pytest.mark.asyncio
    async def test_plain_request(self):
        """Should send a plain request"""
        provider = make_provider(self.handler_returning(completion(None)))

        response = await provider.classify("Summarize")

        payload = json.loads(self.requests[0].content)
        assert "response_format" not in payload
        assert payload["messages"] == [{"role": "user", "content": "Summarize"}]
        assert response.text == ""

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        """Should raise on an error status"""
        provider = make_provider(lambda request: httpx.Response(401, text="invalid api key"))

        with pytest.raises(ProviderError, match="401"):
            await provider.classify("Classify")

    @pytest.mark.asyncio
    async def test_missing_choices_raises(self):
        """Should raise when choices are missing"""
        provider = make_provider(self.handler_returning({"choices": []}))

        with pytest.raises(ProviderError, match="Malformed classification response"):
            await provider.classify("Classify")

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        """Should raise on timeout"""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(ProviderError, match="Network error"):
            await make_provider(handler).classify("Classify")
