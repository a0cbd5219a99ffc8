"""
OpenAI-compatible chat completions client used as the classification provider

Defaults target Fireworks, but any endpoint speaking `/chat/completions`
works.
"""

import logging
from typing import Any

import httpx

from pandora.core.config import Settings
from pandora.engine.errors import ProviderError
from pandora.llm.types import ClassificationResponse, LLMUsage

logger = logging.getLogger(__name__)


class OpenAICompatibleClassificationProvider:
    """Classification provider for OpenAI-compatible chat completion APIs"""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.fireworks.ai/inference/v1",
        temperature: float = 0.1,
        max_tokens: int = 4096,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAICompatibleClassificationProvider":
        return cls(
            api_key=settings.FIREWORKS_API_KEY.get_secret_value(),
            model=settings.CLASSIFICATION_MODEL,
            base_url=settings.FIREWORKS_BASE_URL,
            temperature=settings.CLASSIFICATION_TEMPERATURE,
            max_tokens=settings.DEFAULT_MAX_TOKENS,
        )

    def build_payload(
        self, prompt: str, schema: dict[str, Any] | None, system_prompt: str | None
    ) -> dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if schema is not None:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> httpx.Response:
        return await client.post(
            f"{self.base_url}/chat/completions",
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    async def classify(
        self,
        prompt: str,
        schema: dict[str, Any] | None = None,
        system_prompt: str | None = None,
    ) -> ClassificationResponse:
        """
        Run one chat completion

        Raises:
            ProviderError: On transport errors, non-2xx replies or malformed bodies
        """
        payload = self.build_payload(prompt, schema, system_prompt)
        try:
            if self.client is not None:
                response = await self._post(self.client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling classification provider: {e}")
            raise ProviderError(f"Network error: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(
                f"Classification provider returned {response.status_code}: {response.text[:500]}"
            )
            raise ProviderError(
                f"Classification API error {response.status_code}: {response.text[:500]}"
            )

        try:
            body = response.json()
            usage = body.get("usage") or {}
            return ClassificationResponse(
                text=body["choices"][0]["message"].get("content") or "",
                usage=LLMUsage(
                    input_tokens=int(usage.get("prompt_tokens", 0)),
                    output_tokens=int(usage.get("completion_tokens", 0)),
                ),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Malformed classification response: {e}")
            raise ProviderError(f"Malformed classification response: {str(e)}") from e
