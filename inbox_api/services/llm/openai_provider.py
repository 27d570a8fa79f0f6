from typing import List, Optional

import httpx

from inbox_api.logging_config import get_logger
from inbox_api.services.llm.base import AIProviderError, LLMProvider, LLMResponse

logger = get_logger("llm.openai_compatible")


class OpenAICompatibleProvider(LLMProvider):
    """Chat-completions backend (OpenRouter, ZAI and other OpenAI-shaped APIs)."""

    def __init__(
        self,
        name: str,
        api_key: str,
        base_url: str,
        default_model: str,
        extra_headers: Optional[dict] = None,
    ):
        self.name = name
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.extra_headers = extra_headers or {}

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else 60.0
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(f"{self.name} request: model={model}, messages_count={len(messages)}")

        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    **self.extra_headers,
                },
                json=payload,
            )

        logger.debug(f"{self.name} response status: {response.status_code}")
        if response.status_code != 200:
            raise AIProviderError(f"{self.name} API error: {response.status_code} - {response.text[:200]}")

        data = response.json()
        content = ""
        if data.get("choices"):
            message = data["choices"][0].get("message") or {}
            content = message.get("content") or ""
        elif isinstance(data.get("response"), str):
            # ZAI's native shape
            content = data["response"]

        return LLMResponse(
            content=content,
            model=data.get("model", model),
            provider=self.name,
            usage=data.get("usage"),
        )
