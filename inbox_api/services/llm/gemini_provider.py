from typing import List, Optional

import httpx

from inbox_api.logging_config import get_logger
from inbox_api.services.llm.base import AIProviderError, LLMProvider, LLMResponse

logger = get_logger("llm.gemini")


def to_gemini_request(messages: List[dict], temperature: float, max_tokens: int) -> dict:
    """System turns become systemInstruction; user/assistant turns become contents."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system" and m.get("content")]
    contents = [
        {"role": "model" if m.get("role") == "assistant" else "user", "parts": [{"text": m.get("content") or ""}]}
        for m in messages
        if m.get("role") != "system"
    ]
    body = {
        "contents": contents,
        "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
    }
    if system_parts:
        body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}
    return body


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(self, api_key: str, base_url: str, default_model: str):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model

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
        url = f"{self.base_url}/models/{model}:generateContent"

        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                url,
                params={"key": self.api_key},
                json=to_gemini_request(messages, temperature, max_tokens),
            )

        logger.debug(f"Gemini response status: {response.status_code}")
        if response.status_code != 200:
            raise AIProviderError(f"Gemini API error: {response.status_code} - {response.text[:200]}")

        data = response.json()
        content = ""
        candidates = data.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            content = "".join(part.get("text", "") for part in parts)

        return LLMResponse(content=content, model=model, provider=self.name, usage=data.get("usageMetadata"))
