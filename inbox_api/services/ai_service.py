import asyncio
import time
from typing import List, Optional, Sequence

from inbox_api.config import settings
from inbox_api.logging_config import get_logger
from inbox_api.services.llm import GeminiProvider, LLMProvider, OpenAICompatibleProvider

logger = get_logger("ai_service")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 600

# Messaging replies are short; other modes get the default budget.
MODE_MAX_TOKENS = {
    "whatsapp": 300,
    "instagram": 300,
}


def build_reply_context(system_prompt: str, user_text: str) -> List[dict]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_text},
    ]


def _build_provider(name: str) -> Optional[LLMProvider]:
    if name == "openrouter" and settings.openrouter_api_key:
        return OpenAICompatibleProvider(
            name="openrouter",
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            default_model=settings.openrouter_model,
            extra_headers={"X-Title": "Inbox CRM"},
        )
    if name == "zai" and settings.zai_api_key:
        return OpenAICompatibleProvider(
            name="zai",
            api_key=settings.zai_api_key,
            base_url=settings.zai_base_url,
            default_model=settings.zai_model,
        )
    if name == "gemini" and settings.gemini_api_key:
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            default_model=settings.gemini_model,
        )
    return None


def get_llm_providers() -> List[LLMProvider]:
    """Configured backends in AI_PROVIDERS order; unconfigured ones are skipped."""
    providers: List[LLMProvider] = []
    for name in settings.ai_provider_order:
        provider = _build_provider(name)
        if provider is None:
            logger.debug(f"AI provider '{name}' not configured, skipping")
            continue
        providers.append(provider)
    return providers


async def generate_reply(
    messages: List[dict],
    mode: str,
    providers: Optional[Sequence[LLMProvider]] = None,
    timeout_seconds: Optional[float] = None,
) -> Optional[str]:
    """Try each backend in order until one returns text. Returns None if all fail."""
    providers = list(providers) if providers is not None else get_llm_providers()
    timeout = timeout_seconds if timeout_seconds is not None else settings.ai_timeout_seconds
    max_tokens = MODE_MAX_TOKENS.get(mode, DEFAULT_MAX_TOKENS)

    if not providers:
        logger.warning("No AI providers configured", extra={"context": {"mode": mode}})
        return None

    for provider in providers:
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                provider.generate(
                    messages,
                    temperature=DEFAULT_TEMPERATURE,
                    max_tokens=max_tokens,
                    timeout_seconds=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "AI provider timed out",
                extra={"context": {"provider": provider.name, "mode": mode, "timeout_seconds": timeout}},
            )
            continue
        except Exception as exc:
            logger.warning(
                "AI provider failed",
                extra={"context": {"provider": provider.name, "mode": mode, "error": str(exc)}},
            )
            continue

        content = (response.content or "").strip()
        elapsed_ms = round((time.monotonic() - started) * 1000, 2)
        if not content:
            logger.warning(
                "AI provider returned empty content",
                extra={"context": {"provider": provider.name, "mode": mode, "elapsed_ms": elapsed_ms}},
            )
            continue

        logger.info(
            "AI reply generated",
            extra={
                "context": {
                    "provider": provider.name,
                    "model": response.model,
                    "mode": mode,
                    "elapsed_ms": elapsed_ms,
                }
            },
        )
        return content

    logger.error("All AI providers failed", extra={"context": {"mode": mode, "tried": [p.name for p in providers]}})
    return None
