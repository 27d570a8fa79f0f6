from inbox_api.services.llm.base import AIProviderError, LLMProvider, LLMResponse
from inbox_api.services.llm.gemini_provider import GeminiProvider
from inbox_api.services.llm.openai_provider import OpenAICompatibleProvider

__all__ = ["AIProviderError", "LLMProvider", "LLMResponse", "GeminiProvider", "OpenAICompatibleProvider"]
