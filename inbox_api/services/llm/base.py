from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class AIProviderError(Exception):
    """A single backend failed to produce a completion."""


@dataclass
class LLMResponse:
    content: str
    model: str
    provider: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name: str = "base"

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response from LLM."""
        pass
