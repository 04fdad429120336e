"""
Chat-completion interface used for keywords, drafts and revision notes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """One completion."""

    content: str
    tokens_used: int | None = None
    model: str | None = None
    finish_reason: str | None = None

    @property
    def truncated(self) -> bool:
        """The model stopped at max_tokens, so the text is cut off."""
        return self.finish_reason == "length"


class BaseLLM(ABC):
    """A chat-completion provider."""

    @staticmethod
    def build_messages(prompt: str, system_prompt: str | None = None) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout: float | None = None,
    ) -> LLMResponse:
        """
        Complete a single prompt.

        Provider errors (including timeouts) are raised unchanged; callers
        translate them into AdapterError.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name, also the service name in usage stats."""
