"""
Groq LLM provider implementation.
Uses Groq's OpenAI-compatible chat completions API.
"""

from groq import AsyncGroq

from academic_bot.config import get_settings
from academic_bot.core.monitoring import monitor
from academic_bot.integrations.llm.base import BaseLLM, LLMResponse


class GroqLLM(BaseLLM):
    """Groq LLM provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.groq_api_key
        self.model = model or settings.groq_model

        if not self.api_key:
            raise ValueError(
                "Groq API key not provided. "
                "Set GROQ_API_KEY in .env file."
            )

        self._client = AsyncGroq(api_key=self.api_key)

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout: float | None = None,
    ) -> LLMResponse:
        """Generate response using Groq."""
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(prompt, system_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:
            monitor.log_call("groq", success=False, error=str(e))
            raise

        monitor.log_call("groq")
        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            tokens_used=response.usage.total_tokens if response.usage else None,
            model=response.model,
            finish_reason=choice.finish_reason,
        )

    @property
    def name(self) -> str:
        return "groq"
