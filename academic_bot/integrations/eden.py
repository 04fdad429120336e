"""
Eden AI adapters: OCR, speech-to-text and plagiarism detection.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from academic_bot.config import Settings, get_settings
from academic_bot.core.errors import AdapterError
from academic_bot.core.monitoring import monitor

logger = logging.getLogger(__name__)

EDEN_API_URL = "https://api.edenai.run/v2"

# Free tier limit for plagiarism detection
PLAGIARISM_MAX_CHARS = 5000


class EdenAIClient:
    """Thin async client for the Eden AI endpoints the bot uses."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.api_key = self.settings.eden_ai_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        timeout: float = 30.0,
    ) -> dict[str, Any]:
        if not self.api_key:
            raise AdapterError("eden", "EDEN_AI_KEY not configured", retryable=False)

        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.request(
                    method,
                    f"{EDEN_API_URL}{path}",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=timeout),
                ) as response:
                    response.raise_for_status()
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            monitor.log_call("eden", success=False, error=f"{path}: {e}")
            raise AdapterError("eden", f"{path} failed: {e}") from e

        monitor.log_call("eden")
        return data

    # -------------------------------------------------------------------------
    # OCR
    # -------------------------------------------------------------------------

    async def _ocr_with(self, provider: str, image_url: str) -> str:
        data = await self._request(
            "POST",
            "/ocr/ocr",
            {"providers": provider, "file_url": image_url, "language": "en"},
        )
        return (data.get(provider) or {}).get("text", "").strip()

    async def perform_ocr(self, image_url: str) -> Optional[str]:
        """
        Extract text from an image.

        Tries the primary provider, then the fallback one. Returns None when
        both fail or find no text.
        """
        providers = [
            self.settings.ocr_primary_provider,
            self.settings.ocr_fallback_provider,
        ]
        for provider in providers:
            try:
                text = await self._ocr_with(provider, image_url)
            except AdapterError as e:
                logger.warning(f"OCR with {provider} failed: {e}")
                continue
            if text:
                return text
            logger.info(f"OCR with {provider} returned no text")
        return None

    # -------------------------------------------------------------------------
    # Speech to text
    # -------------------------------------------------------------------------

    async def transcribe(
        self,
        audio_url: str,
        poll_interval: float = 2.0,
        max_polls: int = 15,
    ) -> Optional[str]:
        """
        Transcribe a voice note. Returns None on any failure.

        Eden AI runs speech-to-text as a job; the result is polled.
        """
        provider = self.settings.transcription_provider
        try:
            job = await self._request(
                "POST",
                "/audio/speech_to_text_async",
                {"providers": provider, "file_url": audio_url, "language": "en"},
            )
            public_id = job.get("public_id")
            if not public_id:
                return None

            for _ in range(max_polls):
                result = await self._request(
                    "GET", f"/audio/speech_to_text_async/{public_id}"
                )
                status = result.get("status")
                if status == "finished":
                    provider_result = (result.get("results") or {}).get(provider) or {}
                    return provider_result.get("text", "").strip() or None
                if status == "failed":
                    logger.warning(f"Transcription job {public_id} failed")
                    return None
                await asyncio.sleep(poll_interval)
        except AdapterError as e:
            logger.warning(f"Transcription failed: {e}")
            return None

        logger.warning(f"Transcription job {public_id} did not finish in time")
        return None

    # -------------------------------------------------------------------------
    # Plagiarism
    # -------------------------------------------------------------------------

    async def check_plagiarism(self, text: str) -> float:
        """
        Plagiarism score in [0, 1].

        An unconfigured or failing checker scores 0 so drafting can continue;
        the failure is logged and counted by the monitor.
        """
        provider = self.settings.plagiarism_provider
        try:
            data = await self._request(
                "POST",
                "/text/plagiarism_detection",
                {"providers": provider, "text": text[:PLAGIARISM_MAX_CHARS]},
            )
        except AdapterError as e:
            logger.warning(f"Plagiarism check unavailable: {e}")
            return 0.0

        result = data.get(provider) or {}
        score = result.get("plagia_score", result.get("score", 0)) or 0
        return normalize_score(float(score))


def normalize_score(score: float) -> float:
    """Accept both fractions and percentages, clamp to [0, 1]."""
    if score > 1:
        score = score / 100
    return min(max(score, 0.0), 1.0)
