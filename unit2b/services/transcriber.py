"""Speech-to-text over the Deepgram HTTP API."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from unit2b.core.config import Settings
from unit2b.core.errors import RecognizerUnavailableError
from unit2b.core.logger import get_logger
from unit2b.core.schemas import Transcript

logger = get_logger("session")


def parse_deepgram_response(data: dict[str, Any]) -> Optional[Transcript]:
    """Extract the first alternative of the first channel."""
    try:
        alternative = data["results"]["channels"][0]["alternatives"][0]
    except (KeyError, IndexError, TypeError):
        return None
    text = str(alternative.get("transcript") or "").strip()
    if not text:
        return None
    confidence = alternative.get("confidence")
    return Transcript(text=text, confidence=float(confidence) if confidence is not None else None)


class DeepgramTranscriber:
    """Send one WAV chunk per request and return the transcript."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def ready(self) -> bool:
        return bool(self.settings.deepgram_api_key)

    async def transcribe(self, audio: bytes) -> Optional[Transcript]:
        if not audio:
            return None
        if not self.settings.deepgram_api_key:
            raise RecognizerUnavailableError("Deepgram API key is not configured")
        headers = {
            "Authorization": f"Token {self.settings.deepgram_api_key}",
            "Content-Type": "audio/wav",
        }
        params = {"punctuate": "true", "language": self.settings.stt_language}
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.settings.stt_timeout_sec)) as client:
                resp = await client.post(self.settings.deepgram_url, params=params, content=audio, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Deepgram recognition error: %s", exc)
            return None
        transcript = parse_deepgram_response(data)
        if transcript is not None:
            logger.info("Transcript received (%d words, confidence=%s)", transcript.word_count, transcript.confidence)
        return transcript
