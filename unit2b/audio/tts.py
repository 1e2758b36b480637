"""Text-to-speech synthesis using Piper."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from piper import PiperVoice, SynthesisConfig


@dataclass(slots=True)
class PiperConfig:
    """Piper voice configuration."""

    model_path: Path
    config_path: Path | None = None
    speaker_id: int | None = None
    length_scale: float = 1.0
    noise_scale: float = 0.667


_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")


class PiperTTS:
    """Load a Piper voice once and synthesise int16 PCM from text."""

    def __init__(self, config: PiperConfig) -> None:
        self.config = config
        self._voice = self._load_voice(config)

    def synthesize_stream(self, text: str) -> Iterator[tuple[bytes, int, int]]:
        """Yield ``(pcm, sample_rate, channels)`` sentence by sentence."""
        syn_config = self._synthesis_config()
        for sentence in self.split_sentences(self._sanitize_text(text)):
            for chunk in self._voice.synthesize(sentence, syn_config=syn_config):
                yield chunk.audio_int16_bytes, chunk.sample_rate, chunk.sample_channels or 1

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        return [part.strip() for part in _SENTENCE_RE.findall(text) if part.strip()]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _synthesis_config(self) -> SynthesisConfig | None:
        kwargs = {}
        if self.config.speaker_id is not None:
            kwargs["speaker_id"] = self.config.speaker_id
        if self.config.length_scale != 1.0:
            kwargs["length_scale"] = self.config.length_scale
        if self.config.noise_scale > 0:
            kwargs["noise_scale"] = self.config.noise_scale
        return SynthesisConfig(**kwargs) if kwargs else None

    @staticmethod
    def _load_voice(config: PiperConfig) -> PiperVoice:
        if not config.model_path.exists():
            raise FileNotFoundError(f"Piper model not found: {config.model_path}")
        config_path = config.config_path or Path(f"{config.model_path}.json")
        if not config_path.exists():
            raise FileNotFoundError(f"Piper config not found: {config_path}")
        return PiperVoice.load(str(config.model_path), str(config_path))

    @staticmethod
    def _sanitize_text(text: str) -> str:
        """Drop combining marks and markdown symbols the voice cannot pronounce."""
        normalized = unicodedata.normalize("NFD", text or "")
        stripped = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
        cleaned = re.sub(r"[*_#`~]+", " ", stripped)
        return unicodedata.normalize("NFC", re.sub(r"\s+", " ", cleaned)).strip()
