from __future__ import annotations

from dataclasses import dataclass

from unit2b.core.schemas import Transcript


@dataclass(slots=True)
class TranscriptPolicy:
    """Decide whether a recognizer output is worth dispatching.

    Short low-confidence transcripts are treated as noise; longer ones are
    kept even when the recognizer is unsure.
    """

    min_confidence: float = 0.6
    min_words: int = 3

    def accept(self, transcript: Transcript | None) -> bool:
        if transcript is None or not transcript.text.strip():
            return False
        if transcript.confidence is None:
            return True
        if transcript.confidence >= self.min_confidence:
            return True
        return transcript.word_count >= self.min_words
