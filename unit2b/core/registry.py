"""Registre ordonne des commandes vocales."""

from __future__ import annotations

import re
from typing import Iterator

from unit2b.core.schemas import Command

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_SPACES_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Minuscules, ponctuation retiree, espaces reduits."""
    cleaned = _PUNCTUATION_RE.sub("", (text or "").lower())
    return _SPACES_RE.sub(" ", cleaned).strip()


class CommandRegistry:
    """Commandes indexees par phrase normalisee, dans l'ordre d'enregistrement."""

    def __init__(self, *, overlap_threshold: float = 0.5) -> None:
        self.overlap_threshold = overlap_threshold
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        """Insere ou remplace une commande (la derniere ecriture gagne)."""
        self._commands[normalize(command.phrase)] = command

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, phrase: str) -> bool:
        return normalize(phrase) in self._commands

    def get(self, phrase: str) -> Command | None:
        return self._commands.get(normalize(phrase))

    def resolve(self, text: str) -> Command | None:
        """Cherche une commande: exacte, sous-chaine, mot-cle puis recouvrement de mots."""
        normalized = normalize(text)
        if not normalized:
            return None

        exact = self._commands.get(normalized)
        if exact is not None:
            return exact

        for phrase, command in self._commands.items():
            if phrase in normalized or normalized in phrase:
                return command

        for command in self._commands.values():
            if any(keyword in normalized for keyword in command.keywords):
                return command

        return self._best_overlap(normalized)

    def _best_overlap(self, normalized: str) -> Command | None:
        input_words = set(normalized.split())
        best: Command | None = None
        best_score = 0.0
        for phrase, command in self._commands.items():
            phrase_words = phrase.split()
            if not phrase_words:
                continue
            shared = sum(1 for word in phrase_words if word in input_words)
            score = shared / len(phrase_words)
            if best is None or score > best_score:
                best = command
                best_score = score
        if best is not None and best_score >= self.overlap_threshold:
            return best
        return None
