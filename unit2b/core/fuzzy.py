"""Similarite de chaines (Levenshtein) pour les commandes et les applications."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")

__all__ = ["distance", "similarity", "is_prefix_pair", "best_match"]


def distance(a: str, b: str) -> int:
    """Distance d'edition (insertion, suppression, substitution a cout unitaire)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Score dans [0, 1]: ``1 - distance / max(len(a), len(b), 1)``."""
    longest = max(len(a), len(b), 1)
    return 1.0 - distance(a, b) / longest


def is_prefix_pair(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a.startswith(b) or b.startswith(a)


def best_match(
    query: str,
    candidates: Iterable[T],
    name_of: Callable[[T], str],
) -> Tuple[Optional[T], float]:
    """Retourne le candidat au meilleur score et ce score.

    Le score d'un candidat vaut ``max(similarity(nom, query), bonus_prefixe)``;
    en cas d'egalite le premier candidat rencontre est conserve.
    """
    best: Optional[T] = None
    best_score = 0.0
    for candidate in candidates:
        name = name_of(candidate)
        prefix_bonus = 1.0 if is_prefix_pair(name, query) else 0.0
        score = max(similarity(name, query), prefix_bonus)
        if best is None or score > best_score:
            best = candidate
            best_score = score
    return best, best_score
