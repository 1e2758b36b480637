"""Resolution d'un nom d'application libre vers un paquet installe."""

from __future__ import annotations

import re
from typing import Mapping, Sequence

from unit2b.core import fuzzy
from unit2b.core.schemas import AppMatch, InstalledApp

_SPACES_RE = re.compile(r"\s+")
_CAMERA_RE = re.compile(r"\bcam")
_SETTINGS_RE = re.compile(r"settings?")


def _collapse(text: str) -> str:
    return _SPACES_RE.sub(" ", (text or "").strip().lower())


class AppResolver:
    """Alias, correspondances exactes/partielles puis approximation floue."""

    def __init__(
        self,
        aliases: Mapping[str, str] | None = None,
        *,
        fuzzy_threshold: float = 0.6,
        camera_threshold: float = 0.5,
        suggestion_limit: int = 3,
    ) -> None:
        self.aliases = {_collapse(key): value for key, value in (aliases or {}).items()}
        self.fuzzy_threshold = fuzzy_threshold
        self.camera_threshold = camera_threshold
        self.suggestion_limit = suggestion_limit

    def resolve(self, query: str, apps: Sequence[InstalledApp]) -> AppMatch | None:
        term = _collapse(query)
        if not term:
            return None

        alias_hit = self._alias_lookup(term, apps)
        if alias_hit is not None:
            return alias_hit

        asked_settings = bool(_SETTINGS_RE.search(term))
        candidates = [
            app for app in apps
            if asked_settings or "settings" not in app.package_id.lower()
        ]

        for app in candidates:
            if app.name.lower() == term:
                return AppMatch(app, 1.0, "exact")
        for app in candidates:
            if term in app.name.lower():
                return AppMatch(app, 0.9, "name")
        for app in candidates:
            if term in app.package_id.lower():
                return AppMatch(app, 0.85, "package")
        words = term.split()
        for app in candidates:
            name = app.name.lower()
            if all(word in name for word in words):
                return AppMatch(app, 0.8, "words")

        best, score = fuzzy.best_match(term, candidates, lambda app: app.name.lower())
        threshold = self.camera_threshold if _CAMERA_RE.search(term) else self.fuzzy_threshold
        if best is not None and score >= threshold:
            return AppMatch(best, score, "fuzzy")
        return None

    def alias_for(self, query: str) -> str | None:
        """Paquet associe a la requete entiere, sans tenir compte des mots isoles."""
        term = _collapse(query)
        return self.aliases.get(term) or self.aliases.get(term.replace(" ", ""))

    def suggest(self, query: str, apps: Sequence[InstalledApp]) -> list[InstalledApp]:
        """Propositions "vouliez-vous dire" basees sur un prefixe de 3 caracteres."""
        term = _collapse(query)
        if not term:
            return []
        head = term[:3]
        similar: list[InstalledApp] = []
        for app in apps:
            name = app.name.lower()
            if head in name or (name and name[:3] in term):
                similar.append(app)
            if len(similar) >= self.suggestion_limit:
                break
        return similar

    def describe_miss(self, query: str, apps: Sequence[InstalledApp]) -> str:
        suggestions = self.suggest(query, apps)
        if suggestions:
            names = ", ".join(app.name for app in suggestions)
            return f'Application "{query}" not found. Did you mean: {names}?'
        return f'Application "{query}" not found. Use "list apps" to see available applications.'

    def _alias_lookup(self, term: str, apps: Sequence[InstalledApp]) -> AppMatch | None:
        package = self.alias_for(term)
        if package is None:
            for word in term.split():
                package = self.aliases.get(word)
                if package is not None:
                    break
        if package is None:
            return None
        installed = next((app for app in apps if app.package_id == package), None)
        # Un alias absent de l'inventaire est tente quand meme: l'echec remonte au lancement.
        app = installed or InstalledApp(package_id=package, name=term)
        return AppMatch(app, 1.0, "alias")
