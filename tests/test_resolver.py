import pytest

from unit2b.core.config import DEFAULT_APP_ALIASES
from unit2b.core.resolver import AppResolver
from unit2b.core.schemas import InstalledApp

from conftest import APPS


@pytest.fixture
def resolver() -> AppResolver:
    return AppResolver(DEFAULT_APP_ALIASES)


def test_alias_wins_over_substring_match() -> None:
    apps = [
        InstalledApp(package_id="org.example.youtube.downloader", name="YouTube Downloader"),
        InstalledApp(package_id="com.google.android.youtube", name="YouTube"),
    ]
    match = AppResolver({"youtube": "com.google.android.youtube"}).resolve("youtube", apps)
    assert match is not None
    assert match.app.package_id == "com.google.android.youtube"
    assert match.strategy == "alias"


def test_alias_missing_from_inventory_is_still_returned(resolver: AppResolver) -> None:
    match = resolver.resolve("youtube", [])
    assert match is not None
    assert match.app.package_id == "com.google.android.youtube"
    assert match.confidence == 1.0


def test_exact_and_partial_names() -> None:
    resolver = AppResolver({})
    assert resolver.resolve("spotify", APPS).strategy == "exact"
    assert resolver.resolve("whats", APPS).app.name == "WhatsApp"
    assert resolver.resolve("apps.maps", APPS).strategy == "package"


def test_settings_packages_are_skipped_unless_asked() -> None:
    resolver = AppResolver({})
    apps = [InstalledApp(package_id="com.android.settings", name="Mapssettings")]
    assert resolver.resolve("maps", apps) is None
    match = resolver.resolve("settings", APPS)
    assert match is not None and match.app.package_id == "com.android.settings"


def test_fuzzy_match_and_threshold() -> None:
    resolver = AppResolver({})
    match = resolver.resolve("spotfy", APPS)
    assert match is not None
    assert match.app.package_id == "com.spotify.music"
    assert match.strategy == "fuzzy"
    assert resolver.resolve("xylophone", APPS) is None


def test_suggestions_on_miss() -> None:
    resolver = AppResolver({})
    apps = [
        InstalledApp(package_id="com.example.spotlight", name="Spotlight"),
        InstalledApp(package_id="com.example.notes", name="Notes"),
    ]
    message = resolver.describe_miss("spotty tunes", apps)
    assert message == 'Application "spotty tunes" not found. Did you mean: Spotlight?'
    assert "list apps" in resolver.describe_miss("zzz", apps)


def test_alias_for_matches_whole_query_only(resolver: AppResolver) -> None:
    assert resolver.alias_for("YouTube") == "com.google.android.youtube"
    assert resolver.alias_for("camera app") == "com.android.camera"
    assert resolver.alias_for("play youtube") is None
