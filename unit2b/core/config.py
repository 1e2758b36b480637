"""Configuration unifiee de l'assistant."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_APP_ALIASES: dict[str, str] = {
    "youtube": "com.google.android.youtube",
    "chrome": "com.android.chrome",
    "google": "com.android.chrome",
    "maps": "com.google.android.apps.maps",
    "whatsapp": "com.whatsapp",
    "instagram": "com.instagram.android",
    "facebook": "com.facebook.katana",
    "spotify": "com.spotify.music",
    "gmail": "com.google.android.gm",
    "camera": "com.android.camera",
    "cam": "com.android.camera",
    "camera app": "com.android.camera",
    "google camera": "com.google.android.camera",
    "samsung camera": "com.samsung.android.camera",
    "miui camera": "com.miui.camera",
    "huawei camera": "com.huawei.camera",
}


class Settings(BaseSettings):
    """Parametres globaux de l'assistant."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # Serveur HTTP
    host: str = "127.0.0.1"
    port: int = 8000

    # Persona
    assistant_name: str = "Unit 2B"
    wake_word: str = "2b"

    # Logs et historique
    log_dir: str = "logs"
    log_rotate_mb: int = 5
    log_backup_count: int = 5
    db_path: str = "data/history.db"
    history_dedup_window_sec: float = 3.0
    history_short_max_len: int = 80

    # Correspondance des commandes et des applications
    word_overlap_threshold: float = 0.5
    fuzzy_threshold: float = 0.6
    camera_fuzzy_threshold: float = 0.5
    suggestion_limit: int = 3
    app_aliases: dict[str, str] = dict(DEFAULT_APP_ALIASES)
    apps_inventory_path: str = "data/apps.json"
    app_launch_command: str = "adb shell monkey -p {package} -c android.intent.category.LAUNCHER 1"
    app_launch_timeout_sec: float = 10.0

    # Cycle d'ecoute
    min_audio_bytes: int = 2000
    utterance_timeout_sec: float = 1.2
    max_chunk_sec: float = 5.0
    restart_delay_sec: float = 1.0
    speech_timeout_sec: float = 30.0

    # Reconnaissance vocale (Deepgram)
    deepgram_api_key: str | None = None
    deepgram_url: str = "https://api.deepgram.com/v1/listen"
    stt_language: str = "en-US"
    stt_timeout_sec: float = 5.0
    stt_min_confidence: float = 0.6
    stt_min_words: int = 3

    # LLM
    llm_timeout_sec: float = 20.0
    llm_max_output_tokens: int = 250
    llm_temperature: float = 0.2
    llm_proxy_url: str | None = None
    openrouter_api_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "tngtech/deepseek-r1t2-chimera:free"
    huggingface_api_key: str | None = None
    huggingface_model: str | None = None

    # Audio (peripheriques)
    audio_sample_rate: int = 16_000
    audio_input_device: str | None = None
    audio_output_device: str | None = None
    audio_activity_level: float = 0.02
    tts_model_path: str | None = None
    tts_config_path: str | None = None
    tts_length_scale: float = 1.0
    tts_noise_scale: float = 0.667

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.json_config_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def json_config_settings_source() -> dict[str, object]:
        """Charge config.json a la racine si present."""
        config_path = Path(__file__).resolve().parents[2] / "config.json"
        if config_path.is_file():
            try:
                return json.loads(config_path.read_text())
            except ValueError:
                return {}
        return {}


@lru_cache()
def get_settings() -> Settings:
    """Retourne une instance de Settings mise en cache."""
    return Settings()
