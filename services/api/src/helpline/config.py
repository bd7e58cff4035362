import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> str | None:
    """Find .env file, preferring .env.local for local development."""
    for env_file in [".env.local", ".env"]:
        for base in [".", os.environ.get("REPO_ROOT", "")]:
            if base:
                path = Path(base) / env_file
                if path.exists():
                    return str(path)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./local.db"
    create_tables: bool = True

    # Audio object store
    audio_storage_dir: str = "./audio_store"
    public_base_url: str = "http://localhost:8000"
    max_audio_bytes: int = 10 * 1024 * 1024

    # Speech pipeline: "bhashini" (HTTPS pipeline) or "openai"
    pipeline_provider: str = "bhashini"
    pipeline_url: str = "https://dhruva-api.bhashini.gov.in/services/inference/pipeline"
    pipeline_api_key: str = ""
    pipeline_timeout_s: float = 60.0
    source_language: str = "hi"
    target_language: str = "en"

    # OpenAI (alternate pipeline provider)
    openai_api_key: str = ""
    openai_model_text: str = "gpt-4o-mini"
    openai_model_stt: str = "gpt-4o-mini-transcribe"
    openai_model_tts: str = "gpt-4o-mini-tts"
    openai_tts_voice: str = "alloy"

    # Sessions
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 60 * 24

    # Device geolocation
    location_timeout_s: float = 10.0

    # CORS
    cors_origin: str = ""


settings = Settings()
