# speechcoach/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///./speechcoach.db"

    # ElevenLabs speech-to-text
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_BASE_URL: str = "https://api.elevenlabs.io/v1"
    ELEVENLABS_STT_MODEL: str = "scribe_v1"   # "scribe_v1" | "scribe_v1_experimental"
    STT_TIMEOUT: float = 30.0
    STT_MAX_RETRIES: int = 3
    STT_CACHE_TTL: int = 600          # seconds a transcription is reused for identical audio
    MIN_AUDIO_BYTES: int = 1000       # smaller uploads are treated as silence

    MAX_TEXT_LENGTH: int = 1000

    # pydantic v2 settings
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",   # ignore unknown env vars instead of raising errors
    )

settings = Settings()
