"""
Application Configuration
Loads settings from environment variables.
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App
    APP_NAME: str = "VidLock API"
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    LOG_LEVEL: str = "INFO"
    
    # Optional shared-secret gate (X-App-Password header or ?pwd=)
    APP_PASSWORD: Optional[str] = None
    
    # Video provider (OpenAI videos API)
    OPENAI_API_KEY: str = ""
    OPENAI_ORG_ID: str = ""
    OPENAI_PROJECT_ID: str = ""
    PROVIDER_BASE_URL: str = "https://api.openai.com/v1"
    META_TIMEOUT_SECONDS: float = 30.0  # status / create / list calls
    CONTENT_TIMEOUT_SECONDS: float = 300.0  # binary content streaming
    PROVIDER_CONTENT_PARAM: str = "type"  # query parameter selecting video/thumbnail/audio
    
    # Models
    DEFAULT_MODEL: str = "sora-2"
    FALLBACK_MODEL: str = "sora-2"  # used when the requested model is access-denied
    ALLOWED_MODELS: List[str] = ["sora-2", "sora-2-pro"]
    
    # Generation parameters (first entry of ALLOWED_SECONDS is the default)
    ALLOWED_SECONDS: List[str] = ["4", "8", "12"]
    DEFAULT_SIZE: str = "1280x720"
    MAX_DIMENSION: int = 4096  # larger WxH requests fall back to DEFAULT_SIZE
    DEFAULT_FIT: str = "cover"
    
    # Drop the reference image and resubmit when the provider rejects it for moderation
    MODERATION_FALLBACK: bool = True
    
    # Status vocabulary (compared case-insensitively)
    DONE_STATUSES: List[str] = ["completed", "succeeded", "ready", "failed", "canceled"]
    SUCCESS_STATUSES: List[str] = ["completed", "succeeded", "ready"]
    
    # Persistence
    DATA_DIR: str = "./data"
    STORE_BACKEND: str = "json"  # json | sql
    DATABASE_URL: str = "sqlite:///./data/vidlock.db"
    HISTORY_LIMIT: int = 50
    
    @field_validator('OPENAI_API_KEY', 'OPENAI_ORG_ID', 'OPENAI_PROJECT_ID', 'APP_PASSWORD', mode='before')
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from secrets loaded from the environment."""
        if isinstance(v, str):
            return v.strip()
        return v
    
    @field_validator('STORE_BACKEND', 'DEFAULT_FIT', mode='before')
    @classmethod
    def lower_choices(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v
    
    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)
    
    @property
    def locks_path(self) -> Path:
        return self.data_path / "locks"
    
    @property
    def default_seconds(self) -> str:
        return self.ALLOWED_SECONDS[0] if self.ALLOWED_SECONDS else "4"
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
