"""Configuration settings for the face finder service."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        DATABASE_URL: SQLAlchemy async URL (sqlite+aiosqlite or postgresql+asyncpg)
        EMBEDDING_DIMENSION: Length every stored and compared embedding must have
        MATCH_THRESHOLD: Default cosine similarity a match must reach (0-1)
        MAX_MATCHES: Default maximum number of matches returned by a search
        DEDUPLICATE_MATCHES: Record at most one match per (requester, photo) pair
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
    )

    # Core Settings
    PROJECT_NAME: str = "Face Finder Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Database Settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./facefinder.db"
    DATABASE_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Upload Settings
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB per image
    MAX_PHOTOS_PER_UPLOAD: int = 50

    # Face Detection Settings
    DETECTOR_BACKEND: str = "mock"  # "mock" or "insightface"
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    MAX_IMAGE_PIXELS: int = 1920 * 1080  # ~2MP (Full HD)
    EMBEDDING_DIMENSION: int = 128
    MOCK_FACES_PER_IMAGE: int = 2
    MAX_FACES_PER_IMAGE: int = 20
    MIN_FACE_CONFIDENCE: float = 0.5

    # Face Matching Settings
    MATCH_THRESHOLD: float = 0.6
    MAX_MATCHES: int = 50
    DEDUPLICATE_MATCHES: bool = True
    SEARCH_TIMEOUT_SECONDS: float = 30.0

    # Ingestion Worker Settings
    INGESTION_WORKERS: int = 2
    INGESTION_MAX_ATTEMPTS: int = 3
    INGESTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

settings = Settings()
