"""Configuration settings for the GigFlow backend."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from gigflow.config import MarketplaceConfig


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Storage
    database_path: str = "data/gigflow.db"
    transaction_timeout_seconds: float = 5.0

    # JWT
    jwt_secret_key: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 1 week

    # Notifications
    inbox_limit: int = 50

    # App
    debug: bool = False
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model

    def marketplace_config(self) -> MarketplaceConfig:
        """Core tunables derived from these settings."""
        return MarketplaceConfig(
            transaction_timeout=self.transaction_timeout_seconds,
            inbox_limit=self.inbox_limit,
            max_inbox_limit=max(self.inbox_limit, 100),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
