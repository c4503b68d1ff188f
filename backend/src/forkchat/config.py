"""Configuration management."""

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field


class Settings(BaseSettings):
    """Application settings."""

    # Storage
    storage_backend: Literal["postgres", "memory"] = "postgres"

    # Database (PostgreSQL) - constructed from parts
    db_host: str = "localhost"
    db_port: str = "5432"
    db_name: str = "forkchat"
    db_user: str = "forkchat"
    db_password: str = ""
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10

    @computed_field
    @property
    def database_url(self) -> str:
        """Construct database URL from parts."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Claude
    claude_model: str = "sonnet"  # Replies
    claude_title_model: str = "haiku"  # Conversation titles
    use_mock_llm: bool = False
    title_max_length: int = 80

    # Auth
    api_tokens: dict[str, str] = {}  # bearer token -> user ID
    allow_user_header: bool = False  # trust X-User-ID (local development only)

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings = Settings()
