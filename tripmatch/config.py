"""Configuration settings using Pydantic"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Document store
    store_backend: str = Field(default="memory", alias="STORE_BACKEND")  # "memory" or "supabase"
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_key: Optional[str] = Field(default=None, alias="SUPABASE_KEY")

    # Route search and like-updates through the callable RPC layer
    use_rpc: bool = Field(default=False, alias="USE_RPC")

    # Discovery
    free_daily_limit: int = Field(default=10, alias="FREE_DAILY_LIMIT")
    search_page_size: int = Field(default=50, alias="SEARCH_PAGE_SIZE")
    viewed_storage_path: str = Field(default=".tripmatch/viewed.json", alias="VIEWED_STORAGE_PATH")

    # Application Settings
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")

    # CORS Settings
    allowed_origins: str = Field(
        default="*",
        alias="ALLOWED_ORIGINS",
        description="Comma-separated list of allowed origins for CORS"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
