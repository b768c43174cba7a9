"""Application configuration management using Pydantic Settings."""
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Get the directory where config.py is located
BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = "Storefront Assistant"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", pattern="^(development|staging|production)$")

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:3000"]
    site_url: str = Field(default="http://localhost:3000", description="Public origin used for OAuth redirects")

    # Supabase
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="", description="Supabase anon (public) key")
    supabase_service_role_key: str = Field(default="", description="Service role key, used by the search tool")
    supabase_timeout: float = 30.0

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    ollama_temperature: float = 0.3

    # Agent
    agent_max_rounds: int = Field(default=6, ge=1, le=20)
    search_result_limit: int = 5

    # Cookies
    guest_cookie_name: str = "guest_cart_id"
    guest_cookie_max_age: int = 60 * 60 * 24 * 30  # 30 days
    refresh_cookie_max_age: int = 60 * 60 * 24 * 30
    access_token_cookie_name: str = "sb-access-token"
    refresh_token_cookie_name: str = "sb-refresh-token"
    code_verifier_cookie_name: str = "sb-code-verifier"
    session_cookie_secure: bool = False

    # Rate Limiting (chat endpoint only)
    rate_limit_requests: int = 10
    rate_limit_period: int = 60  # seconds

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="json", pattern="^(json|text)$")

    model_config = SettingsConfigDict(
        env_file=BASE_DIR.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("supabase_url", "site_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
