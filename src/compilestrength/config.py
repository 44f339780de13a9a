"""Configuration settings for CompileStrength."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings


# __file__ = src/compilestrength/config.py
# .parent.parent.parent = project root
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Database
    database_path: Path | None = None

    # Auth (bearer JWT issued by the identity provider)
    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # LLM providers
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4096
    max_tool_steps: int = 10

    # Usage policy (per 7-day period)
    default_compile_limit: int = 1
    default_routine_edit_limit: int = 5
    default_ai_message_limit: int = 50
    meter_ai_messages: bool = True

    # Billing
    lemonsqueezy_webhook_secret: str = ""

    # Client
    api_base_url: str = "http://localhost:8000"

    def model_post_init(self, __context) -> None:
        """Set default database path after initialization."""
        if self.database_path is None:
            self.database_path = PROJECT_ROOT / "compilestrength.db"

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
