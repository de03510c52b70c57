"""
Application configuration from environment variables.
Loads .env from the backend directory so API keys are found regardless of cwd.
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to backend/ (parent of quizflow/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    from dotenv import load_dotenv
    load_dotenv(_ENV_FILE, override=False)

_DEFAULT_SECRET_KEY = "change-me-in-production"


class Settings(BaseSettings):
    """Load and validate config from env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",  # ignore STRIPE_* and other keys used by other services
    )

    # Environment: set ENV=production in production; used to enforce SECRET_KEY and real LLM keys.
    env: str = ""

    # Database: sqlite for local runs, postgresql in production
    database_url: str = "sqlite:///./quizflow_dev.db"

    # JWT
    secret_key: str = _DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # Public base URL used to build package download links
    api_url: str = "http://localhost:8000"
    # CORS: comma-separated origins
    cors_origins: str = "http://localhost:3000"

    # LLM: openai | gemini. Without a key (outside production) the mock client is used.
    llm_provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 3000
    llm_timeout_seconds: float = 60.0
    # Attempts per LLM call on 429/5xx (tenacity)
    llm_max_attempts: int = 3
    # Lecture text sent to the model is cut at this many characters
    max_prompt_chars: int = 4000

    # Storage: uploads and QTI packages live under storage_root; package paths are stored relative to it
    storage_root: Path = Path(".")
    upload_dir: Path = Path("uploads")
    packages_dir: Path = Path("packages")
    max_file_size: int = 10 * 1024 * 1024
    min_content_chars: int = 100

    debug: bool = False

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, v: str) -> str:
        return (v or "openai").strip().lower() if isinstance(v, str) else "openai"

    @property
    def is_production(self) -> bool:
        return (self.env or "").strip().lower() == "production"

    @property
    def uses_default_secret(self) -> bool:
        return (self.secret_key or "").strip() == _DEFAULT_SECRET_KEY

    @property
    def upload_path(self) -> Path:
        """Absolute directory for stored uploads."""
        return (self.storage_root / self.upload_dir).resolve()

    @property
    def packages_path(self) -> Path:
        """Absolute directory for generated QTI archives."""
        return (self.storage_root / self.packages_dir).resolve()


settings = Settings()
