"""Configuration management for LINKIT Weekly."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_CONFIG = Path(__file__).parent / "models.yaml"


class LLMRoute(BaseModel):
    """LLM model routing configuration."""
    primary: str
    fallback: list[str] = Field(default_factory=list)


class FeedSourceConfig(BaseModel):
    """Default RSS feed source shipped with the package."""
    url: HttpUrl
    name: str
    enabled: bool = True


class ModelSettings(BaseModel):
    """LLM model-specific settings."""
    temperature: float = 0.2
    max_tokens: int = 2048
    timeout_seconds: int = 40
    retry_attempts: int = 3
    backoff_factor: float = 2.0


class Settings(BaseSettings):
    """Main application settings."""

    # ── LLM Configuration ──────────────────────────────────────────────────
    llm_model_override: str | None = Field(
        None, description="Override for the LLM model"
    )
    openai_api_key: str | None = Field(None, description="OpenAI API key (primary)")
    google_ai_api_key: str | None = Field(None, description="Google AI (Gemini) API key (fallback)")
    brave_api_key: str | None = Field(None, description="Brave Search API key for Q&A web search")
    llm: ModelSettings = Field(default_factory=ModelSettings, description="LLM settings")

    # ── Operational Mode ───────────────────────────────────────────────────
    mock: bool = Field(False, description="Use mock data and clients")

    # ── Ingestion Settings ─────────────────────────────────────────────────
    global_parallel: int = Field(8, description="Maximum feeds fetched concurrently")
    feed_timeout_seconds: int = Field(30, description="Timeout for a single feed request")
    user_agent: str = Field(
        "LinkitWeeklyBot/0.1 (+https://www.linkedin.com/company/linkit-karlsruhe)",
        description="User agent for web requests"
    )

    # ── Storage ────────────────────────────────────────────────────────────
    data_dir: Path = Field(Path("./data"), description="Data directory")
    sources_file: str = Field("rss_sources.json", description="Feed source store, relative to data_dir")
    archive_db: str = Field("newsletter_archive.db", description="Archive database, relative to data_dir")
    custom_articles_file: str = Field("custom_articles.json", description="Imported articles, relative to data_dir")

    # ── Newsletter Settings ────────────────────────────────────────────────
    language: str = Field("de", description="Newsletter language (de or en)")
    max_articles: int = Field(10, description="Articles selected for a newsletter")
    max_days_old: int = Field(7, description="Age limit for fetched articles")
    promo_link: str | None = Field(
        "https://www.linkedin.com/company/linkit-karlsruhe/posts/?feedView=all",
        description="Community link appended to generated newsletters"
    )
    newsletter_temperature: float = Field(0.3, description="Sampling temperature for newsletter drafts")
    newsletter_max_tokens: int = Field(5000, description="Token limit for newsletter drafts")
    generation_timeout_seconds: float = Field(120.0, description="Upper bound for a single generation call")

    # ── Logging ────────────────────────────────────────────────────────────
    log_level: str = Field("INFO", description="Log level")
    json_logging: bool = Field(True, description="Enable JSON logging")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir")
    @classmethod
    def ensure_directories(cls, v: Path) -> Path:
        """Ensure directories exist with secure permissions."""
        from .utils import ensure_directory
        ensure_directory(v, mode=0o700)
        return v.resolve()

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        """Validate newsletter language."""
        v = v.lower()
        if v not in ("de", "en"):
            raise ValueError("Language must be 'de' or 'en'")
        return v

    @field_validator("max_articles", "max_days_old", "global_parallel", "feed_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("Value must be a positive integer")
        return v

    @property
    def sources_path(self) -> Path:
        return self.data_dir / self.sources_file

    @property
    def archive_path(self) -> Path:
        return self.data_dir / self.archive_db

    @property
    def custom_articles_path(self) -> Path:
        return self.data_dir / self.custom_articles_file


class ModelConfig:
    """Model configuration loader."""

    def __init__(self, config_path: str | Path = DEFAULT_MODEL_CONFIG):
        self.config_path = Path(config_path)
        self._config: dict[str, Any] = {}
        self.load_config()

    def load_config(self) -> None:
        """Load model configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Model config file not found: {self.config_path}")

        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

    def get_llm_route(self, route_name: str) -> LLMRoute:
        """Get LLM route configuration."""
        routes = self._config.get("routes", {})
        if route_name not in routes:
            raise ValueError(f"LLM route '{route_name}' not found in config")

        return LLMRoute(**routes[route_name])

    def get_model_settings(self) -> ModelSettings:
        """Get model settings."""
        settings_data = self._config.get("model_settings", {})
        return ModelSettings(**settings_data)

    def get_scoring_config(self) -> dict[str, Any]:
        """Get keyword list and weights for relevance scoring."""
        return self._config.get("scoring", {})

    def get_student_filter(self) -> dict[str, list[str]]:
        """Get keywords and tech sources for the student relevance filter."""
        return self._config.get("student_filter", {"keywords": [], "tech_sources": []})

    def get_default_sources(self) -> list[FeedSourceConfig]:
        """Get feed sources used when no source store exists yet."""
        sources_data = self._config.get("default_sources", [])
        return [FeedSourceConfig(**source) for source in sources_data]


# Global instances
settings = Settings()
model_config = ModelConfig()

# Populate settings with model config
settings.llm = model_config.get_model_settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def get_model_config() -> ModelConfig:
    """Get model configuration."""
    return model_config


def validate_config(settings: Settings) -> bool:
    """Validate configuration completeness."""
    try:
        if not settings.mock and not settings.google_ai_api_key and not settings.openai_api_key:
            raise ValueError("Either GOOGLE_AI_API_KEY or OPENAI_API_KEY is required when not in mock mode")

        model_config = get_model_config()
        for route in ("newsletter", "summarizer", "title", "qa", "search_analysis"):
            model_config.get_llm_route(route)

        return True

    except Exception as e:
        print(f"Configuration validation failed: {e}")
        return False


if __name__ == "__main__":
    if validate_config(get_settings()):
        print("✅ Configuration is valid")
    else:
        print("❌ Configuration validation failed")
        exit(1)
