"""Tests for configuration module."""

import pytest

from linkit_weekly.config import ModelConfig, Settings, validate_config


@pytest.fixture
def mock_env(monkeypatch, temp_dir):
    """Mock environment variables for testing."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("DATA_DIR", str(temp_dir / "env-data"))
    monkeypatch.setenv("MAX_ARTICLES", "8")
    monkeypatch.setenv("LANGUAGE", "EN")


def test_settings_creation(mock_env):
    """Test settings creation with environment variables."""
    settings = Settings()

    assert settings.openai_api_key == "test-key"
    assert settings.max_articles == 8
    assert settings.language == "en"
    assert settings.max_days_old == 7
    assert settings.generation_timeout_seconds == 120.0


def test_language_validation(temp_dir):
    """Test newsletter language validation."""
    with pytest.raises(ValueError, match="Language must be 'de' or 'en'"):
        Settings(data_dir=temp_dir, language="fr")


def test_positive_limits(temp_dir):
    with pytest.raises(ValueError, match="positive integer"):
        Settings(data_dir=temp_dir, max_articles=0)


def test_directory_creation(temp_dir):
    """Test that the data directory is created automatically."""
    settings = Settings(data_dir=temp_dir / "nested" / "data")

    assert settings.data_dir.is_dir()
    assert settings.sources_path == settings.data_dir / "rss_sources.json"
    assert settings.archive_path == settings.data_dir / "newsletter_archive.db"


def test_model_config_loading():
    """Test model configuration loading."""
    config = ModelConfig()

    newsletter = config.get_llm_route("newsletter")
    assert newsletter.primary == "gpt-4o"
    assert newsletter.fallback

    for route in ("summarizer", "title", "qa", "search_analysis"):
        assert config.get_llm_route(route).primary

    assert "chatgpt" in config.get_scoring_config()["keywords"]
    assert "wired" in config.get_scoring_config()["reliable_sources"]
    assert "studium" in config.get_student_filter()["keywords"]
    assert config.get_default_sources()[0].name == "The Decoder - KI News"


def test_unknown_route():
    with pytest.raises(ValueError, match="not found"):
        ModelConfig().get_llm_route("relevance")


def test_missing_config_file(temp_dir):
    with pytest.raises(FileNotFoundError):
        ModelConfig(temp_dir / "missing.yaml")


def test_config_validation(temp_dir):
    """Test configuration validation."""
    assert validate_config(Settings(data_dir=temp_dir, openai_api_key="test-key"))
    assert validate_config(Settings(data_dir=temp_dir, mock=True))


def test_config_validation_requires_key(temp_dir, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_AI_API_KEY", raising=False)

    settings = Settings(data_dir=temp_dir, openai_api_key=None, google_ai_api_key=None)

    assert not validate_config(settings)
