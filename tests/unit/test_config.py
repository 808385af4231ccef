"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from app.config import Settings


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///./forms.db"
        assert settings.forms_dir == "./forms"
        assert settings.respondent_header == "X-Respondent-Email"
        assert settings.is_development

    def test_environment_normalised(self):
        settings = Settings(_env_file=None, environment="PRODUCTION")
        assert settings.environment == "production"
        assert settings.is_production

    def test_invalid_environment(self):
        with pytest.raises(ValidationError, match="Environment must be one of"):
            Settings(_env_file=None, environment="qa")

    def test_log_level_normalised(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_header_name(self):
        with pytest.raises(ValidationError, match="valid HTTP header name"):
            Settings(_env_file=None, respondent_header="X Respondent")
