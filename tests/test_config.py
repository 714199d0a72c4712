"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from estate_api.core.config import MIN_PRODUCTION_SECRET_LENGTH, PLACEHOLDER_SECRET_KEY, Settings

STRONG_KEY = "x" * MIN_PRODUCTION_SECRET_LENGTH


class TestSecretKey:
    """Production refuses weak signing keys; development falls back to the placeholder."""

    @pytest.mark.parametrize("key", ["", PLACEHOLDER_SECRET_KEY, "short-but-private"])
    def test_production_refuses_weak_key(self, key: str) -> None:
        with pytest.raises(ValidationError):
            Settings(APP_ENV="production", SECRET_KEY=key)

    def test_production_accepts_strong_key(self) -> None:
        settings = Settings(APP_ENV="production", SECRET_KEY=STRONG_KEY)
        assert settings.is_production
        assert settings.SECRET_KEY == STRONG_KEY

    def test_production_is_case_insensitive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(APP_ENV="Production", SECRET_KEY="")

    def test_development_uses_placeholder_when_unset(self) -> None:
        settings = Settings(APP_ENV="development", SECRET_KEY="")
        assert not settings.is_production
        assert settings.SECRET_KEY == PLACEHOLDER_SECRET_KEY

    def test_development_keeps_explicit_key(self) -> None:
        settings = Settings(APP_ENV="development", SECRET_KEY="local-key")
        assert settings.SECRET_KEY == "local-key"


class TestCorsOrigins:
    """Tests for the CORS origin list."""

    def test_comma_separated(self) -> None:
        settings = Settings(CORS_ORIGINS="http://a.test, http://b.test,,")
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_wildcard(self) -> None:
        assert Settings(CORS_ORIGINS="*").cors_origins == ["*"]
