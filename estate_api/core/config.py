import logging
import os
from typing import List

from dotenv import load_dotenv
from pydantic import model_validator
from pydantic_settings import BaseSettings

load_dotenv()

logger = logging.getLogger(__name__)

# Only ever accepted outside production, and only when SECRET_KEY is unset.
PLACEHOLDER_SECRET_KEY = "change-this-secret-key-before-deploying"
MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    # App
    APP_NAME: str = os.getenv("APP_NAME", "Estate Listings API")
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "False") == "True"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./estate.db")

    # JWT
    SECRET_KEY: str = os.getenv("SECRET_KEY", "")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # HTTP
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "console")  # or "json"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @model_validator(mode="after")
    def check_secret_key(self) -> "Settings":
        """
        Refuse to start in production without a real signing key.
        Outside production an unset key falls back to the placeholder.
        """
        if self.is_production:
            if not self.SECRET_KEY or self.SECRET_KEY == PLACEHOLDER_SECRET_KEY:
                raise ValueError("SECRET_KEY must be set to a private value in production")
            if len(self.SECRET_KEY) < MIN_PRODUCTION_SECRET_LENGTH:
                raise ValueError(
                    f"SECRET_KEY must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production"
                )
        elif not self.SECRET_KEY:
            logger.warning("SECRET_KEY is not set; using the development placeholder key")
            self.SECRET_KEY = PLACEHOLDER_SECRET_KEY
        return self


settings = Settings()
