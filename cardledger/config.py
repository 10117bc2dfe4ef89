"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Secrets never live in source code: the .env file is gitignored and
.env.example provides a safe template.

Pydantic Settings resolves each value in this order:
  1. Environment variables (highest priority)
  2. .env file values
  3. Defaults defined here (lowest priority)

Usage:
    from cardledger.config import settings
    print(settings.CARD_NUMBER_PREFIX)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cardledger.services.card_numbers import CARD_NUMBER_LENGTH


class Settings(BaseSettings):
    """
    Central configuration for the Card Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
      - CARD_ENCRYPTION_KEY: 16, 24 or 32 byte AES key for card numbers at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Card Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local runs; swap to a postgresql+asyncpg URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./cards.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Card Encryption ---
    # Raw secret, UTF-8 encoded length must be 16, 24 or 32 bytes (AES-128/192/256)
    CARD_ENCRYPTION_KEY: str

    # --- Card issuance ---
    # Optional leading digits for generated card numbers (e.g. a BIN range)
    CARD_NUMBER_PREFIX: str = ""

    # --- Listing ---
    DEFAULT_PAGE_SIZE: int = 10

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("CARD_NUMBER_PREFIX")
    @classmethod
    def card_number_prefix_fits(cls, value: str) -> str:
        if value and not (value.isascii() and value.isdigit()):
            raise ValueError("CARD_NUMBER_PREFIX must contain only digits")
        if len(value) >= CARD_NUMBER_LENGTH:
            raise ValueError(
                f"CARD_NUMBER_PREFIX must be shorter than {CARD_NUMBER_LENGTH} digits"
            )
        return value


settings = Settings()
