"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from referral_hierarchy.config.constants import PRIVACY_VALUES


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (listing result cache)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Result cache
    referral_cache_ttl_seconds: int = Field(
        default=15,
        gt=0,
        le=3600,
        description="TTL of cached referral listings in seconds",
    )

    # Pagination
    default_page_size: int = Field(
        default=20, gt=0, description="Page size of general referral listings"
    )
    sub_listing_page_size: int = Field(
        default=5, gt=0, description="Page size of nested sub-listings"
    )
    max_page_size: int = Field(
        default=100, gt=0, description="Upper bound applied to any page size"
    )

    # Privacy defaults applied on first non-owner access
    default_profile_privacy: str = "public"
    default_information_publicity: str = "public"

    # Registration
    reference_code_prefix: str = Field(
        default="vn", min_length=1, max_length=4
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/referral_hierarchy.log"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql:// or postgresql+asyncpg://"
            )
        return v

    @field_validator(
        "default_profile_privacy", "default_information_publicity"
    )
    @classmethod
    def validate_privacy_value(cls, v: str) -> str:
        """Validate privacy default is one of public/private."""
        value = v.strip().lower()
        if value not in PRIVACY_VALUES:
            raise ValueError(
                f"Invalid privacy value: {v}. Expected one of {PRIVACY_VALUES}"
            )
        return value

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "Settings":
        """Keep default page sizes within max_page_size."""
        if self.default_page_size > self.max_page_size:
            logger.warning(
                f"DEFAULT_PAGE_SIZE ({self.default_page_size}) exceeds "
                f"MAX_PAGE_SIZE ({self.max_page_size}), clamping"
            )
            self.default_page_size = self.max_page_size
        if self.sub_listing_page_size > self.max_page_size:
            self.sub_listing_page_size = self.max_page_size
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production" and self.debug:
            raise ValueError(
                "DEBUG must be False in production environment. "
                "Set DEBUG=false in your .env file."
            )
        return self


# Global settings instance
settings = Settings()
