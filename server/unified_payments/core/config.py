from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Unified Payments API")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    base_url: str = Field(default="http://localhost:8000", description="Public base URL used to build callback URLs")
    allowed_origins: List[AnyHttpUrl] = Field(default_factory=list)
    api_keys: List[str] = Field(default_factory=list, description="Accepted API keys (enforced in production only)")

    # Stripe (registered iff stripe_secret_key is set)
    stripe_secret_key: Optional[str] = Field(default=None)
    stripe_publishable_key: Optional[str] = Field(default=None)
    stripe_webhook_secret: Optional[str] = Field(default=None)

    # Paystack (registered iff paystack_secret_key is set)
    paystack_secret_key: Optional[str] = Field(default=None)
    paystack_public_key: Optional[str] = Field(default=None)
    paystack_base_url: str = Field(default="https://api.paystack.co")
    paystack_timeout_seconds: float = Field(default=30.0, gt=0)

    # Rate limiting: general API tier and stricter payment-mutation tier
    rate_limit_requests: int = Field(default=100, gt=0)
    rate_limit_window_seconds: int = Field(default=15 * 60, gt=0)
    payment_rate_limit_requests: int = Field(default=10, gt=0)
    payment_rate_limit_window_seconds: int = Field(default=60, gt=0)

    @model_validator(mode="after")
    def check_environment(self) -> "Settings":
        """
        Validate the deployment environment.

        Production deployments must declare at least one API key, since
        any non-empty key is accepted outside production.
        """
        allowed_environments = {"development", "production", "test"}
        if self.environment not in allowed_environments:
            raise ValueError(
                f"environment must be one of {sorted(allowed_environments)}, got '{self.environment}'"
            )

        if self.environment == "production" and not self.api_keys:
            raise ValueError("api_keys must be configured when environment='production'")

        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    The same instance is returned for the lifetime of the process so
    gateway registration sees one consistent view of the environment.
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the cached settings instance.

    Useful for testing or when configuration needs to be reloaded.
    """
    get_settings.cache_clear()
