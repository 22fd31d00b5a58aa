"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Payment gateway (Stripe, PIX payment intents)
    stripe_secret_key: str = Field(..., description="Stripe secret API key (sk_test_...)")
    stripe_api_version: str = Field(default="2023-10-16", description="Stripe API version")
    payment_currency: str = Field(default="brl", description="Currency used for payment intents")
    gateway_lookup_max_attempts: int = Field(
        default=3, ge=1, description="Attempts for read-only payment lookups"
    )

    # Database Configuration
    database_url: str = Field(..., description="Async SQLAlchemy connection URL")
    database_pool_size: int = Field(default=20, description="Database connection pool size")
    database_max_overflow: int = Field(default=50, description="Max database connection overflow")
    database_echo: bool = Field(default=False, description="Echo SQL queries (debug)")

    # Queue Configuration
    aws_region: str = Field(default="us-east-1", description="AWS region of the SQS queues")
    sqs_endpoint_url: Optional[str] = Field(
        default=None, description="Custom SQS endpoint (e.g. ElasticMQ in development)"
    )
    order_created_queue_url: str = Field(..., description="Queue carrying order-created events")
    payment_completed_queue_url: str = Field(
        ..., description="Queue receiving checkout status notifications"
    )
    payment_notification_queue_url: Optional[str] = Field(
        default=None, description="Optional queue carrying payment gateway notifications"
    )
    sqs_max_messages: int = Field(default=10, ge=1, le=10, description="Messages per receive call")
    sqs_wait_time_seconds: int = Field(
        default=0, ge=0, le=20, description="Long polling wait time for receive calls"
    )
    message_receive_interval_seconds: float = Field(
        default=5.0, gt=0, description="Interval between polling cycles (seconds)"
    )

    # Downstream notifications
    checkout_events_publisher: Literal["sqs", "event_bus"] = Field(
        default="sqs", description="Where checkout status notifications are published"
    )

    # Application Configuration
    app_name: str = Field(default="checkout-service", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")
    run_listener_in_api: bool = Field(
        default=True, description="Run the order-created listener inside the API process"
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")
    api_workers: int = Field(default=1, description="Number of API workers")
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="CORS allowed origins (comma-separated)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: str) -> str:
        """Validate that Stripe secret key starts with sk_test_ or sk_live_."""
        if not v.startswith("sk_test_") and not v.startswith("sk_live_"):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_' or 'sk_live_'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("payment_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        if len(v) != 3:
            raise ValueError("Currency must be 3-letter code")
        return v.lower()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_test_mode(self) -> bool:
        """Check if using Stripe test mode."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
