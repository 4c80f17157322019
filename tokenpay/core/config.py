"""TokenPay - Core Configuration."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "TokenPay"
    app_env: Literal["local", "test", "staging", "production"] = "local"
    debug: bool = False
    log_level: str = Field(default="INFO", description="Root log level")
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Database
    database_url: str = Field(
        ...,
        description="Async SQLAlchemy URL (mysql+aiomysql:// or sqlite+aiosqlite://)",
    )

    # Redis (Celery broker and result backend)
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for task queue",
    )

    # Clerk Authentication
    clerk_secret_key: str = Field(..., description="Clerk secret key")

    # Razorpay
    razorpay_key_id: str = Field(default="", description="Razorpay API key id")
    razorpay_key_secret: str = Field(default="", description="Razorpay API key secret")
    razorpay_webhook_secret: str = Field(
        default="", description="Razorpay webhook signing secret"
    )
    razorpay_api_base: str = Field(
        default="https://api.razorpay.com/v1", description="Razorpay REST API base URL"
    )
    razorpay_timeout_seconds: float = Field(
        default=15.0, description="Timeout for every Razorpay API call"
    )
    webhook_require_signature: bool = Field(
        default=False,
        description="Reject webhooks when no webhook secret is configured",
    )

    # Pricing
    credit_unit_name: str = Field(default="tokens", description="Display name of purchased units")
    custom_unit_price: Decimal = Field(
        default=Decimal("2.00"),
        description="Reference-currency (USD) price per unit for custom quantities",
    )
    custom_max_units: int = Field(default=1_000_000, description="Largest custom quantity")

    # Invoices
    invoice_dir: str = Field(default="invoices", description="Directory for invoice PDFs")
    invoice_company_name: str = "SaaS Foundry"
    invoice_company_address: str = "123 Business Street, Tech City, TC 12345"
    invoice_company_email: str = "support@saasfoundry.com"

    # Reconciliation
    reconcile_grace_seconds: int = Field(
        default=900, description="Minimum age before a pending transaction is reconciled"
    )
    reconcile_expiry_seconds: int = Field(
        default=86400, description="Age after which an unpaid transaction is marked failed"
    )
    reconcile_interval_seconds: float = Field(
        default=300.0, description="Beat interval of the reconciliation task"
    )

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]
