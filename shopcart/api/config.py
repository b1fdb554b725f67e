"""
API Configuration
Settings and configuration for the ShopCart API.
"""

import json
import math
from typing import Annotated, List, Optional, Any
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator

# Points defaults applied when the environment holds a malformed value
DEFAULT_REWARD_POINTS_THRESHOLD = 3000
DEFAULT_REWARD_POINTS_AMOUNT = 5
DEFAULT_LOYALTY_POINTS_ORDER_THRESHOLD = 5
DEFAULT_LOYALTY_POINTS_AMOUNT = 100


def _parse_list(v: Any) -> Any:
    """Parse a JSON list, a bracketed list or a comma-separated string."""
    if isinstance(v, str):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except json.JSONDecodeError:
            pass
        # Fall back to "[a,b]" or "a,b"
        stripped = v.strip().lstrip("[").rstrip("]")
        return [item.strip().strip("\"'") for item in stripped.split(",") if item.strip()]
    return v


class APISettings(BaseSettings):
    """
    API configuration settings.

    Values come from environment variables (or a .env file) using the
    aliases below; field names work too.
    """

    # API Info
    app_name: str = "ShopCart API"
    version: str = "0.1.0"
    description: str = "Storefront and admin API over Clerk, Sanity and Stripe"

    # Server settings
    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    reload: bool = Field(default=False, alias="API_RELOAD")

    # CORS settings
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        alias="API_CORS_ORIGINS"
    )
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Site URLs
    base_url: str = Field(default="http://localhost:3000", alias="BASE_URL")
    site_url: str = Field(default="https://shopcartpro.reactbd.org", alias="SITE_URL")

    # Sanity
    sanity_project_id: str = Field(default="", alias="SANITY_PROJECT_ID")
    sanity_dataset: str = Field(default="production", alias="SANITY_DATASET")
    sanity_api_version: str = Field(default="2024-11-09", alias="SANITY_API_VERSION")
    sanity_api_token: Optional[str] = Field(default=None, alias="SANITY_API_TOKEN")
    sanity_use_cdn: bool = Field(default=False, alias="SANITY_USE_CDN")

    # Clerk
    clerk_secret_key: str = Field(default="", alias="CLERK_SECRET_KEY")
    clerk_api_url: str = Field(default="https://api.clerk.com/v1", alias="CLERK_API_URL")
    clerk_jwt_issuer: Optional[str] = Field(default=None, alias="CLERK_JWT_ISSUER")
    clerk_authorized_parties: Annotated[List[str], NoDecode] = Field(default=[], alias="CLERK_AUTHORIZED_PARTIES")

    # Stripe
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_currency: str = Field(default="usd", alias="STRIPE_CURRENCY")

    # Admins
    admin_emails: Annotated[List[str], NoDecode] = Field(default=[], alias="ADMIN_EMAILS")

    # Points
    reward_points_threshold: float = Field(
        default=DEFAULT_REWARD_POINTS_THRESHOLD, alias="REWARD_POINTS_THRESHOLD"
    )
    reward_points_amount: int = Field(
        default=DEFAULT_REWARD_POINTS_AMOUNT, alias="REWARD_POINTS_AMOUNT"
    )
    loyalty_points_order_threshold: int = Field(
        default=DEFAULT_LOYALTY_POINTS_ORDER_THRESHOLD, alias="LOYALTY_POINTS_ORDER_THRESHOLD"
    )
    loyalty_points_amount: int = Field(
        default=DEFAULT_LOYALTY_POINTS_AMOUNT, alias="LOYALTY_POINTS_AMOUNT"
    )

    # Redis / caching
    redis_url: str = Field(default="redis://localhost:6379/1", alias="REDIS_URL")
    enable_cache: bool = Field(default=True, alias="API_ENABLE_CACHE")
    cache_ttl_stats: int = Field(default=60, alias="API_CACHE_TTL_STATS")  # 1 min
    cache_ttl_user: int = Field(default=300, alias="API_CACHE_TTL_USER")  # 5 min
    cache_ttl_reviews: int = Field(default=300, alias="API_CACHE_TTL_REVIEWS")  # 5 min

    # Celery
    celery_broker_url: str = Field(default="redis://localhost:6379/0", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(
        default="redis://localhost:6379/0", alias="CELERY_RESULT_BACKEND"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="API_LOG_LEVEL")
    slow_request_ms: float = Field(default=1000.0, alias="API_SLOW_REQUEST_MS")

    # Outbound HTTP
    http_timeout: float = Field(default=30.0, alias="API_HTTP_TIMEOUT")

    @field_validator("cors_origins", "clerk_authorized_parties", mode="before")
    @classmethod
    def parse_list_setting(cls, v: Any) -> List[str]:
        """Parse list settings from JSON or comma-separated strings."""
        return _parse_list(v)

    @field_validator("admin_emails", mode="before")
    @classmethod
    def parse_admin_emails(cls, v: Any) -> List[str]:
        """Accept "[a@x.com,b@x.com]" or "a@x.com, b@x.com"; normalize to lower case."""
        if v is None:
            return []
        return [email.lower() for email in _parse_list(v)]

    @field_validator(
        "reward_points_threshold",
        "reward_points_amount",
        "loyalty_points_order_threshold",
        "loyalty_points_amount",
        mode="before",
    )
    @classmethod
    def parse_points_setting(cls, v: Any, info) -> float:
        """
        Fall back to the default for malformed or non-positive values.

        The reward threshold is a dollar amount and keeps its fraction; the
        other settings are whole numbers.
        """
        defaults = {
            "reward_points_threshold": DEFAULT_REWARD_POINTS_THRESHOLD,
            "reward_points_amount": DEFAULT_REWARD_POINTS_AMOUNT,
            "loyalty_points_order_threshold": DEFAULT_LOYALTY_POINTS_ORDER_THRESHOLD,
            "loyalty_points_amount": DEFAULT_LOYALTY_POINTS_AMOUNT,
        }
        parse = float if info.field_name == "reward_points_threshold" else int
        try:
            value = parse(str(v).strip())
        except (TypeError, ValueError):
            return defaults[info.field_name]
        if not math.isfinite(value):
            return defaults[info.field_name]
        return value if value > 0 else defaults[info.field_name]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
        validate_default=True,
        populate_by_name=True
    )


# Global settings instance
_settings: Optional[APISettings] = None


def get_settings() -> APISettings:
    """Get global API settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = APISettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
