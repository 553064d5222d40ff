"""Application configuration and settings management."""

from decimal import Decimal
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DAIRY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Dairy Delivery API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Routing
    depot_latitude: float = Field(default=11.0168, ge=-90.0, le=90.0)
    depot_longitude: float = Field(default=76.9558, ge=-180.0, le=180.0)
    depot_label: str = Field(default="DairyFresh Distribution Center, Coimbatore")
    minutes_per_km: float = Field(
        default=3.0,
        gt=0.0,
        description="Fixed travel-time heuristic used for route duration estimates.",
    )
    zone_min_size: int = Field(default=3, ge=1, description="Zones below this size are merge candidates.")
    zone_max_count: int = Field(default=5, ge=1, description="Merging stops once this many zones remain.")
    maps_api_key: Optional[str] = Field(
        default=None,
        description="Mapping provider key. Without it routes use the nearest-neighbor heuristic.",
    )

    # Billing
    tax_rate: Decimal = Field(default=Decimal("0.05"), ge=0)
    weekly_due_days: int = Field(default=7, ge=0)
    monthly_due_days: int = Field(default=30, ge=0)

    # OTP
    otp_ttl_seconds: int = Field(default=300, ge=1)
    otp_max_attempts: int = Field(default=3, ge=1)
    otp_sweep_minutes: int = Field(default=10, ge=1)
    sms_base_url: str = Field(default="https://api.twilio.com/2010-04-01")
    sms_account_sid: Optional[str] = None
    sms_auth_token: Optional[str] = None
    sms_from_number: Optional[str] = None
    sms_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Retention used by the cleanup job
    delivery_retention_days: int = Field(default=182, ge=1)
    route_retention_days: int = Field(default=182, ge=1)
    invoice_retention_days: int = Field(default=365, ge=1)

    # Scheduler
    scheduler_enabled: bool = False
    scheduler_timezone: str = "Asia/Kolkata"

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @property
    def sms_configured(self) -> bool:
        return bool(self.sms_account_sid and self.sms_auth_token and self.sms_from_number)

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
