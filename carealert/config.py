"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from carealert.domain.thresholds import VitalThresholds

# Load environment variables from .env file
load_dotenv()


class DispatchConfig(BaseModel):
    """Notification fan-out settings."""

    channel_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Upper bound for one channel call to one recipient"
    )
    caregiver_channel_prefix: str = Field(
        default="user_", description="Real-time channel key prefix for a caregiver"
    )
    health_alert_event: str = Field(default="health_alert", description="Real-time event name")
    emergency_event: str = Field(default="emergency", description="Real-time event name")


class CoordinatorConfig(BaseModel):
    """Operations (ambulance dispatch) broadcast settings."""

    channel: str = Field(default="coordinator", description="Coordinator room key")
    event: str = Field(default="emergency_alert", description="Broadcast event name")
    family_channel_prefix: str = Field(
        default="family_", description="Real-time room prefix for an elder's family"
    )
    status_event: str = Field(default="dispatch_status_update", description="Status change event")
    arrival_event: str = Field(default="ambulance_arrived", description="Arrival event")
    completion_event: str = Field(default="emergency_completed", description="Completion event")


class EmailConfig(BaseModel):
    """Transactional email provider settings."""

    api_url: str | None = Field(default=None, description="Email provider HTTP endpoint")
    api_key: str | None = Field(default=None, description="Email provider API key")
    sender: str = Field(default="alerts@carealert.local", description="From address")
    timeout_seconds: float = Field(default=10.0, gt=0.0)

    @field_validator("sender")
    def validate_sender(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Email sender must be an email address")
        return v


class RealtimeConfig(BaseModel):
    """Push gateway settings."""

    gateway_url: str | None = Field(default=None, description="Push gateway HTTP endpoint")
    timeout_seconds: float = Field(default=1.5, gt=0.0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    thresholds: VitalThresholds = Field(default_factory=VitalThresholds)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    dispatch_config = DispatchConfig(
        channel_timeout_seconds=float(os.getenv("DISPATCH_CHANNEL_TIMEOUT_SECONDS", "10.0")),
        caregiver_channel_prefix=os.getenv("CAREGIVER_CHANNEL_PREFIX", "user_"),
    )

    coordinator_config = CoordinatorConfig(
        channel=os.getenv("COORDINATOR_CHANNEL", "coordinator"),
    )

    email_config = EmailConfig(
        api_url=os.getenv("EMAIL_API_URL") or None,
        api_key=os.getenv("EMAIL_API_KEY") or None,
        sender=os.getenv("EMAIL_SENDER", "alerts@carealert.local"),
        timeout_seconds=float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10.0")),
    )

    realtime_config = RealtimeConfig(
        gateway_url=os.getenv("REALTIME_GATEWAY_URL") or None,
        timeout_seconds=float(os.getenv("REALTIME_TIMEOUT_SECONDS", "1.5")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        dispatch=dispatch_config,
        coordinator=coordinator_config,
        email=email_config,
        realtime=realtime_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.email.api_url:
            print("✅ Email provider configured")
        else:
            print("⚠️  No email provider configured, family emails will fail")

        if config.realtime.gateway_url:
            print("✅ Push gateway configured")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n📤 DISPATCH")
    print(f"Channel Timeout: {config.dispatch.channel_timeout_seconds}s")
    print(f"Caregiver Channel Prefix: {config.dispatch.caregiver_channel_prefix}")
    print(f"Coordinator Channel: {config.coordinator.channel}")

    print("\n🩺 THRESHOLDS")
    t = config.thresholds
    print(f"Heart Rate: low ≤{t.heart_rate_low}, high ≥{t.heart_rate_high}")
    print(f"Oxygen: low ≤{t.oxygen_low}, critical ≤{t.oxygen_critical}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
