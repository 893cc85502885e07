# Complete settings with ALL required sections
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import List


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class TradingApiSettings(BaseModel):
    """Remote trading service the desk talks to"""
    base_url: str = "http://localhost:8080/api/dhan"
    timeout_seconds: float = 10.0
    user_agent: str = "trade-desk"

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class InstrumentSearchSettings(BaseModel):
    """Symbol search behaviour"""
    debounce_seconds: float = 0.3
    min_query_length: int = 2
    result_limit: int = 10
    default_exchange: str = "NSE"


class PositionTrackerSettings(BaseModel):
    """Position polling configuration"""
    poll_interval_seconds: float = 5.0

    @field_validator('poll_interval_seconds')
    @classmethod
    def validate_interval(cls, v):
        if v <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        return v


class OrderEntrySettings(BaseModel):
    """Defaults applied to a fresh order draft"""
    default_exchange: str = "NSE"
    default_product_type: str = "INTRADAY"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    # Redaction
    redact_keys: List[str] = Field(
        default_factory=lambda: [
            "authorization", "access_token", "accesstoken", "access-token",
            "api_key", "api_secret", "password", "secret", "token",
        ]
    )


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "Trade Desk"
    version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT

    trading_api: TradingApiSettings = TradingApiSettings()
    instruments: InstrumentSearchSettings = InstrumentSearchSettings()
    positions: PositionTrackerSettings = PositionTrackerSettings()
    orders: OrderEntrySettings = OrderEntrySettings()
    logging: LoggingSettings = LoggingSettings()


# No global settings instance - use dependency injection instead
