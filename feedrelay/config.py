"""
Configuration management for feed relay.

This module uses pydantic-settings to manage all configuration aspects including:
- Channels (feed URL + notify webhook pairs)
- Record store backend and collection
- Dispatch transport
- Webhook delivery and feed fetching
- Scheduler and logging/metrics settings

Configuration is loaded from environment variables or a .env file. Nothing
in the package reads it from global state; each component is handed the
section it needs when it is constructed.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedrelay import DEFAULT_COLLECTION, DEFAULT_QUEUE_NAME, MAX_MESSAGE_LENGTH, __version__


class LogLevel(str, Enum):
    """Log levels supported by the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Record store backends."""
    MEMORY = "memory"
    FILESYSTEM = "filesystem"
    REDIS = "redis"
    POSTGRES = "postgres"


class DispatchBackend(str, Enum):
    """Transports used to hand new entries to the item processor."""
    LOCAL = "local"
    REDIS = "redis"


def _require_text(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return str(value).strip()


class ChannelConfig(BaseModel):
    """One feed and the webhook its new entries are delivered to."""
    name: Optional[str] = None
    url: str
    notify: str
    enabled: bool = True
    check_interval_minutes: int = 15

    @field_validator("url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        return _require_text(v, "url")

    @field_validator("notify")
    @classmethod
    def _validate_notify(cls, v: str) -> str:
        return _require_text(v, "notify")

    @model_validator(mode="after")
    def _default_name(self) -> "ChannelConfig":
        """Fall back to the feed host when no display name is given."""
        if not self.name or not self.name.strip():
            self.name = urlparse(self.url).netloc or self.url
        return self


class StoreConfig(BaseModel):
    """Configuration for the processed-record store."""
    backend: StoreBackend = StoreBackend.MEMORY
    collection: str = DEFAULT_COLLECTION
    local_storage_path: Path = Field(default=Path("./data/records"))
    redis_url: Optional[str] = None
    redis_password: Optional[SecretStr] = None
    postgres_dsn: Optional[str] = None

    @field_validator("collection")
    @classmethod
    def _validate_collection(cls, v: str) -> str:
        return _require_text(v, "collection")

    @model_validator(mode="after")
    def _check_backend_settings(self) -> "StoreConfig":
        """Make sure the chosen backend has what it needs to connect."""
        if self.backend == StoreBackend.REDIS and not self.redis_url:
            raise ValueError("redis_url is required for the redis store backend")
        if self.backend == StoreBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError("postgres_dsn is required for the postgres store backend")
        return self


class DispatchConfig(BaseModel):
    """Configuration for the dispatch transport."""
    backend: DispatchBackend = DispatchBackend.LOCAL
    redis_url: Optional[str] = None
    queue_name: str = DEFAULT_QUEUE_NAME
    poll_timeout_seconds: int = 5

    @field_validator("queue_name")
    @classmethod
    def _validate_queue_name(cls, v: str) -> str:
        return _require_text(v, "queue_name")

    @model_validator(mode="after")
    def _check_backend_settings(self) -> "DispatchConfig":
        if self.backend == DispatchBackend.REDIS and not self.redis_url:
            raise ValueError("redis_url is required for the redis dispatch backend")
        return self


class NotifyConfig(BaseModel):
    """Configuration for webhook delivery."""
    timeout_seconds: float = 10.0
    max_message_length: int = MAX_MESSAGE_LENGTH
    user_agent: str = "feedrelay/0.1.0"

    @field_validator("max_message_length")
    @classmethod
    def _validate_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_message_length must be positive")
        return v


class SourceConfig(BaseModel):
    """Configuration for fetching feeds."""
    timeout_seconds: float = 30.0
    retry_attempts: int = 3
    retry_min_wait: float = 1.0  # seconds
    retry_max_wait: float = 10.0  # seconds
    user_agent: str = "feedrelay/0.1.0 (+https://github.com/feedrelay/feedrelay)"


class SchedulerConfig(BaseModel):
    """Configuration for the job scheduler."""
    max_instances: int = 1
    timezone: str = "UTC"
    coalesce: bool = True
    misfire_grace_time: int = 300  # seconds


class MetricsConfig(BaseModel):
    """Configuration for metrics and logging."""
    prometheus_enabled: bool = False
    prometheus_port: int = 8000
    log_level: LogLevel = LogLevel.INFO
    structured_logging: bool = True


class Settings(BaseSettings):
    """Main settings class for feed relay."""
    app_name: str = "feedrelay"
    version: str = __version__
    debug: bool = Field(default=False)

    channels: List[ChannelConfig] = Field(default_factory=list)

    store: StoreConfig = Field(default_factory=StoreConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    @field_validator("channels", mode="before")
    @classmethod
    def _coerce_channels_from_mapping(cls, v):
        """Allow CHANNELS__0__... style env to load as a list.

        pydantic-settings assembles nested env for CHANNELS as a mapping like
        {"0": {...}, "1": {...}}; convert it to a list ordered by index.
        """
        if isinstance(v, dict):
            try:
                return [v[k] for k in sorted(v.keys(), key=lambda x: int(x))]
            except (TypeError, ValueError):
                return list(v.values())
        return v

    @field_validator("channels")
    @classmethod
    def _validate_channels(cls, channels: List[ChannelConfig]) -> List[ChannelConfig]:
        """Channel names are used as job ids, so they must be unique."""
        names = [channel.name for channel in channels]
        if len(names) != len(set(names)):
            raise ValueError("Channel names must be unique")
        return channels

    def get_channel_by_name(self, name: str) -> Optional[ChannelConfig]:
        """Get a channel configuration by name."""
        for channel in self.channels:
            if channel.name == name:
                return channel
        return None


def load_settings() -> Settings:
    """Load settings from environment variables and .env file."""
    return Settings()
