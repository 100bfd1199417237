"""Client configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Notification client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        env_prefix="NOTIFICATIONS_",
        extra="ignore",
    )

    origin: str = Field(
        default="http://localhost:5000",
        description="Page origin used to build the socket and REST addresses",
        min_length=1,
    )
    socket_path: str = Field(
        default="/ws", description="Path of the realtime socket endpoint"
    )
    api_prefix: str = Field(
        default="/api/notifications",
        description="Path prefix of the notification REST endpoints",
    )
    initial_reconnect_delay: float = Field(
        default=1.0,
        description="Delay in seconds before the first reconnection attempt",
        gt=0,
    )
    max_reconnect_delay: float = Field(
        default=30.0,
        description="Upper bound in seconds for the reconnection delay",
        gt=0,
    )
    max_reconnect_attempts: int = Field(
        default=5,
        description="Consecutive abnormal closures tolerated before giving up",
        ge=0,
    )
    auth_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for the server to confirm authentication",
        gt=0,
    )
    heartbeat_interval: float = Field(
        default=30.0,
        description="Seconds of silence before the client pings the server",
        gt=0,
    )
    poll_interval: float = Field(
        default=120.0,
        description="Seconds between list and unread-count polls",
        gt=0,
    )
    poll_limit: int = Field(
        default=5,
        description="Number of recent notifications requested by the list poll",
        gt=0,
    )
    max_items: int = Field(
        default=100,
        description="Maximum number of notifications kept in memory per session",
        gt=0,
    )
    mutation_retries: int = Field(
        default=3,
        description="Attempts made for mark-read requests before reporting a failure",
        ge=1,
    )
    mutation_retry_delay: float = Field(
        default=0.5,
        description="Seconds to wait between mark-read attempts",
        ge=0,
    )
    request_timeout: float = Field(
        default=15.0,
        description="Timeout in seconds applied to REST requests",
        gt=0,
    )
    toast_duration: float = Field(
        default=4.0, description="Seconds an in-app toast stays visible", gt=0
    )
    push_icon: str = Field(
        default="/favicon.ico", description="Icon used for OS push notifications"
    )
    push_prompt_after: int = Field(
        default=2,
        description="Dropdown openings before suggesting push notifications",
        ge=0,
    )

    @model_validator(mode="after")
    def _validate_reconnect_delays(self) -> "Settings":
        if self.initial_reconnect_delay > self.max_reconnect_delay:
            raise ValueError(
                "NOTIFICATIONS_INITIAL_RECONNECT_DELAY must not exceed "
                "NOTIFICATIONS_MAX_RECONNECT_DELAY"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached client settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
