from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TAILVIEW_", env_file=".env", env_file_encoding="utf-8")

    # Remote endpoints
    ws_url: str = "ws://localhost:8080/ws"
    http_url: str = "http://localhost:8080"

    # Line buffer — 0 keeps unbounded history
    history_lines: int = Field(2000, ge=0)
    autoscroll_threshold: int = Field(40, ge=0)

    # Default command
    tail_lines: int = Field(60, ge=0)

    # Reconnect policy (fixed delay, no backoff)
    reconnect_retries: int = Field(10, ge=0)
    reconnect_delay: float = Field(1.0, ge=0)
    resend_on_reconnect: bool = True

    # App
    log_level: str = "INFO"

    @field_validator("ws_url")
    @classmethod
    def check_ws_scheme(cls, value: str) -> str:
        if not value.startswith(("ws://", "wss://")):
            raise ValueError("ws_url must use the ws:// or wss:// scheme")
        return value

    @field_validator("http_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
