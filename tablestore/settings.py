from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Storage account
    connection_string: str | None = Field(
        default=None, validation_alias="TABLESTORE_CONNECTION_STRING"
    )

    # Client-side retry policy (exponential backoff, handled by the SDK pipeline)
    retries: int = Field(default=3, validation_alias="TABLESTORE_RETRIES")
    retry_wait_seconds: float = Field(
        default=1.0, validation_alias="TABLESTORE_RETRY_WAIT_SECONDS"
    )

    # Logging
    log_level: str = Field(default="INFO", validation_alias="TABLESTORE_LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="TABLESTORE_LOG_JSON")

    @property
    def has_connection_string(self) -> bool:
        return bool(str(self.connection_string or "").strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
