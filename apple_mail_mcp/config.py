from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"], env_file_encoding="utf-8", extra="ignore"
    )

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 9100
    MCP_TRANSPORT: Literal["streamable-http", "stdio"] = "streamable-http"

    # AppleScript execution
    MAIL_APP_NAME: str = "Mail"
    OSASCRIPT_PATH: str = "osascript"
    APPLESCRIPT_TIMEOUT: float = 60.0  # seconds per script
    APPLESCRIPT_MAX_OUTPUT_MB: int = 10  # stdout larger than this is rejected

    # Tool defaults
    DEFAULT_MAILBOX: str = "INBOX"
    DEFAULT_LIMIT: int = 10

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # Set to True for JSON logs when running under a supervisor

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def max_output_bytes(self) -> int:
        return self.APPLESCRIPT_MAX_OUTPUT_MB * 1024 * 1024


settings = Settings()
