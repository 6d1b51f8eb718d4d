from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ComposerConfig(BaseSettings):
    """Configuration for composer-core.

    Settings can be provided via environment variables with COMPOSER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPOSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Home directory for persisted session records
    # Default: ~/.composer
    home: Path | None = None

    # Bridge client: seconds to wait for a response (None waits forever)
    request_timeout_seconds: float | None = Field(default=300.0, gt=0)

    # What the host does with a compose request for a thread that is busy
    busy_policy: Literal["reject", "queue"] = "reject"

    # Max seconds to wait for a cancelled turn to unwind
    cancel_timeout_seconds: float = Field(default=1.0, gt=0)

    # Largest frame a StreamTransport reader accepts (images travel inline)
    max_frame_bytes: int = Field(default=32 * 1024 * 1024, gt=0)

    # additional_kwargs key marking a LangChain HumanMessage as transient
    transient_key: str = "temp"

    log_level: str = "INFO"

    def get_home(self) -> Path:
        """Get the home directory for storage."""
        return self.home or Path.home() / ".composer"

    def get_sessions_path(self) -> Path:
        """Get the directory holding one JSON file per session."""
        return self.get_home() / "sessions"
