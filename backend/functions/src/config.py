"""
Runtime configuration for the TTS proxy.

All settings come from environment variables or a ``.env`` file. Missing
provider credentials are not an error here: the proxy reports them per
request so the static client keeps working.
"""

from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_API_BASE = "https://api.elevenlabs.io"
DEFAULT_STATIC_DIR = Path(__file__).resolve().parent.parent / "public"
MAX_BODY_BYTES = 2 * 1024 * 1024  # 2MB


class Settings(BaseSettings):
    """Process-wide settings, constructed once by the app factory."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # ElevenLabs
    api_key: Optional[str] = Field(default=None, alias="ELEVEN_API_KEY")
    voice_id: Optional[str] = Field(default=None, alias="ELEVEN_VOICE_ID")
    api_base: str = Field(default=DEFAULT_API_BASE, alias="ELEVEN_API_BASE")
    timeout_seconds: float = Field(default=60.0, alias="ELEVEN_TIMEOUT_SECONDS")

    # Rate limiting
    rate_limit_requests: int = Field(default=60, alias="RATE_LIMIT_REQUESTS_PER_MINUTE")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")
    trust_proxy: bool = Field(default=False, alias="TRUST_PROXY")

    # Server
    static_dir: Path = Field(default=DEFAULT_STATIC_DIR, alias="STATIC_DIR")
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=list, alias="CORS_ORIGINS")
    max_body_bytes: int = Field(default=MAX_BODY_BYTES, alias="MAX_BODY_BYTES")

    @field_validator("api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        # Comma separated, like the rest of our deployment env
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def tts_configured(self) -> bool:
        return bool(self.api_key and self.voice_id)
