"""Configuration schema."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mtaa.auth.constants import TOKEN_FILENAME

DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT = 30.0
API_URL_ENV = "MTAA_API_URL"


class ApiConfig(BaseModel):
    """Remote API connection settings."""

    base_url: str = DEFAULT_API_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)


class Config(BaseModel):
    """Root configuration for mtaa."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    data_dir: str = "~/.mtaa"

    @property
    def data_path(self) -> Path:
        """Expanded data directory path."""
        return Path(self.data_dir).expanduser()

    @property
    def token_path(self) -> Path:
        return self.data_path / "auth" / TOKEN_FILENAME


class EnvOverrides(BaseSettings):
    """Settings read from the process environment."""

    model_config = SettingsConfigDict(extra="ignore")

    api_url: str | None = Field(default=None, validation_alias=API_URL_ENV)
