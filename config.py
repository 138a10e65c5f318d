"""Configuration management via pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kleinanzeigen
    base_url: str = "https://www.kleinanzeigen.de"
    user_agent: str = "telegram-alert-bot/1.0"
    accept_language: str = "en-US,en;q=0.5"
    location_timeout_seconds: float = 2.0
    # None leaves listing fetches unbounded
    listing_timeout_seconds: float | None = None

    # Scanning
    pages_per_scan: int = Field(default=1, ge=1)

    # Database
    database_path: Path = Field(default=Path("./data/kleinanzeigen.db"))

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Field(default=Path("./logs"))

    @property
    def listing_url_template(self) -> str:
        return self.base_url + "/seite:{page}/s-{term}/k0l{city}r{radius}"

    @property
    def location_url(self) -> str:
        return f"{self.base_url}/s-ort-empfehlungen.json"


settings = Settings()
