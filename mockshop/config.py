# mockshop/config.py
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"


class Settings(BaseSettings):
    """Runtime configuration sourced from MOCKSHOP_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MOCKSHOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = DEFAULT_DATA_DIR
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    # simulated latency for the geo dropdown endpoints; 0 disables it
    geo_delay_seconds: float = 0.3
    # request header carrying the cart session id
    session_header: str = "x-session-id"


def load_settings() -> Settings:
    return Settings()
