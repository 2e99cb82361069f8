from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:8000"
    database_url: str = "sqlite:///./offsync.db"
    service_database_url: str = "sqlite:///./offsync_server.db"
    request_timeout_seconds: float = 10.0  # per request; no retries inside the gateway
    status_clear_seconds: float = 3.0
    sync_interval_minutes: int = 5
    connectivity_probe_seconds: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
