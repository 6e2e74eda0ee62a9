from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Cache
    cache_dir: Path = _PACKAGE_DIR / "cache"
    cache_ttl: int = 86400  # seconds; applied against the stored fetch timestamp

    # HTTP fetcher
    http_timeout: float = 15.0
    http_max_redirects: int = 5
    http_max_retries: int = 0  # extra attempts on timeout/connect errors; each gets http_timeout
    http_verify_ssl: bool = True  # set False behind corporate SSL-inspection proxies
    user_agent: str = "OgpInfo/1.0"

    # Logging
    log_level: str = "INFO"


settings = Settings()
