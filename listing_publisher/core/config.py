# listing_publisher/core/config.py

import os
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Netgun.pl
    NETGUN_BASE_URL: str = "https://www.netgun.pl"
    NETGUN_IMAGE_BASE_URL: str = "https://netgun.pl"  # uploader URLs must be built without www
    NETGUN_USERNAME: str = ""
    NETGUN_PASSWORD: str = ""
    NETGUN_EMAIL: str = ""
    NETGUN_PHONE: str = ""
    NETGUN_NICKNAME: str = ""
    NETGUN_CITY: str = ""
    NETGUN_PROVINCE: str = "podlaskie"
    NETGUN_SHOP_URL: str = ""

    # Otobron.pl
    OTOBRON_BASE_URL: str = "https://otobron.pl"
    OTOBRON_USERNAME: str = ""
    OTOBRON_PASSWORD: str = ""
    OTOBRON_EMAIL: str = ""
    OTOBRON_PHONE: str = ""
    OTOBRON_ADDRESS: str = ""
    OTOBRON_LAT: str = ""
    OTOBRON_LNG: str = ""

    # HTTP / session behaviour
    HTTP_TIMEOUT: float = 30.0
    SESSION_TTL_DAYS: int = 30
    MAX_IMAGES: int = 10
    IMAGE_UPLOAD_CONCURRENCY: int = 3
    USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
    )

    # Storage
    AUDIT_DIR: str = "storage/responses"
    SESSION_CACHE_FILE: str = "storage/session_cache.json"
    BLOB_DIR: str = "storage/blobs"
    BLOB_BASE_URL: Optional[str] = None

    # Environment
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def session_ttl_seconds(self) -> int:
        return self.SESSION_TTL_DAYS * 24 * 60 * 60


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
