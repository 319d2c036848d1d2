"""
Application configuration management using Pydantic Settings
Handles all environment variables and application settings
"""

from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Main application settings"""

    # Application Settings
    APP_NAME: str = "Digistore1 Storefront"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Backend API
    API_URL: str = "https://digistore1-backend.onrender.com/api"
    API_TIMEOUT: float = 10.0

    # Storefront origin fronted by the offline cache manager
    ORIGIN_URL: str = "http://localhost:3000"
    ORIGIN_TIMEOUT: float = 15.0

    # Redis Configuration (empty URL keeps state in memory)
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_MAX_CONNECTIONS: int = 50

    # Client state persistence
    STORAGE_PREFIX: str = "digistore1"
    SESSION_COOKIE_NAME: str = "digistore1-session"
    SESSION_HEADER: str = "X-Session-ID"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 365

    # Offline cache manager
    CACHE_VERSION: str = "v2"
    DYNAMIC_CACHE_LIMIT: int = 50
    IMAGE_CACHE_LIMIT: int = 100
    OFFLINE_URL: str = "/offline"
    PRECACHE_ASSETS: List[str] = [
        "/",
        "/manifest.json",
        "/icons/icon-192x192.png",
        "/icons/icon-512x512.png",
        "/offline",
    ]
    PRECACHE_ON_STARTUP: bool = True

    # Notifications
    DEFAULT_NOTIFICATION_TITLE: str = "Digistore1"
    NOTIFICATION_ICON: str = "/icons/icon-192x192.png"
    NOTIFICATION_BADGE: str = "/icons/badge-72x72.png"
    NOTIFICATION_LIMIT: int = 100
    WINDOW_CLIENT_LIMIT: int = 50

    # Business Logic Settings
    WELCOME_COUPON_CODE: str = "WELCOME30"
    COMPARE_MAX_ITEMS: int = 4
    RECENTLY_VIEWED_MAX_ITEMS: int = 20
    CURRENCY: str = "USD"
    LIVE_CART_LIMIT: int = 10000

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_COUPON: str = "10/minute"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
