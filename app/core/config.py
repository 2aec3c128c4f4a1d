from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "CatalogListing"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str # ✅ declared
    MONGO_DB: str # ✅ declared
    MONGO_TLS: bool = True
    mongo_timeout_ms: int = 6000

    # Redis (optional: creation lock + notifications)
    REDIS_URL: Optional[str] = None

    # Collections
    products_collection: str = "products"
    categories_collection: str = "categories"
    engagement_collection: str = "views"      # reviews live in the 'views' collection

    # Listing
    default_page_size: int = 12
    max_page_size: int = 100

    # Creation
    creation_lock_ttl: int = 10               # seconds; duplicate-title race window
    max_images: int = 5
    UPLOAD_DIR: str = "uploads/products"
    MEDIA_URL_PREFIX: str = "/media/products"

    # Notifications
    NOTIFICATIONS_ENABLED: bool = True
    notification_channel: str = "catalog.notifications"

    # API
    ALLOWED_ORIGINS: str = ""                 # CSV

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
