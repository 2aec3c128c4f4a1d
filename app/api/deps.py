# app/api/deps.py
from typing import Optional

from fastapi import Depends, Header
from app.core.config import Settings, get_settings
from app.db.mongo import get_db
from app.db.redis import get_redis
from app.domain.errors import MissingIdentityError
from app.domain.services.images import ImageProcessor, LocalImageProcessor
from app.domain.services.notifier import Notifier, build_notifier

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    # Returns the MongoDB database instance (async)
    return db

# Dependency for injecting the Redis client into endpoints/services (may be None)
def redis_dep():
    return get_redis()

# Notification collaborator chosen from configuration
def notifier_dep(settings: Settings = Depends(get_settings), redis = Depends(redis_dep)) -> Notifier:
    return build_notifier(settings, redis)

# Image-processing collaborator
def image_processor_dep(settings: Settings = Depends(get_settings)) -> ImageProcessor:
    return LocalImageProcessor(settings.UPLOAD_DIR, settings.MEDIA_URL_PREFIX)

# Acting seller, authenticated upstream; trusted as-is
def current_seller(x_seller_id: Optional[str] = Header(default=None)) -> str:
    if not x_seller_id or not x_seller_id.strip():
        raise MissingIdentityError("Authentication required")
    return x_seller_id.strip()
