# app/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.db import mongo, redis as r
from app.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is mandatory
    await mongo.connect()
    if mongo._db is not None:
        try:
            await mongo.ensure_indexes(mongo.get_db())
            logger.info("Mongo indexes ensured")
        except Exception as e:
            # the listing still works without them, keyword search does not
            logger.warning("Mongo index creation failed: %s", e)

    # Redis is optional
    if settings.REDIS_URL:
        await r.connect()
    else:
        logger.warning("No REDIS_URL provided, skipping Redis connection")

    # Application runs
    yield

    # --- Shutdown ---
    try:
        await r.disconnect()
    except Exception as e:
        logger.warning("Redis disconnect failed: %s", e)

    await mongo.disconnect()
    logger.info("Mongo disconnected")
