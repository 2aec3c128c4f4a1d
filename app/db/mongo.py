# app/db/mongo.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, TEXT
from app.core.config import get_settings
import certifi

settings = get_settings()
logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def _new_client() -> AsyncIOMotorClient:
    opts = dict(
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        connectTimeoutMS=settings.mongo_timeout_ms,
    )
    if settings.MONGO_TLS:
        opts.update(tls=True, tlsCAFile=certifi.where())  # critical on containers
    return AsyncIOMotorClient(settings.MONGO_URI, **opts)


async def connect():
    """
    Create the Motor client.
    A failed ping at startup is not fatal: keep a lazy client so requests
    can retry once the cluster is reachable.
    """
    global _client, _db

    try:
        _client = _new_client()
        _db = _client[settings.MONGO_DB]
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except Exception as e:
        logger.warning("Mongo ping at startup failed: %s", e)
        try:
            _client = _new_client()
            _db = _client[settings.MONGO_DB]
            logger.warning("Mongo will attempt lazy connection on first query")
        except Exception as e2:
            # routes that need the DB will assert
            _client = None
            _db = None
            logger.error("Mongo client init failed: %s", e2)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Keyword search needs a text index on the products collection;
    the popularity join looks engagement up by product_id.
    """
    products = db[settings.products_collection]
    await products.create_index(
        [("title", TEXT), ("description", TEXT)],
        name="products_text",
        weights={"title": 5, "description": 1},
    )
    await products.create_index(
        [("is_active", ASCENDING), ("deleted_at", ASCENDING), ("created_at", ASCENDING)],
        name="products_listing",
    )
    await db[settings.engagement_collection].create_index(
        [("product_id", ASCENDING)], name="views_product_id"
    )


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
