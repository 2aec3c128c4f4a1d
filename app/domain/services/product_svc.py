import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from pymongo.errors import PyMongoError

from app.core.config import get_settings
from app.domain.errors import ConflictError, NotFoundError, upstream_from
from app.domain.models.product import Product
from app.domain.repositories.category_repo import CategoryRepo
from app.domain.repositories.product_repo import ProductRepo, to_object_id
from app.domain.services.images import ImageProcessor, StoredImage
from app.domain.services.notifier import EVENT_NEW_PRODUCT, Notifier
from app.utils.locks import RedisLock

logger = logging.getLogger(__name__)


def _repos(db):
    settings = get_settings()
    return (
        ProductRepo(db, settings.products_collection),
        CategoryRepo(db, settings.categories_collection),
    )


def _product_id(raw: str) -> ObjectId:
    # a malformed id cannot match anything: same answer as a missing one
    oid = to_object_id(raw)
    if oid is None:
        raise NotFoundError("Product not found", details={"id": raw})
    return oid


async def _ensure_categories_exist(categories: CategoryRepo, ids: Sequence[str]) -> None:
    missing = await categories.missing(ids)
    if missing:
        raise ConflictError("One or more categories not found", details={"missing_categories": missing})


async def _discard_images(images: ImageProcessor, stored: Sequence[StoredImage]) -> None:
    # the write already failed; its error is the one the caller sees
    try:
        await images.discard(stored)
    except Exception as e:
        logger.warning("image cleanup error count=%s err=%s", len(stored), e)


async def get_product_svc(db, product_id: str) -> Product:
    products, _ = _repos(db)
    oid = _product_id(product_id)
    try:
        doc = await products.get_live(oid)
    except PyMongoError as e:
        logger.error("product get store_error id=%s err=%s", product_id, e)
        raise upstream_from(e, "product:get") from e
    if not doc:
        raise NotFoundError("Product not found", details={"id": product_id})
    return Product.from_doc(doc)


async def create_product_svc(
    db,
    redis,
    *,
    seller_id: str,
    data,
    files: Sequence[Any],
    images: ImageProcessor,
    notifier: Notifier,
) -> Product:
    """
    Create a product. Every check (title, categories, image types) runs before
    anything is stored, so a rejected request leaves no record and no files.
    Images written before a failed insert are discarded again.
    """
    t0 = time.perf_counter()
    settings = get_settings()
    products, categories = _repos(db)
    logger.info("create start title=%r seller=%s categories=%s files=%s", data.title, seller_id, data.categories, len(files))

    lock: Optional[RedisLock] = None
    if redis is not None:
        lock = RedisLock.for_title(redis, data.title, ttl=settings.creation_lock_ttl)
        try:
            if not await lock.acquire():
                raise ConflictError("Product already exists", details={"constraint": "title", "title": data.title})
        except ConflictError:
            raise
        except Exception as e:
            logger.warning("create lock unavailable title=%r err=%s", data.title, e)
            lock = None

    try:
        try:
            if await products.title_taken(data.title):
                raise ConflictError("Product already exists", details={"constraint": "title", "title": data.title})
            await _ensure_categories_exist(categories, data.categories)
        except PyMongoError as e:
            raise upstream_from(e, "product:create") from e

        images.validate(files)
        stored: List[StoredImage] = []
        if files:
            stored = await images.process_many(files)
        image_urls = [img.url for img in stored]

        try:
            doc = await products.insert({
                "title": data.title,
                "description": data.description,
                "price": data.price,
                "stock": data.stock,
                "categories": data.categories,
                "seller_id": seller_id,
                "images": image_urls,
                "is_active": True,
            })
        except PyMongoError as e:
            logger.error("create store_error title=%r err=%s", data.title, e)
            await _discard_images(images, stored)
            raise upstream_from(e, "product:create") from e
    finally:
        if lock is not None:
            try:
                await lock.release()
            except Exception as e:
                logger.warning("create lock release error title=%r err=%s", data.title, e)

    product = Product.from_doc(doc)
    await notifier.notify(EVENT_NEW_PRODUCT, {
        "recipient": seller_id,
        "productId": product.id,
        "productName": product.title,
    })
    logger.info("create done id=%s images=%s total_time=%.3fs", product.id, len(image_urls), time.perf_counter() - t0)
    return product


async def edit_product_svc(db, product_id: str, data, files: Sequence[Any], images: ImageProcessor) -> Product:
    products, categories = _repos(db)
    oid = _product_id(product_id)
    changes: Dict[str, Any] = data.changes()
    logger.info("edit start id=%s fields=%s files=%s", product_id, sorted(changes), len(files))

    try:
        if not await products.get_live(oid):
            raise NotFoundError("Product not found", details={"id": product_id})
        if "title" in changes and await products.title_taken(changes["title"], exclude_id=oid):
            raise ConflictError("Product already exists", details={"constraint": "title", "title": changes["title"]})
        if "categories" in changes:
            await _ensure_categories_exist(categories, changes["categories"])
    except PyMongoError as e:
        raise upstream_from(e, "product:edit") from e

    images.validate(files)
    stored: List[StoredImage] = []
    if files:
        # new uploads replace the image list
        stored = await images.process_many(files)
        changes["images"] = [img.url for img in stored]

    try:
        doc = await products.update_live(oid, changes)
    except PyMongoError as e:
        logger.error("edit store_error id=%s err=%s", product_id, e)
        await _discard_images(images, stored)
        raise upstream_from(e, "product:edit") from e
    if not doc:
        # deleted between the check and the write
        await _discard_images(images, stored)
        raise NotFoundError("Product not found", details={"id": product_id})
    logger.info("edit done id=%s", product_id)
    return Product.from_doc(doc)


async def delete_product_svc(db, product_id: str) -> None:
    """Soft delete: the record stays, flagged with `deleted_at` and inactive."""
    products, _ = _repos(db)
    oid = _product_id(product_id)
    try:
        doc = await products.soft_delete(oid)
    except PyMongoError as e:
        raise upstream_from(e, "product:delete") from e
    if not doc:
        raise NotFoundError("Product not found", details={"id": product_id})
    logger.info("delete done id=%s", product_id)


async def set_product_active_svc(db, product_id: str, active: bool) -> Product:
    products, _ = _repos(db)
    oid = _product_id(product_id)
    try:
        doc = await products.update_live(oid, {"is_active": active})
    except PyMongoError as e:
        raise upstream_from(e, "product:activate" if active else "product:deactivate") from e
    if not doc:
        raise NotFoundError("Product not found", details={"id": product_id})
    logger.info("set_active done id=%s active=%s", product_id, active)
    return Product.from_doc(doc)
