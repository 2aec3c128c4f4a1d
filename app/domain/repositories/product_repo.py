# app/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timezone
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a path/query id; None when it cannot be an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class ProductRepo:
    """
    Product repository backed by the 'products' collection.
    Thin Motor adapter: no business rules, driver errors propagate.
    Deleted products carry a `deleted_at` timestamp and are invisible to
    the `*_live` helpers.
    """

    LIVE = {"deleted_at": None}

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    # ----- Listing ------------------------------------------------------------

    async def find_page(
        self,
        filt: Dict[str, Any],
        *,
        projection: Optional[Dict[str, Any]] = None,
        sort: Sequence[Tuple[str, Any]] = (),
        skip: int = 0,
        limit: int = 0,
    ) -> List[dict]:
        cursor = self.col.find(filt, projection)
        if sort:
            cursor = cursor.sort(list(sort))
        cursor = cursor.skip(skip).limit(limit)
        return await cursor.to_list(length=limit or None)

    async def count(self, filt: Dict[str, Any]) -> int:
        return await self.col.count_documents(filt)

    async def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[dict]:
        return await self.col.aggregate(pipeline).to_list(length=None)

    # ----- Single record ------------------------------------------------------

    async def get_live(self, product_id: ObjectId) -> Optional[dict]:
        return await self.col.find_one({"_id": product_id, **self.LIVE})

    async def title_taken(self, title: str, exclude_id: Optional[ObjectId] = None) -> bool:
        filt: Dict[str, Any] = {"title": title, **self.LIVE}
        if exclude_id is not None:
            filt["_id"] = {"$ne": exclude_id}
        return await self.col.find_one(filt, {"_id": 1}) is not None

    async def insert(self, doc: Dict[str, Any]) -> dict:
        now = datetime.now(timezone.utc)
        doc = {**doc, "deleted_at": None, "created_at": now, "updated_at": now}
        res = await self.col.insert_one(doc)
        return {**doc, "_id": res.inserted_id}

    async def update_live(self, product_id: ObjectId, fields: Dict[str, Any]) -> Optional[dict]:
        """Apply `$set` to a non-deleted product, returning the updated document."""
        fields = {**fields, "updated_at": datetime.now(timezone.utc)}
        return await self.col.find_one_and_update(
            {"_id": product_id, **self.LIVE},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    async def soft_delete(self, product_id: ObjectId) -> Optional[dict]:
        now = datetime.now(timezone.utc)
        return await self.update_live(product_id, {"deleted_at": now, "is_active": False})
