# app/domain/repositories/category_repo.py
from __future__ import annotations
from typing import Any, List, Sequence
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.domain.repositories.product_repo import to_object_id


class CategoryRepo:
    """Read-only access to the 'categories' collection (existence checks only)."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "categories"):
        self.col = db[collection_name]

    async def missing(self, ids: Sequence[str]) -> List[str]:
        """Return the ids from `ids` that do not exist, in input order."""
        if not ids:
            return []
        # categories may be keyed by ObjectId or by plain string
        keys: List[Any] = []
        for cid in ids:
            keys.append(cid)
            oid = to_object_id(cid)
            if oid is not None:
                keys.append(oid)
        cursor = self.col.find({"_id": {"$in": keys}}, {"_id": 1})
        found = {str(doc["_id"]) async for doc in cursor}
        return [cid for cid in ids if cid not in found]
