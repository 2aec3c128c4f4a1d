# app/utils/locks.py
from __future__ import annotations
from typing import Optional
from redis.asyncio import Redis
import hashlib, uuid


class RedisLock:
    """
    Simple, single-instance lock using SET NX EX.
    Serializes product creation per title so two concurrent requests cannot
    both pass the duplicate-title check.
    """
    def __init__(self, redis: Redis, key: str, ttl: int = 10):
        self.redis = redis
        self.key = f"lock:{key}"
        self.ttl = ttl
        self._token: Optional[str] = None

    @classmethod
    def for_title(cls, redis: Redis, title: str, ttl: int = 10) -> "RedisLock":
        digest = hashlib.sha1(title.strip().lower().encode("utf-8")).hexdigest()[:16]
        return cls(redis, f"product-title:{digest}", ttl=ttl)

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        ok = await self.redis.set(self.key, token, nx=True, ex=self.ttl)
        if ok:
            self._token = token
            return True
        return False

    async def release(self) -> None:
        # only delete the lock we own; it may have expired and been re-taken
        if self._token and await self.redis.get(self.key) == self._token:
            await self.redis.delete(self.key)
        self._token = None
