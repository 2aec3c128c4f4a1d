import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from redis.asyncio import Redis

from app.core.config import Settings

logger = logging.getLogger(__name__)

EVENT_NEW_PRODUCT = "NEW_PRODUCT"


class Notifier(ABC):
    """Outbound notification collaborator."""

    @abstractmethod
    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class NoopNotifier(Notifier):
    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        logger.debug("notify skipped event=%s", event)


class RedisNotifier(Notifier):
    """
    Publishes events as JSON on a Redis channel.
    Delivery is best-effort: the product is already persisted, so a publish
    failure is logged and does not fail the request.
    """

    def __init__(self, redis: Redis, channel: str):
        self.redis = redis
        self.channel = channel

    async def notify(self, event: str, payload: Dict[str, Any]) -> None:
        message = json.dumps(
            {"event": event, "payload": payload, "emitted_at": datetime.now(timezone.utc).isoformat()},
            default=str,
        )
        try:
            receivers = await self.redis.publish(self.channel, message)
            logger.info("notify published event=%s channel=%s receivers=%s", event, self.channel, receivers)
        except Exception as e:
            logger.warning("notify publish error event=%s channel=%s err=%s", event, self.channel, e)


def build_notifier(settings: Settings, redis: Optional[Redis]) -> Notifier:
    if settings.NOTIFICATIONS_ENABLED and redis is not None:
        return RedisNotifier(redis, settings.notification_channel)
    return NoopNotifier()
