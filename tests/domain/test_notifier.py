"""Tests for notification collaborator selection and publishing."""

import json
from unittest.mock import AsyncMock, MagicMock

from app.core.config import get_settings
from app.domain.services.notifier import NoopNotifier, RedisNotifier, build_notifier


def test_noop_when_disabled() -> None:
    settings = get_settings().model_copy(update={"NOTIFICATIONS_ENABLED": False})
    assert isinstance(build_notifier(settings, MagicMock()), NoopNotifier)


def test_noop_without_redis() -> None:
    settings = get_settings().model_copy(update={"NOTIFICATIONS_ENABLED": True})
    assert isinstance(build_notifier(settings, None), NoopNotifier)


def test_redis_when_enabled() -> None:
    settings = get_settings().model_copy(update={"NOTIFICATIONS_ENABLED": True})
    notifier = build_notifier(settings, MagicMock())
    assert isinstance(notifier, RedisNotifier)
    assert notifier.channel == settings.notification_channel


async def test_publishes_json() -> None:
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    await RedisNotifier(redis, "chan").notify("NEW_PRODUCT", {"productId": "p1"})

    channel, message = redis.publish.await_args.args
    assert channel == "chan"
    decoded = json.loads(message)
    assert decoded["event"] == "NEW_PRODUCT"
    assert decoded["payload"] == {"productId": "p1"}
    assert "emitted_at" in decoded


async def test_publish_failure_does_not_raise() -> None:
    redis = MagicMock()
    redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))
    await RedisNotifier(redis, "chan").notify("NEW_PRODUCT", {})
    redis.publish.assert_awaited_once()
