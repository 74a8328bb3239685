"""
Real-time notification bus over Redis pub/sub.
"""

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from app.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class RedisNotificationBus:
    """
    INotificationBus publishing JSON payloads with `PUBLISH`.

    Usage:
        bus = RedisNotificationBus(client)
        await bus.publish("analytics:update", stats)  # channel "retention:analytics:update"
    """

    def __init__(self, client: aioredis.Redis, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.client = client
        self.prefix = self.settings.NOTIFICATION_CHANNEL_PREFIX

    def channel_for(self, topic: str) -> str:
        return f"{self.prefix}:{topic}" if self.prefix else topic

    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """
        Publish to a topic. Delivery is best effort: a Redis failure is logged
        and reported as zero receivers.
        """
        try:
            receivers = await self.client.publish(self.channel_for(topic), json.dumps(payload, default=str))
        except aioredis.RedisError as e:
            logger.warning(f"Could not publish to {topic}: {e}")
            return 0
        logger.debug(f"Published {topic} to {receivers} subscribers")
        return receivers
