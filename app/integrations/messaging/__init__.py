"""
Messaging integrations: message dispatch service and notification bus.
"""

from .dispatch_client import HttpMessageDispatcher
from .redis_notification_bus import RedisNotificationBus

__all__ = ["HttpMessageDispatcher", "RedisNotificationBus"]
