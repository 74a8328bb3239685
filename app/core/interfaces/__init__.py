"""
Core Interfaces Module

Abstract interfaces (ports) for the infrastructure the retention core talks to.
High-level services depend on these abstractions rather than on Redis or
HTTP clients directly.
"""

from app.core.interfaces.cache import CacheBackend, ICache
from app.core.interfaces.messaging import DispatchResult, IMessageDispatcher, INotificationBus

__all__ = [
    # Cache
    "CacheBackend",
    "ICache",
    # Messaging
    "DispatchResult",
    "IMessageDispatcher",
    "INotificationBus",
]
