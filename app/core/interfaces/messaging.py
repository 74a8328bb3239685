"""
Messaging interfaces

Contracts for the two outbound collaborators of the retention core: the
message dispatch service (WhatsApp/email delivery) and the real-time
notification bus.
"""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class DispatchResult:
    """Outcome reported synchronously by the dispatch service for one message."""

    success: bool
    message_id: str | None = None
    error: str | None = None


@runtime_checkable
class IMessageDispatcher(Protocol):
    """
    Outbound message dispatch.

    Delivery status arrives later through the dispatch service's callback;
    retries and backoff belong to the dispatch service, not to the caller.
    """

    @abstractmethod
    async def send(
        self,
        channel: str,
        recipient: str,
        template_id: str,
        variables: dict[str, Any],
        content: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """
        Send one templated message.

        Args:
            channel: Delivery channel ("whatsapp", "email")
            recipient: Phone number or email address
            template_id: Template reference known to the dispatch service
            variables: Template variables
            content: Pre-rendered content for the channel, if available

        Raises:
            DispatchError: If the service cannot be reached or rejects the request
        """
        ...


@runtime_checkable
class INotificationBus(Protocol):
    """Publish/subscribe bus for real-time consumers (dashboards, sockets)."""

    @abstractmethod
    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """
        Publish a JSON-serializable payload to a topic.

        Returns:
            Number of subscribers that received it
        """
        ...
