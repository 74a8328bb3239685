"""
HTTP client for the external message dispatch service.

The service owns delivery, retries and provider backoff; this client only
submits one message and reports whether it was accepted.
"""

import logging
from typing import Any

import httpx

from app.config.settings import Settings, get_settings
from app.core.domain.exceptions import DispatchError
from app.core.interfaces.messaging import DispatchResult

logger = logging.getLogger(__name__)


class HttpMessageDispatcher:
    """IMessageDispatcher over the dispatch service's REST API."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.url = self.settings.MESSAGE_DISPATCH_URL
        self.timeout = self.settings.MESSAGE_DISPATCH_TIMEOUT

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.MESSAGE_DISPATCH_API_KEY:
            headers["Authorization"] = f"Bearer {self.settings.MESSAGE_DISPATCH_API_KEY}"
        return headers

    async def send(
        self,
        channel: str,
        recipient: str,
        template_id: str,
        variables: dict[str, Any],
        content: dict[str, Any] | None = None,
    ) -> DispatchResult:
        payload = {
            "channel": channel,
            "to": recipient,
            "template_id": template_id,
            "variables": variables,
        }
        if content:
            payload["content"] = content

        try:
            logger.debug(f"Dispatching {channel} message with template {template_id}")
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload, headers=self._get_headers())
        except httpx.TimeoutException as e:
            logger.error(f"Timeout talking to the dispatch service for {channel}")
            raise DispatchError(channel, recipient, "Timeout talking to the dispatch service") from e
        except httpx.HTTPError as e:
            logger.error(f"Dispatch service unreachable for {channel}: {e}")
            raise DispatchError(channel, recipient, f"Dispatch service unreachable: {e}") from e

        if response.is_success:
            data = response.json() if response.content else {}
            message_id = data.get("message_id") or data.get("id")
            logger.info(f"Message accepted by dispatch service: {message_id}")
            return DispatchResult(success=True, message_id=message_id)

        error_detail = response.text
        try:
            error_json = response.json()
            error_message = error_json.get("error", {}).get("message", error_detail)
        except ValueError:
            error_message = error_detail
        logger.error(f"Error {response.status_code} from dispatch service: {error_message}")
        return DispatchResult(success=False, error=f"HTTP {response.status_code}: {error_message}")
