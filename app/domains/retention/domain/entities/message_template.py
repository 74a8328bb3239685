"""
Message Template Entity

Channel-specific message content with `{{variable}}` placeholders. Recovery
templates are tagged with the experiment variants they were written for.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from app.core.domain import Entity

_PLACEHOLDER = re.compile(r"\{\{([\w.]+)\}\}")

CART_RECOVERY_CATEGORY = "cart_recovery"


@dataclass
class ChannelContent:
    """Content of a template for one channel."""

    body: str
    subject: str | None = None
    footer: str | None = None


@dataclass
class MessageTemplate(Entity[str]):
    """Reusable message template."""

    name: str = ""
    category: str = ""
    channels: list[str] = field(default_factory=list)
    content: dict[str, ChannelContent] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    status: str = "approved"

    def supports(self, channel: str) -> bool:
        return channel in self.channels

    @staticmethod
    def replace_variables(text: str, variables: dict[str, Any]) -> str:
        """Substitute `{{name}}` placeholders, leaving unknown ones untouched."""

        def _substitute(match: re.Match) -> str:
            value = variables.get(match.group(1))
            return match.group(0) if value is None or value == "" else str(value)

        return _PLACEHOLDER.sub(_substitute, text)

    def render(self, channel: str, variables: dict[str, Any]) -> dict[str, Any]:
        """
        Render the content for one channel.

        Returns:
            {"body": ..., "subject": ..., "footer": ...}, empty when the channel has no content
        """
        channel_content = self.content.get(channel)
        if channel_content is None:
            return {}
        rendered: dict[str, Any] = {"body": self.replace_variables(channel_content.body, variables)}
        if channel_content.subject:
            rendered["subject"] = self.replace_variables(channel_content.subject, variables)
        if channel_content.footer:
            rendered["footer"] = channel_content.footer
        return rendered
