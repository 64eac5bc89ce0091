"""Chat notification sinks for issue-created events."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ChatNotification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    message: str
    severity: str
    url: str | None = None


class NotificationSink(ABC):
    """Posts a notification to an incoming-webhook URL.

    Delivery is fire-and-forget: ``send`` returns False instead of raising.
    """

    sink_type: str = "unknown"
    timeout: float = 10.0

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    @abstractmethod
    def build_payload(self, notification: ChatNotification) -> dict:
        """Render the sink-specific JSON body."""
        ...

    async def send(self, webhook_url: str, notification: ChatNotification) -> bool:
        payload = self.build_payload(notification)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(webhook_url, json=payload)
            if response.is_success:
                logger.info("%s notification delivered (%s)", self.sink_type, notification.title)
                return True
            logger.warning(
                "%s notification returned %s: %s",
                self.sink_type,
                response.status_code,
                response.text[:200],
            )
            return False
        except httpx.HTTPError as exc:
            logger.warning("Failed to send %s notification: %s", self.sink_type, exc)
            return False
