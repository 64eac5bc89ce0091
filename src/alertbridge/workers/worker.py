"""Queue consumer: pops alert messages and runs them through the processor."""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import ValidationError

from alertbridge.config import settings
from alertbridge.models.alert import AlertMessage, ProcessingResult
from alertbridge.models.enums import PROCESSABLE_ACTIONS
from alertbridge.workers.alert_processor import AlertProcessor
from alertbridge.workers.queue import (
    DEAD_LETTER_QUEUE,
    encode_envelope,
    queue_for_severity,
    queue_key,
    queue_keys,
)

logger = logging.getLogger(__name__)


class AlertWorker:
    """Consumes severity queues in priority order.

    A failed message is re-queued with an incremented retry count until
    ``max_retries`` is reached, then moved to the dead-letter list.
    """

    def __init__(
        self,
        processor: AlertProcessor,
        redis,
        *,
        prefix: str | None = None,
        max_retries: int | None = None,
        poll_timeout: int = 5,
    ):
        self.processor = processor
        self.redis = redis
        self.prefix = prefix or settings.queue_prefix
        self.max_retries = settings.worker_max_retries if max_retries is None else max_retries
        self.poll_timeout = poll_timeout

    async def run(self, stop: asyncio.Event | None = None) -> None:
        logger.info("Worker started for queues: %s", ", ".join(queue_keys(self.prefix)))
        while stop is None or not stop.is_set():
            await self.run_once()

    async def run_once(self) -> ProcessingResult | None:
        item = await self.redis.blpop(queue_keys(self.prefix), timeout=self.poll_timeout)
        if item is None:
            return None
        _, raw = item
        return await self.handle(raw)

    async def handle(self, raw: str | bytes) -> ProcessingResult | None:
        try:
            envelope = json.loads(raw)
            message = AlertMessage.model_validate(envelope["message"])
            retry_count = int(envelope.get("retry_count", 0))
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            logger.error("Malformed queue message, dead-lettering: %s", exc)
            await self.redis.rpush(
                queue_key(DEAD_LETTER_QUEUE, self.prefix),
                raw if isinstance(raw, str) else raw.decode("utf-8", "replace"),
            )
            return None

        if message.action not in PROCESSABLE_ACTIONS:
            logger.info("Ignoring %s alert with action '%s'", message.event, message.action)
            return None

        try:
            return await self.processor.process(message)
        except Exception as exc:
            await self._retry_or_dead_letter(message, retry_count, exc)
            return None

    async def _retry_or_dead_letter(self, message: AlertMessage, retry_count: int, exc: Exception) -> None:
        if retry_count < self.max_retries:
            key = queue_key(queue_for_severity(message.severity), self.prefix)
            logger.warning(
                "Re-queueing %s alert for %s (retry=%d): %s",
                message.event, message.repo, retry_count + 1, exc,
            )
        else:
            key = queue_key(DEAD_LETTER_QUEUE, self.prefix)
            logger.error(
                "Dead-lettering %s alert for %s after %d retries: %s",
                message.event, message.repo, retry_count, exc,
            )
        await self.redis.rpush(key, encode_envelope(message, retry_count + 1, error=str(exc)))
