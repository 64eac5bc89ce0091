"""Severity-routed alert queues on Redis lists."""

import json

from alertbridge.config import settings
from alertbridge.models.alert import AlertMessage

# Queue names by severity, most urgent first
QUEUE_MAP: dict[str, str] = {
    "critical": "alerts-critical",
    "high": "alerts-high",
    "medium": "alerts-medium",
    "low": "alerts-low",
}

DEFAULT_QUEUE = "alerts-medium"
DEAD_LETTER_QUEUE = "alerts-dead-letter"


def queue_key(queue_name: str, prefix: str | None = None) -> str:
    return f"{prefix or settings.queue_prefix}:{queue_name}"


def queue_keys(prefix: str | None = None) -> list[str]:
    """All alert queue keys in priority order."""
    return [queue_key(name, prefix) for name in QUEUE_MAP.values()]


def queue_for_severity(severity: str | None) -> str:
    return QUEUE_MAP.get((severity or "").lower(), DEFAULT_QUEUE)


def encode_envelope(message: AlertMessage, retry_count: int = 0, error: str | None = None) -> str:
    envelope: dict = {"message": message.model_dump(mode="json"), "retry_count": retry_count}
    if error:
        envelope["error"] = error
    return json.dumps(envelope)


async def enqueue_alert(redis, message: AlertMessage, prefix: str | None = None) -> str:
    """Push *message* onto its severity queue. Returns the queue key used."""
    key = queue_key(queue_for_severity(message.severity), prefix)
    await redis.rpush(key, encode_envelope(message))
    return key
