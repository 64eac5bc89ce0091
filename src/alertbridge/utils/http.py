"""Bounded retry with exponential backoff for outbound httpx calls."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})


def is_retryable(method: str, exc: Exception) -> bool:
    """Network errors always retry; 5xx only for idempotent methods; 4xx never."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 and method.upper() in IDEMPOTENT_METHODS
    return False


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = 3,
    backoff_seconds: float = 0.5,
    **kwargs,
) -> httpx.Response:
    """Send a request, raising ``httpx.HTTPStatusError`` for non-2xx responses.

    Retries up to *max_retries* times, sleeping ``backoff * 2**attempt``
    between attempts.
    """
    attempt = 0
    while True:
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except (httpx.TransportError, httpx.HTTPStatusError) as exc:
            if attempt >= max_retries or not is_retryable(method, exc):
                raise
            delay = backoff_seconds * (2**attempt)
            attempt += 1
            logger.warning("Retry attempt %d for %s %s: %s", attempt, method, url, exc)
            if delay > 0:
                await asyncio.sleep(delay)
