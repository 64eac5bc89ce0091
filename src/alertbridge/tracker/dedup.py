"""Label-based deduplication of tracker issues per alert."""

from __future__ import annotations

import logging

import httpx

from alertbridge.models.alert import NormalizedAlert
from alertbridge.tracker.client import JiraClient
from alertbridge.utils.sanitization import escape_jql, sanitize_label

logger = logging.getLogger(__name__)

IDENTITY_LABEL_PREFIX = "gh-alert"


def identity_label(repo_short_name: str, alert_type: str, alert_number: int) -> str:
    """Deterministic label identifying one alert: ``gh-alert-<repo>-<type>-<n>``.

    Shared by the dedup query and the issue builder so both always agree.
    """
    return sanitize_label(f"{IDENTITY_LABEL_PREFIX}-{repo_short_name}-{alert_type}-{alert_number}")


def build_dedup_jql(label: str, security_label: str) -> str:
    return f'labels = "{escape_jql(label)}" AND labels = "{escape_jql(sanitize_label(security_label))}"'


async def find_existing(
    client: JiraClient,
    alert: NormalizedAlert,
    repo_short_name: str,
    security_label: str,
) -> str | None:
    """Return the key of an issue already tracking *alert*, else None.

    A failed search is treated as "no duplicate": creating a rare duplicate
    is preferred over stalling triage of a live finding.
    """
    label = identity_label(repo_short_name, alert.type, alert.number)
    try:
        issues = await client.search_issues(
            build_dedup_jql(label, security_label),
            max_results=1,
            fields="key",
        )
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Duplicate check failed for alert #%s: %s", alert.number, exc)
        return None

    first = issues[0] if isinstance(issues, list) and issues else None
    if isinstance(first, dict):
        existing_key = first.get("key")
        if isinstance(existing_key, str) and existing_key:
            logger.info("Duplicate found: %s for alert #%s", existing_key, alert.number)
            return existing_key
    return None
