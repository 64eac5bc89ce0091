"""EPIC resolution: walk an issue's parent chain to an accepted issue type."""

from __future__ import annotations

import logging

import httpx

from alertbridge.tracker.client import JiraClient
from alertbridge.utils.sanitization import is_valid_issue_key

logger = logging.getLogger(__name__)

MAX_DEPTH = 5


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


async def resolve_epic(
    client: JiraClient,
    issue_key: str,
    accepted_types: list[str],
    traverse: bool,
    depth: int = 0,
) -> str:
    """Resolve *issue_key* to itself or its nearest ancestor of an accepted type.

    Never raises. At ``MAX_DEPTH`` hops, for keys that are not issue keys,
    or when a lookup fails, the key reached so far is returned unchanged.
    """
    current = issue_key
    while depth < MAX_DEPTH and is_valid_issue_key(current):
        try:
            issue = await client.get_issue(current, fields="issuetype,parent")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not resolve EPIC for %s: %s", current, exc)
            return current

        fields = _as_dict(issue.get("fields") if isinstance(issue, dict) else None)
        issue_type = _as_dict(fields.get("issuetype")).get("name")
        parent_key = _as_dict(fields.get("parent")).get("key")
        if not is_valid_issue_key(parent_key):
            parent_key = None

        if issue_type in accepted_types:
            logger.info("Validated %s as %s", current, issue_type)
            return current

        if not (traverse and parent_key):
            logger.info("%s is %s, not in accepted types; using as-is", current, issue_type)
            return current

        logger.info("%s is %s, traversing to parent %s", current, issue_type, parent_key)
        current = parent_key
        depth += 1

    return current
