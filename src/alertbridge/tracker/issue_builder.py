"""Issue synthesis: tracker payload construction, creation, and linking."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from alertbridge.errors.exceptions import TrackerWriteError
from alertbridge.models.alert import CreatedIssue, NormalizedAlert, PullRequestInfo, ResolvedStory
from alertbridge.models.policy import TrackerConfig
from alertbridge.services.policy import map_severity_to_priority
from alertbridge.services.story_extractor import extract_project_key
from alertbridge.tracker.client import JiraClient
from alertbridge.tracker.dedup import identity_label
from alertbridge.utils.sanitization import (
    MAX_SUMMARY_LENGTH,
    is_valid_issue_key,
    sanitize_label,
    sanitize_string,
    sanitize_url,
)

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def repo_short_name(repo_full_name: str) -> str:
    """``octo/api`` -> ``api``."""
    _, _, name = repo_full_name.partition("/")
    return name or repo_full_name


# ---------------------------------------------------------------------------
# Atlassian Document Format helpers
# ---------------------------------------------------------------------------


def _heading(text: str) -> dict:
    return {
        "type": "heading",
        "attrs": {"level": 2},
        "content": [{"type": "text", "text": text}],
    }


def _field(label: str, value: str | None, href: str | None = None) -> dict:
    text = value or NOT_AVAILABLE
    node: dict[str, Any] = {"type": "text", "text": text}
    if href:
        node["marks"] = [{"type": "link", "attrs": {"href": href}}]
    return {
        "type": "paragraph",
        "content": [
            {"type": "text", "text": f"{label}: ", "marks": [{"type": "strong"}]},
            node,
        ],
    }


def _paragraph(text: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def build_description(
    alert: NormalizedAlert,
    repo_full_name: str,
    pull_request: PullRequestInfo | None,
    commit_sha: str | None,
) -> dict[str, Any]:
    """Build the ADF description.

    Every section and field is always present (``N/A`` when empty); triage
    tooling parses these fixed sections.
    """
    location = alert.location
    start_line = str(location.start_line) if location.start_line is not None else NOT_AVAILABLE
    end_line = str(location.end_line) if location.end_line is not None else NOT_AVAILABLE
    pr_url = sanitize_url(pull_request.html_url) if pull_request else ""

    details = [
        _heading("Security Alert Details"),
        _field("Severity", alert.effective_severity),
        _field("Rule", alert.rule.id),
        _field("Affected File", location.path),
        _field("Lines", f"{start_line}-{end_line}"),
    ]
    if alert.package_name:
        details.append(_field("Package", alert.package_name))
        details.append(_field("Vulnerable Versions", alert.vulnerable_range))

    description = [
        _heading("Description"),
        _paragraph(alert.rule.description or "No description available"),
    ]
    if alert.rule.full_description and alert.rule.full_description != alert.rule.description:
        description.append(_paragraph(alert.rule.full_description))

    links = [
        _heading("Links"),
        _field("GitHub Security Alert", alert.url, href=alert.url),
        _field("Pull Request", pr_url, href=pr_url or None),
    ]

    repository = [
        _heading("Repository Information"),
        _field("Repository", sanitize_string(repo_full_name)),
        _field("Commit SHA", sanitize_string(commit_sha, 40)),
        _field("PR Number", f"#{pull_request.number}" if pull_request else None),
    ]

    return {
        "type": "doc",
        "version": 1,
        "content": details + description + links + repository,
    }


def build_labels(
    alert: NormalizedAlert,
    story: ResolvedStory | None,
    tracker: TrackerConfig,
    repo_full_name: str,
) -> list[str]:
    short_name = repo_short_name(repo_full_name)
    labels = [
        sanitize_label(tracker.security_label),
        sanitize_label(f"severity-{alert.effective_severity}"),
        sanitize_label(f"repo-{short_name}"),
        sanitize_label(alert.type.replace("_", "-")),
        identity_label(short_name, alert.type, alert.number),
    ]
    if story is None:
        labels.append(sanitize_label(tracker.fallback_label))
    return [label for label in labels if label]


def build_summary(alert: NormalizedAlert) -> str:
    return sanitize_string(
        f"[Security Alert] {alert.rule.description or alert.rule.id} in {alert.location.path}",
        MAX_SUMMARY_LENGTH,
    )


def select_project(story: ResolvedStory | None, tracker: TrackerConfig) -> str:
    if story is not None and story.verified_exists:
        return extract_project_key(story.key, tracker.default_project)
    return tracker.default_project


def build_issue_fields(
    alert: NormalizedAlert,
    story: ResolvedStory | None,
    tracker: TrackerConfig,
    repo_full_name: str,
    pull_request: PullRequestInfo | None,
    commit_sha: str | None,
) -> dict[str, Any]:
    return {
        "project": {"key": sanitize_string(select_project(story, tracker), 50)},
        "summary": build_summary(alert),
        "description": build_description(alert, repo_full_name, pull_request, commit_sha),
        "issuetype": {"name": sanitize_string(tracker.default_issue_type, 50)},
        "labels": build_labels(alert, story, tracker, repo_full_name),
        "priority": {"name": map_severity_to_priority(alert.effective_severity)},
    }


# ---------------------------------------------------------------------------
# Tracker calls
# ---------------------------------------------------------------------------


async def create_security_issue(
    client: JiraClient,
    alert: NormalizedAlert,
    story: ResolvedStory | None,
    tracker: TrackerConfig,
    repo_full_name: str,
    pull_request: PullRequestInfo | None = None,
    commit_sha: str | None = None,
) -> CreatedIssue:
    """Create the tracker issue for *alert*, then add best-effort links.

    Raises:
        TrackerWriteError: the tracker rejected or never acknowledged the
            create call. Link failures are logged only.
    """
    fields = build_issue_fields(alert, story, tracker, repo_full_name, pull_request, commit_sha)

    try:
        data = await client.create_issue(fields)
        created = CreatedIssue.model_validate(data)
    except httpx.HTTPStatusError as exc:
        raise TrackerWriteError(
            f"Tracker rejected issue for alert #{alert.number}",
            status_code=exc.response.status_code,
            details=exc.response.text[:500],
        ) from exc
    except httpx.HTTPError as exc:
        raise TrackerWriteError(f"Tracker unreachable creating issue for alert #{alert.number}: {exc}") from exc
    except ValueError as exc:
        raise TrackerWriteError(f"Malformed create-issue response for alert #{alert.number}") from exc

    logger.info(
        "Created tracker issue %s for %s alert #%s (severity=%s)",
        created.key,
        alert.type,
        alert.number,
        alert.effective_severity,
    )

    if alert.url:
        await add_remote_link(client, created.key, alert.url, f"GitHub Alert #{alert.number}")
    if story is not None:
        await link_to_story(client, created.key, story.key, tracker.link_type)

    return created


async def link_to_story(client: JiraClient, issue_key: str, story_key: str, link_type: str) -> bool:
    """Link the security issue to its user story. Returns False on failure."""
    if not is_valid_issue_key(issue_key) or not is_valid_issue_key(story_key):
        return False
    try:
        await client.create_issue_link(sanitize_string(link_type, 50), issue_key, story_key)
    except httpx.HTTPError as exc:
        logger.warning("Error linking %s to %s: %s", issue_key, story_key, exc)
        return False
    logger.info("Linked %s to %s", issue_key, story_key)
    return True


async def add_remote_link(client: JiraClient, issue_key: str, url: str, title: str) -> bool:
    """Attach a remote link back to the originating alert. Returns False on failure."""
    safe_url = sanitize_url(url)
    if not is_valid_issue_key(issue_key) or not safe_url:
        return False
    try:
        await client.create_remote_link(issue_key, safe_url, sanitize_string(title))
    except httpx.HTTPError as exc:
        logger.warning("Failed to create remote link on %s: %s", issue_key, exc)
        return False
    logger.info("Created remote link on %s", issue_key)
    return True
