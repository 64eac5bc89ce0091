"""User-story key extraction from PR descriptions and commit messages."""

from __future__ import annotations

import re
from collections.abc import Iterable

from alertbridge.models.alert import CommitInfo
from alertbridge.utils.sanitization import ISSUE_KEY_RE

_KEY = r"[A-Z][A-Z0-9]+(?:-[A-Z0-9]+)*-\d+"

# Searched in this order; a key found by an earlier pattern ranks first.
ISSUE_KEY_PATTERNS: tuple[re.Pattern, ...] = (
    # Bare key: PROJ-123, SUB-PROJ-123
    re.compile(rf"\b({_KEY})\b"),
    # Explicit marker: "User Story: PROJ-123", "JIRA: PROJ-123"
    re.compile(rf"(?:User Story|JIRA|Story|Issue):\s*({_KEY})", re.IGNORECASE),
    # Bracketed: [PROJ-123]
    re.compile(rf"\[({_KEY})\]"),
)

# Technical tokens that look like keys but are not (HTTP-200, UTF-8)
FALSE_POSITIVE_RE = re.compile(r"^(HTTP|ERROR|ISO|UTF|TCP|UDP|SSL|TLS|API|SDK|CLI|URL|URI)-\d+$")

_PROJECT_KEY_RE = re.compile(r"^([A-Z][A-Z0-9-]+?)-\d+$")


def extract_issue_keys(text: str | None) -> list[str]:
    """Return unique candidate issue keys from *text*, in discovery order."""
    if not text:
        return []

    keys: dict[str, None] = {}
    for pattern in ISSUE_KEY_PATTERNS:
        for match in pattern.finditer(text):
            key = match.group(1)
            # The marker pattern is case-insensitive; keys themselves are not.
            if ISSUE_KEY_RE.match(key) and not FALSE_POSITIVE_RE.match(key):
                keys.setdefault(key, None)
    return list(keys)


def find_user_story(pr_description: str | None, commits: Iterable[CommitInfo] | None) -> str | None:
    """Find the user story for an alert.

    The PR description wins; otherwise commit messages are searched in the
    order given (callers pass most recent first) and the first hit is used.
    """
    pr_keys = extract_issue_keys(pr_description)
    if pr_keys:
        return pr_keys[0]

    for commit in commits or ():
        commit_keys = extract_issue_keys(commit.message)
        if commit_keys:
            return commit_keys[0]

    return None


def extract_project_key(issue_key: str, fallback: str) -> str:
    """``SUB-PROJ-123`` -> ``SUB-PROJ``; *fallback* if *issue_key* is not a key."""
    match = _PROJECT_KEY_RE.match(issue_key or "")
    return match.group(1) if match else fallback
