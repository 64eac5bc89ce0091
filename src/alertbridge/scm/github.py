"""GitHub REST client for pull-request context and PR comments."""

from __future__ import annotations

import logging

import httpx

from alertbridge.config import settings
from alertbridge.models.alert import CommitInfo, PullRequestInfo
from alertbridge.utils.http import request_with_retry

logger = logging.getLogger(__name__)


def _to_pull_request(data: dict) -> PullRequestInfo:
    return PullRequestInfo(
        number=data["number"],
        body=data.get("body") or "",
        head_sha=(data.get("head") or {}).get("sha") or "",
        html_url=data.get("html_url") or "",
    )


class GitHubClient:
    """Source-control reads are best-effort: lookups log and return empty
    results on failure so a missing PR never blocks issue creation.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.max_retries = settings.http_max_retries if max_retries is None else max_retries
        self.backoff_seconds = (
            settings.http_backoff_seconds if backoff_seconds is None else backoff_seconds
        )
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.github_api_url).rstrip("/"),
            headers=headers,
            timeout=settings.http_timeout_seconds if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await request_with_retry(
            self._client,
            method,
            path,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            **kwargs,
        )

    async def find_pull_request_for_commit(
        self, owner: str, repo: str, commit_sha: str
    ) -> PullRequestInfo | None:
        """First PR associated with *commit_sha*, or None."""
        if not commit_sha:
            return None
        try:
            response = await self._request("GET", f"/repos/{owner}/{repo}/commits/{commit_sha}/pulls")
            pulls = response.json()
            if pulls:
                return _to_pull_request(pulls[0])
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("Could not find PR for commit %s: %s", commit_sha, exc)
        return None

    async def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo | None:
        try:
            response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")
            return _to_pull_request(response.json())
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("Could not fetch PR #%s: %s", number, exc)
            return None

    async def list_pull_request_commits(self, owner: str, repo: str, number: int) -> list[CommitInfo]:
        """Commits on the PR, most recent first."""
        try:
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{number}/commits",
                params={"per_page": 100},
            )
            commits = [
                CommitInfo(sha=c["sha"], message=(c.get("commit") or {}).get("message") or "")
                for c in response.json()
            ]
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("Could not fetch commits for PR #%s: %s", number, exc)
            return []
        # GitHub returns commits oldest first
        commits.reverse()
        return commits

    async def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> None:
        """Post a comment on a PR. Raises ``httpx.HTTPError`` on failure."""
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{number}/comments",
            json={"body": body},
        )
        logger.info("Posted comment on PR #%s in %s/%s", number, owner, repo)
