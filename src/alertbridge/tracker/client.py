"""Jira Cloud REST v3 client with bounded retry."""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from pydantic import BaseModel

from alertbridge.config import settings
from alertbridge.utils.http import request_with_retry

logger = logging.getLogger(__name__)


class TrackerCredentials(BaseModel):
    user_email: str
    api_token: str


class JiraClient:
    """Thin async wrapper over the Jira endpoints the pipeline needs.

    Every method raises ``httpx.HTTPError`` on failure after retries; callers
    decide whether the failure is fatal or merely logged.
    """

    def __init__(
        self,
        base_url: str,
        credentials: TrackerCredentials,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        token = base64.b64encode(
            f"{credentials.user_email}:{credentials.api_token}".encode("utf-8")
        ).decode("ascii")
        self.base_url = base_url.rstrip("/")
        self.max_retries = settings.http_max_retries if max_retries is None else max_retries
        self.backoff_seconds = (
            settings.http_backoff_seconds if backoff_seconds is None else backoff_seconds
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=settings.http_timeout_seconds if timeout is None else timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def browse_url(self, issue_key: str) -> str:
        return f"{self.base_url}/browse/{issue_key}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await request_with_retry(
            self._client,
            method,
            path,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_issue(self, issue_key: str, fields: str | None = None) -> dict[str, Any]:
        params = {"fields": fields} if fields else None
        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}", params=params)
        return response.json()

    async def issue_exists(self, issue_key: str) -> bool:
        """True if the issue exists; False on 404. Other errors propagate."""
        try:
            await self.get_issue(issue_key, fields="key")
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return False
            raise
        return True

    async def search_issues(
        self,
        jql: str,
        *,
        max_results: int = 50,
        fields: str = "key",
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            "/rest/api/3/search/jql",
            params={"jql": jql, "maxResults": max_results, "fields": fields},
        )
        data = response.json()
        issues = data.get("issues") if isinstance(data, dict) else None
        if not isinstance(issues, list):
            raise ValueError("Malformed search response: no issues list")
        return issues

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_issue(self, fields: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", "/rest/api/3/issue", json={"fields": fields})
        return response.json()

    async def create_issue_link(self, link_type: str, inward_key: str, outward_key: str) -> None:
        await self._request(
            "POST",
            "/rest/api/3/issueLink",
            json={
                "type": {"name": link_type},
                "inwardIssue": {"key": inward_key},
                "outwardIssue": {"key": outward_key},
            },
        )

    async def create_remote_link(self, issue_key: str, url: str, title: str) -> None:
        await self._request(
            "POST",
            f"/rest/api/3/issue/{issue_key}/remotelink",
            json={
                "globalId": url,
                "application": {"type": "com.github", "name": "GitHub Security"},
                "relationship": "discovered by",
                "object": {
                    "url": url,
                    "title": title,
                    "icon": {"url16x16": "https://github.githubassets.com/favicons/favicon.svg"},
                },
            },
        )
