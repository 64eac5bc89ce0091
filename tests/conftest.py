"""Shared test fixtures and in-memory collaborators."""

import re

import httpx
import pytest

from alertbridge.models.alert import CommitInfo, PullRequestInfo
from alertbridge.models.enums import AlertType
from alertbridge.models.policy import AlertTypeConfig, TenantConfig
from alertbridge.notifications.base import ChatNotification, NotificationSink
from alertbridge.stores.config_store import InMemoryConfigStore
from alertbridge.stores.secret_store import InMemorySecretStore

_LABEL_RE = re.compile(r'labels = "([^"]+)"')


def _not_found(path: str) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", f"https://jira.test{path}")
    response = httpx.Response(404, request=request)
    return httpx.HTTPStatusError("404 Not Found", request=request, response=response)


class FakeTracker:
    """In-memory stand-in for ``JiraClient``."""

    def __init__(self, issues: dict | None = None):
        # key -> {"type": str, "parent": str | None}
        self.issues = dict(issues or {})
        self.created: list[dict] = []
        self.links: list[tuple] = []
        self.remote_links: list[tuple] = []
        self.searches: list[str] = []
        self.get_calls: list[str] = []
        self.fail_search = False
        self.fail_create: Exception | None = None
        self.fail_links = False
        self.closed = False
        self._counter = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    def browse_url(self, issue_key: str) -> str:
        return f"https://jira.test/browse/{issue_key}"

    @property
    def call_count(self) -> int:
        return len(self.searches) + len(self.get_calls) + len(self.created)

    async def get_issue(self, issue_key, fields=None):
        self.get_calls.append(issue_key)
        issue = self.issues.get(issue_key)
        if issue is None:
            raise _not_found(f"/rest/api/3/issue/{issue_key}")
        fields_out = {"issuetype": {"name": issue["type"]}}
        if issue.get("parent"):
            fields_out["parent"] = {"key": issue["parent"]}
        return {"key": issue_key, "fields": fields_out}

    async def issue_exists(self, issue_key):
        self.get_calls.append(issue_key)
        return issue_key in self.issues

    async def search_issues(self, jql, *, max_results=50, fields="key"):
        self.searches.append(jql)
        if self.fail_search:
            raise httpx.ConnectError("search unavailable")
        wanted = set(_LABEL_RE.findall(jql))
        matches = [
            {"key": issue["key"]}
            for issue in self.created
            if wanted <= set(issue["fields"]["labels"])
        ]
        return matches[:max_results]

    async def create_issue(self, fields):
        if self.fail_create is not None:
            raise self.fail_create
        self._counter += 1
        key = f"{fields['project']['key']}-{1000 + self._counter}"
        self.created.append({"key": key, "fields": fields})
        return {"key": key, "id": str(20000 + self._counter), "self": f"https://jira.test/rest/api/3/issue/{key}"}

    async def create_issue_link(self, link_type, inward_key, outward_key):
        if self.fail_links:
            raise httpx.ConnectError("link unavailable")
        self.links.append((link_type, inward_key, outward_key))

    async def create_remote_link(self, issue_key, url, title):
        if self.fail_links:
            raise httpx.ConnectError("link unavailable")
        self.remote_links.append((issue_key, url, title))


class FakeGitHub:
    """In-memory stand-in for ``GitHubClient``."""

    def __init__(self, pull_request: PullRequestInfo | None = None, commits: list[CommitInfo] | None = None):
        self.pull_request = pull_request
        self.commits = list(commits or [])
        self.comments: list[tuple] = []
        self.fail_comment = False
        self.closed = False

    async def aclose(self):
        self.closed = True

    async def find_pull_request_for_commit(self, owner, repo, commit_sha):
        return self.pull_request

    async def get_pull_request(self, owner, repo, number):
        return self.pull_request

    async def list_pull_request_commits(self, owner, repo, number):
        return list(self.commits)

    async def create_issue_comment(self, owner, repo, number, body):
        if self.fail_comment:
            raise httpx.ConnectError("comment unavailable")
        self.comments.append((owner, repo, number, body))


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for list-based queues."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}

    async def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    async def blpop(self, keys, timeout=0):
        for key in keys:
            if self.lists.get(key):
                return key, self.lists[key].pop(0)
        return None


class RecordingNotifier(NotificationSink):
    sink_type = "recording"

    def __init__(self, succeed: bool = True):
        super().__init__()
        self.succeed = succeed
        self.sent: list[tuple[str, ChatNotification]] = []

    def build_payload(self, notification):
        return notification.model_dump()

    async def send(self, webhook_url, notification):
        self.sent.append((webhook_url, notification))
        return self.succeed


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def code_scanning_alert(number: int = 42, severity: str = "high", commit_sha: str | None = "abc123") -> dict:
    return {
        "number": number,
        "html_url": f"https://github.com/acme/api/security/code-scanning/{number}",
        "rule": {
            "id": "js/sql-injection",
            "severity": "error",
            "security_severity_level": severity,
            "description": "SQL Injection",
            "full_description": "Building SQL from user input allows injection.",
        },
        "most_recent_instance": {
            "location": {"path": "src/db.js", "start_line": 15, "end_line": 20},
            "commit_sha": commit_sha,
        },
    }


def alert_message(raw_alert: dict, event: str = "code_scanning_alert", **overrides) -> dict:
    message = {
        "event": event,
        "action": "created",
        "payload": {
            "alert": raw_alert,
            "repository": {"full_name": "acme/api", "name": "api"},
            "organization": {"login": "acme"},
            "installation": {"id": 77},
        },
        "received_at": "2026-10-18T12:00:00Z",
        "delivery_id": "delivery-1",
        "severity": "high",
        "org": "acme",
        "repo": "acme/api",
    }
    message.update(overrides)
    return message


@pytest.fixture
def tenant_config() -> TenantConfig:
    return TenantConfig(
        org="acme",
        tracker={
            "credential_ref": "jira-acme",
            "base_url": "https://jira.test",
            "default_project": "SEC",
        },
        alerts={
            AlertType.CODE_SCANNING: AlertTypeConfig(severity_threshold="medium"),
            AlertType.SECRET_SCANNING: AlertTypeConfig(severity_threshold="low"),
            AlertType.DEPENDABOT: AlertTypeConfig(severity_threshold="medium"),
        },
    )


@pytest.fixture
def config_store(tenant_config) -> InMemoryConfigStore:
    return InMemoryConfigStore({"acme": tenant_config})


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    return InMemorySecretStore({
        "jira-acme": '{"user_email": "bot@acme.test", "api_token": "tok"}',
        "slack-acme": "https://hooks.slack.test/T000",
    })
