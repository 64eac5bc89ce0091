"""Alert processor: turns one queued alert message into one tracker issue.

Per message, terminal on the first applicable exit:

1. load the tenant policy (tenant disabled -> drop)
2. normalize the alert (malformed -> drop)
3. policy check (type disabled / below threshold -> drop)
4. dedup check (existing issue -> drop)
5. find the associated PR and its commits (best-effort)
6. extract and verify the user story (unverifiable -> no story)
7. resolve the EPIC (if enabled)
8. create the issue and links (write failure -> raise)
9. PR comment and chat notifications (best-effort)

No state is kept between messages.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable

import httpx

from alertbridge.config import settings
from alertbridge.errors.exceptions import (
    AlertDropped,
    DuplicateFound,
    EnrichmentError,
    InvalidAlert,
    PolicyExcluded,
)
from alertbridge.logging_config import bind_message_context, clear_message_context
from alertbridge.models.alert import (
    AlertMessage,
    CommitInfo,
    CreatedIssue,
    NormalizedAlert,
    ProcessingResult,
    PullRequestInfo,
    ResolvedStory,
)
from alertbridge.models.enums import ProcessingAction
from alertbridge.models.policy import PolicyContext
from alertbridge.notifications import AVAILABLE_SINKS, import_sink
from alertbridge.notifications.base import ChatNotification, NotificationSink
from alertbridge.scm.github import GitHubClient
from alertbridge.services.normalizer import normalize_alert
from alertbridge.services.policy import build_policy_context, check_alert_policy
from alertbridge.services.story_extractor import find_user_story
from alertbridge.stores.config_store import ConfigStore
from alertbridge.stores.secret_store import SecretStore
from alertbridge.tracker.client import JiraClient, TrackerCredentials
from alertbridge.tracker.dedup import find_existing
from alertbridge.tracker.epic_resolver import resolve_epic
from alertbridge.tracker.issue_builder import create_security_issue, repo_short_name

logger = logging.getLogger(__name__)

TrackerFactory = Callable[[str, TrackerCredentials], JiraClient]
GitHubFactory = Callable[[AlertMessage], GitHubClient]


def _default_tracker_factory(base_url: str, credentials: TrackerCredentials) -> JiraClient:
    return JiraClient(base_url, credentials)


def _default_github_factory(message: AlertMessage) -> GitHubClient:
    return GitHubClient(settings.github_token)


def _default_notifiers() -> dict[str, NotificationSink]:
    return {name: import_sink(path)() for name, path in AVAILABLE_SINKS.items()}


def build_pr_comment(
    issue_key: str,
    issue_url: str,
    alert: NormalizedAlert,
    story: ResolvedStory | None,
) -> str:
    """Markdown comment announcing the created issue on the PR."""
    alert_type = alert.type.replace("_", " ")
    lines = [
        "## \U0001f512 Security → Jira Issue Created",
        "",
        "| Jira Key | Alert Type | Severity | Link |",
        "|----------|-----------|----------|------|",
        f"| {issue_key} | {alert_type} | {alert.effective_severity} | [View]({issue_url}) |",
        "",
    ]
    if story is not None:
        lines.append(f"Linked to: **{story.key}**")
    else:
        lines.append("⚠️ No EPIC/User Story found; issue created in default project.")
    return "\n".join(lines)


class AlertProcessor:
    """Sequences the pipeline components for one message at a time."""

    def __init__(
        self,
        config_store: ConfigStore,
        secret_store: SecretStore,
        *,
        tracker_factory: TrackerFactory | None = None,
        github_factory: GitHubFactory | None = None,
        notifiers: dict[str, NotificationSink] | None = None,
    ):
        self.config_store = config_store
        self.secret_store = secret_store
        self.tracker_factory = tracker_factory or _default_tracker_factory
        self.github_factory = github_factory or _default_github_factory
        self.notifiers = _default_notifiers() if notifiers is None else notifiers

    async def process(self, message: AlertMessage) -> ProcessingResult:
        """Process one message.

        Dropped alerts (invalid, excluded by policy, duplicate) return a
        result. ``TrackerWriteError`` and configuration errors propagate so
        the transport can redeliver or dead-letter the message.
        """
        start = time.monotonic()
        correlation_id = message.delivery_id or uuid.uuid4().hex
        bind_message_context(correlation_id, message.org, message.repo)
        result = ProcessingResult(
            action=ProcessingAction.CREATED,
            correlation_id=correlation_id,
            org=message.org,
            repo=message.repo,
        )
        logger.info(
            "Processing %s alert (action=%s, installation=%s)",
            message.event,
            message.action,
            message.installation_id,
        )

        try:
            await self._run(message, result)
        except AlertDropped as exc:
            result.action = self._drop_action(exc)
            result.reason = exc.message
            if isinstance(exc, DuplicateFound):
                result.tracker_key = exc.existing_key
            logger.info("Alert not processed (%s): %s", result.action, exc.message)
        except Exception:
            logger.exception("Failed to process %s alert", message.event)
            raise
        finally:
            result.duration_ms = int((time.monotonic() - start) * 1000)
            clear_message_context()

        if result.action == ProcessingAction.CREATED:
            logger.info(
                "Successfully created %s in %dms",
                result.tracker_key,
                result.duration_ms,
                extra={"result": result.model_dump()},
            )
        return result

    @staticmethod
    def _drop_action(exc: AlertDropped) -> ProcessingAction:
        if isinstance(exc, InvalidAlert):
            return ProcessingAction.INVALID
        if isinstance(exc, DuplicateFound):
            return ProcessingAction.DUPLICATE_SKIPPED
        if isinstance(exc, PolicyExcluded) and exc.tenant_disabled:
            return ProcessingAction.DISABLED
        return ProcessingAction.FILTERED

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, message: AlertMessage, result: ProcessingResult) -> None:
        # 1. Policy
        tenant = await self.config_store.get_tenant_config(message.org)
        if not tenant.enabled:
            raise PolicyExcluded(f"Org '{message.org}' is disabled", tenant_disabled=True)
        policy = build_policy_context(tenant, message.repo)

        # 2. Normalize
        alert = normalize_alert(message.event, message.raw_alert)
        severity = alert.effective_severity
        result.alert_type = alert.type
        result.alert_number = alert.number
        result.severity = severity

        # 3. Policy check
        reason = check_alert_policy(policy, alert.type, severity)
        if reason:
            raise PolicyExcluded(reason)

        credentials = await self.secret_store.get_tracker_credentials(policy.tracker.credential_ref)
        async with self.tracker_factory(policy.tracker.base_url, credentials) as tracker:
            # 4. Dedup
            short_name = repo_short_name(message.repo)
            existing = await find_existing(tracker, alert, short_name, policy.tracker.security_label)
            if existing:
                raise DuplicateFound(existing)

            owner = message.repo.partition("/")[0]
            commit_sha = alert.location.commit_sha
            github = self.github_factory(message) if commit_sha else None
            try:
                # 5. Context
                pull_request, commits = await self._resolve_pr_context(github, owner, short_name, commit_sha)
                head_sha = (pull_request.head_sha if pull_request else "") or commit_sha

                # 6-7. Story and EPIC
                story = await self._resolve_story(tracker, policy, pull_request, commits)
                result.user_story = story.key if story else None

                # 8. Create
                issue = await create_security_issue(
                    tracker,
                    alert,
                    story,
                    policy.tracker,
                    message.repo,
                    pull_request=pull_request,
                    commit_sha=head_sha,
                )
                result.tracker_key = issue.key

                # 9. Enrichment
                issue_url = tracker.browse_url(issue.key)
                await self._enrich(github, owner, short_name, policy, alert, story, issue, issue_url, pull_request)
            finally:
                if github is not None:
                    await github.aclose()

    async def _resolve_pr_context(
        self,
        github: GitHubClient | None,
        owner: str,
        repo: str,
        commit_sha: str | None,
    ) -> tuple[PullRequestInfo | None, list[CommitInfo]]:
        if github is None or not commit_sha:
            return None, []

        pull_request = await github.find_pull_request_for_commit(owner, repo, commit_sha)
        if pull_request is None:
            logger.info("No pull request associated with commit %s", commit_sha)
            return None, []

        # Independent reads; issued together.
        details, commits = await asyncio.gather(
            github.get_pull_request(owner, repo, pull_request.number),
            github.list_pull_request_commits(owner, repo, pull_request.number),
        )
        return details or pull_request, commits

    async def _resolve_story(
        self,
        tracker: JiraClient,
        policy: PolicyContext,
        pull_request: PullRequestInfo | None,
        commits: list[CommitInfo],
    ) -> ResolvedStory | None:
        key = find_user_story(pull_request.body if pull_request else "", commits)
        if key is None:
            return None

        try:
            exists = await tracker.issue_exists(key)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not verify user story %s, ignoring it: %s", key, exc)
            return None
        if not exists:
            logger.warning("User story %s not found in Jira, using fallback", key)
            return None

        epic = policy.epic_resolution
        if epic.enabled and epic.validate_type:
            key = await resolve_epic(tracker, key, epic.accepted_types, epic.traverse_hierarchy)
        return ResolvedStory(key=key, verified_exists=True)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _enrich(
        self,
        github: GitHubClient | None,
        owner: str,
        repo: str,
        policy: PolicyContext,
        alert: NormalizedAlert,
        story: ResolvedStory | None,
        issue: CreatedIssue,
        issue_url: str,
        pull_request: PullRequestInfo | None,
    ) -> None:
        pr_comment = policy.notifications.pr_comment
        wants_comment = pr_comment.on_issue_created or (story is None and pr_comment.on_missing_epic)
        if github is not None and pull_request is not None and pr_comment.enabled and wants_comment:
            body = build_pr_comment(issue.key, issue_url, alert, story)
            await self._best_effort(
                "pr_comment",
                self._post_pr_comment(github, owner, repo, pull_request.number, body),
            )

        notification = ChatNotification(
            title=f"Security Alert: {alert.rule.description}",
            message=f"[{issue.key}] {alert.effective_severity} {alert.type} alert in {policy.repo}",
            severity=alert.effective_severity,
            url=issue_url,
        )
        sends = []
        for name in ("slack", "teams"):
            sink_config = getattr(policy.notifications, name)
            sink = self.notifiers.get(name)
            if sink_config.enabled and sink_config.webhook_ref and sink is not None:
                sends.append(self._best_effort(name, self._notify(sink, sink_config.webhook_ref, notification)))
        if sends:
            await asyncio.gather(*sends)

    @staticmethod
    async def _post_pr_comment(github: GitHubClient, owner: str, repo: str, number: int, body: str) -> None:
        try:
            await github.create_issue_comment(owner, repo, number, body)
        except httpx.HTTPError as exc:
            raise EnrichmentError(f"Failed to post PR comment on #{number}: {exc}") from exc

    async def _notify(self, sink: NotificationSink, webhook_ref: str, notification: ChatNotification) -> None:
        url = await self.secret_store.get_webhook_url(webhook_ref)
        if not url:
            raise EnrichmentError(f"No webhook URL for '{webhook_ref}'")
        if not await sink.send(url, notification):
            raise EnrichmentError(f"{sink.sink_type} notification was not delivered")

    @staticmethod
    async def _best_effort(name: str, coro) -> None:
        """Await an enrichment step; failures are logged and never escalate."""
        try:
            await coro
        except EnrichmentError as exc:
            logger.warning("Enrichment step %s failed: %s", name, exc.message)
        except Exception:
            logger.exception("Unexpected error in enrichment step %s", name)
