"""Policy engine: severity ordering, threshold checks, and override merging."""

from __future__ import annotations

import logging

from alertbridge.models.enums import AlertType
from alertbridge.models.policy import (
    AlertTypeConfig,
    EpicResolutionConfig,
    NotificationConfig,
    PolicyContext,
    RepoOverride,
    TenantConfig,
    TrackerConfig,
)
from alertbridge.utils.sanitization import SEVERITY_ORDER

logger = logging.getLogger(__name__)

SEVERITY_PRIORITY_MAP: dict[str, str] = {
    "critical": "Highest",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "warning": "Low",
    "note": "Lowest",
    "error": "High",
}


def severity_level(severity: str | None) -> int:
    """Numeric urgency of *severity*; unknown values rank lowest (0)."""
    return SEVERITY_ORDER.get((severity or "").lower(), 0)


def meets_threshold(alert_severity: str | None, threshold: str | None) -> bool:
    """True if *alert_severity* is at least as urgent as *threshold*.

    Unknown strings on either side count as level 0, so an unrecognized
    threshold admits every alert.
    """
    return severity_level(alert_severity) >= severity_level(threshold)


def map_severity_to_priority(severity: str | None) -> str:
    return SEVERITY_PRIORITY_MAP.get((severity or "").lower(), "Medium")


def merge_overrides(tenant: TenantConfig, override: RepoOverride | None) -> PolicyContext:
    """Apply a repository override on top of tenant defaults, field by field.

    A field present in the override replaces the tenant field; nested
    alert-type maps are merged one level deep.
    """
    tracker = tenant.tracker
    alerts = dict(tenant.alerts)
    epic_resolution = tenant.epic_resolution
    notifications = tenant.notifications

    if override is not None:
        if override.tracker:
            tracker = TrackerConfig.model_validate({**tracker.model_dump(), **override.tracker})
        if override.alerts:
            for alert_type, alert_override in override.alerts.items():
                base = alerts.get(alert_type, AlertTypeConfig())
                alerts[alert_type] = AlertTypeConfig.model_validate(
                    {**base.model_dump(), **(alert_override or {})}
                )
        if override.epic_resolution:
            epic_resolution = EpicResolutionConfig.model_validate(
                {**epic_resolution.model_dump(), **override.epic_resolution}
            )
        if override.notifications:
            notifications = NotificationConfig.model_validate(
                {**notifications.model_dump(), **override.notifications}
            )

    return PolicyContext(
        org=tenant.org,
        repo="",
        enabled=tenant.enabled,
        tracker=tracker,
        alerts=alerts,
        epic_resolution=epic_resolution,
        notifications=notifications,
    )


def build_policy_context(tenant: TenantConfig, repo_full_name: str) -> PolicyContext:
    """Resolve the policy for *repo_full_name* from its tenant document."""
    override = tenant.repo_overrides.get(repo_full_name)
    if override is not None:
        logger.debug("Applying repository override for %s", repo_full_name)
    return merge_overrides(tenant, override).model_copy(update={"repo": repo_full_name})


def check_alert_policy(policy: PolicyContext, alert_type: AlertType, severity: str) -> str | None:
    """Return a reason string if the alert is excluded by policy, else None."""
    alert_config = policy.alert_config(alert_type)
    if alert_config is None or not alert_config.enabled:
        return f"alert type {alert_type} disabled"
    if not meets_threshold(severity, alert_config.severity_threshold):
        return f"severity '{severity}' below threshold '{alert_config.severity_threshold}'"
    return None
