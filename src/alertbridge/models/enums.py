"""String enums shared across the alert pipeline."""

from enum import StrEnum


class AlertType(StrEnum):
    CODE_SCANNING = "code_scanning"
    SECRET_SCANNING = "secret_scanning"
    DEPENDABOT = "dependabot"


class Severity(StrEnum):
    NOTE = "note"
    WARNING = "warning"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProcessingAction(StrEnum):
    CREATED = "created"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    FILTERED = "filtered"
    INVALID = "invalid"
    DISABLED = "disabled"


# GitHub webhook event name -> alert type
EVENT_ALERT_TYPES: dict[str, AlertType] = {
    "code_scanning_alert": AlertType.CODE_SCANNING,
    "secret_scanning_alert": AlertType.SECRET_SCANNING,
    "dependabot_alert": AlertType.DEPENDABOT,
}

PROCESSABLE_ACTIONS: frozenset[str] = frozenset({"created", "reopened"})
