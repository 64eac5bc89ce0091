"""Tenant policy documents and the merged per-repository policy context."""

from pydantic import BaseModel, ConfigDict, Field

from alertbridge.models.enums import AlertType


class AlertTypeConfig(BaseModel):
    enabled: bool = True
    severity_threshold: str = "low"


class TrackerConfig(BaseModel):
    """Jira connection and issue defaults for a tenant."""

    credential_ref: str = ""
    base_url: str = ""
    default_project: str = "SEC"
    default_issue_type: str = "Task"
    link_type: str = "Relates"
    security_label: str = "github-security-alert"
    fallback_label: str = "missing-user-story"


class EpicResolutionConfig(BaseModel):
    enabled: bool = True
    validate_type: bool = True
    traverse_hierarchy: bool = True
    accepted_types: list[str] = Field(default_factory=lambda: ["Epic", "Story"])


class PRCommentConfig(BaseModel):
    enabled: bool = True
    on_missing_epic: bool = True
    on_issue_created: bool = True


class WebhookSinkConfig(BaseModel):
    enabled: bool = False
    webhook_ref: str = ""


class NotificationConfig(BaseModel):
    pr_comment: PRCommentConfig = Field(default_factory=PRCommentConfig)
    slack: WebhookSinkConfig = Field(default_factory=WebhookSinkConfig)
    teams: WebhookSinkConfig = Field(default_factory=WebhookSinkConfig)


def _default_alerts() -> dict[AlertType, AlertTypeConfig]:
    return {
        AlertType.CODE_SCANNING: AlertTypeConfig(severity_threshold="low"),
        AlertType.SECRET_SCANNING: AlertTypeConfig(severity_threshold="low"),
        AlertType.DEPENDABOT: AlertTypeConfig(severity_threshold="medium"),
    }


class RepoOverride(BaseModel):
    """Partial per-repository override. Absent fields fall through to the tenant."""

    alerts: dict[AlertType, dict] | None = None
    tracker: dict | None = None
    epic_resolution: dict | None = None
    notifications: dict | None = None


class TenantConfig(BaseModel):
    """Full tenant (organization) policy document."""

    org: str
    enabled: bool = True
    installation_id: int = 0
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    alerts: dict[AlertType, AlertTypeConfig] = Field(default_factory=_default_alerts)
    epic_resolution: EpicResolutionConfig = Field(default_factory=EpicResolutionConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    repo_overrides: dict[str, RepoOverride] = Field(default_factory=dict)


class PolicyContext(BaseModel):
    """Resolved configuration snapshot for one repository, rebuilt per message."""

    model_config = ConfigDict(frozen=True)

    org: str
    repo: str
    enabled: bool
    tracker: TrackerConfig
    alerts: dict[AlertType, AlertTypeConfig]
    epic_resolution: EpicResolutionConfig
    notifications: NotificationConfig

    def alert_config(self, alert_type: AlertType) -> AlertTypeConfig | None:
        return self.alerts.get(alert_type)
