"""Alert, message, and pipeline artifact models."""

from pydantic import BaseModel, ConfigDict, Field

from alertbridge.models.enums import AlertType

UNKNOWN_PATH = "unknown"


class AlertRule(BaseModel):
    """The scanner rule or advisory behind an alert."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    severity: str
    security_severity_level: str  # severity used for policy decisions
    description: str
    full_description: str = ""


class AlertLocation(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = UNKNOWN_PATH
    start_line: int | None = None
    end_line: int | None = None
    commit_sha: str | None = None


class NormalizedAlert(BaseModel):
    """Canonical representation of one scanner finding.

    Built once per inbound event by the normalizer and never mutated.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: AlertType
    number: int = Field(ge=0)
    url: str | None = None
    rule: AlertRule
    location: AlertLocation = Field(default_factory=AlertLocation)
    package_name: str | None = None  # dependabot only
    vulnerable_range: str | None = None  # dependabot only

    @property
    def effective_severity(self) -> str:
        return (self.rule.security_severity_level or self.rule.severity or "medium").lower()


class AlertMessage(BaseModel):
    """Queued webhook delivery for a single alert event."""

    event: str
    action: str
    payload: dict = Field(default_factory=dict)
    received_at: str | None = None
    delivery_id: str | None = None
    severity: str = "medium"
    org: str
    repo: str  # owner/name

    @property
    def raw_alert(self):
        return self.payload.get("alert")

    @property
    def installation_id(self) -> int | None:
        return (self.payload.get("installation") or {}).get("id")


class CommitInfo(BaseModel):
    sha: str
    message: str = ""


class PullRequestInfo(BaseModel):
    number: int
    body: str = ""
    head_sha: str = ""
    html_url: str = ""


class ResolvedStory(BaseModel):
    """A user story key found in PR text, verified against the tracker."""

    model_config = ConfigDict(frozen=True)

    key: str
    verified_exists: bool


class CreatedIssue(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    key: str
    id: str
    self_url: str | None = Field(default=None, alias="self")


class ProcessingResult(BaseModel):
    """Outcome of processing one queue message."""

    action: str
    correlation_id: str
    org: str
    repo: str
    alert_type: str | None = None
    alert_number: int | None = None
    severity: str | None = None
    tracker_key: str | None = None
    user_story: str | None = None
    reason: str | None = None
    duration_ms: int = 0
