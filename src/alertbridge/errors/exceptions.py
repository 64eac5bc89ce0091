"""Exception taxonomy for alert processing."""


class AlertBridgeError(Exception):
    """Base exception for alertbridge."""

    def __init__(self, code: str, message: str, details=None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class AlertDropped(AlertBridgeError):
    """An alert that is intentionally not turned into an issue. Never retried."""


class InvalidAlert(AlertDropped):
    """Malformed alert payload or unknown alert type."""

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_ALERT", message, details)


class PolicyExcluded(AlertDropped):
    """Tenant disabled, alert type disabled, or severity below threshold."""

    def __init__(self, message: str, details=None, tenant_disabled: bool = False):
        self.tenant_disabled = tenant_disabled
        super().__init__("POLICY_EXCLUDED", message, details)


class DuplicateFound(AlertDropped):
    """A tracker issue already exists for this alert."""

    def __init__(self, existing_key: str):
        self.existing_key = existing_key
        super().__init__("DUPLICATE_FOUND", f"Issue {existing_key} already tracks this alert")


class TrackerWriteError(AlertBridgeError):
    """Issue creation failed. Propagated so the transport can retry or dead-letter."""

    def __init__(self, message: str, status_code: int | None = None, details=None):
        self.status_code = status_code
        super().__init__("TRACKER_WRITE_ERROR", message, details)


class EnrichmentError(AlertBridgeError):
    """A best-effort follow-up call failed (link, remote link, comment, notification)."""

    def __init__(self, message: str, details=None):
        super().__init__("ENRICHMENT_ERROR", message, details)


class ConfigurationError(AlertBridgeError):
    """Missing or malformed tenant configuration or credentials."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFIGURATION_ERROR", message, details)
