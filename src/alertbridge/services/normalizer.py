"""Alert normalizer: maps raw scanner payloads onto ``NormalizedAlert``.

Pure conversion with no I/O. Each scanner type has fixed field defaults:

* code scanning prefers ``rule.security_severity_level`` and falls back to
  the tool severity;
* secret scanning is always ``critical`` (GitHub does not grade secrets);
* dependabot takes its severity from the linked security advisory.
"""

from __future__ import annotations

import logging
from typing import Any

from alertbridge.errors.exceptions import InvalidAlert
from alertbridge.models.alert import UNKNOWN_PATH, AlertLocation, AlertRule, NormalizedAlert
from alertbridge.models.enums import EVENT_ALERT_TYPES, AlertType
from alertbridge.utils.sanitization import (
    sanitize_number,
    sanitize_severity,
    sanitize_string,
    sanitize_url,
)

logger = logging.getLogger(__name__)

_MAX_PATH_LENGTH = 500
_MAX_ID_LENGTH = 255
_MAX_FULL_DESCRIPTION_LENGTH = 5000


def resolve_alert_type(event_name: str) -> AlertType | None:
    """Accept either a webhook event name or a bare alert type value."""
    if event_name in EVENT_ALERT_TYPES:
        return EVENT_ALERT_TYPES[event_name]
    try:
        return AlertType(event_name)
    except ValueError:
        return None


def normalize_alert(event_name: str, raw_alert: Any) -> NormalizedAlert:
    """Normalize a raw webhook alert into a ``NormalizedAlert``.

    Raises:
        InvalidAlert: payload is not a dict, the alert number is missing or
            invalid, or the event name is not a known alert type.
    """
    if not isinstance(raw_alert, dict):
        raise InvalidAlert("Invalid alert payload: expected an object")

    number = sanitize_number(raw_alert.get("number"))
    if number is None:
        raise InvalidAlert(
            "Invalid alert payload: missing or invalid alert number",
            details={"number": repr(raw_alert.get("number"))},
        )

    alert_type = resolve_alert_type(event_name)
    if alert_type is None:
        raise InvalidAlert(f"Unknown alert event type: {event_name}")

    url = sanitize_url(raw_alert.get("html_url")) or None

    if alert_type is AlertType.CODE_SCANNING:
        return _normalize_code_scanning(raw_alert, number, url)
    if alert_type is AlertType.SECRET_SCANNING:
        return _normalize_secret_scanning(raw_alert, number, url)
    return _normalize_dependabot(raw_alert, number, url)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _normalize_code_scanning(raw: dict, number: int, url: str | None) -> NormalizedAlert:
    rule = _as_dict(raw.get("rule"))
    instance = _as_dict(raw.get("most_recent_instance"))
    location = _as_dict(instance.get("location"))

    description = sanitize_string(rule.get("description")) or "Code Scanning Alert"
    full_description = sanitize_string(
        rule.get("full_description") or rule.get("description") or "",
        _MAX_FULL_DESCRIPTION_LENGTH,
    )

    return NormalizedAlert(
        type=AlertType.CODE_SCANNING,
        number=number,
        url=url,
        rule=AlertRule(
            id=sanitize_string(rule.get("id"), _MAX_ID_LENGTH),
            severity=sanitize_severity(rule.get("severity")),
            security_severity_level=sanitize_severity(
                rule.get("security_severity_level") or rule.get("severity")
            ),
            description=description,
            full_description=full_description,
        ),
        location=AlertLocation(
            path=sanitize_string(location.get("path"), _MAX_PATH_LENGTH) or UNKNOWN_PATH,
            start_line=sanitize_number(location.get("start_line")),
            end_line=sanitize_number(location.get("end_line")),
            commit_sha=sanitize_string(instance.get("commit_sha"), 40) or None,
        ),
    )


def _normalize_secret_scanning(raw: dict, number: int, url: str | None) -> NormalizedAlert:
    secret_type = sanitize_string(raw.get("secret_type"), _MAX_ID_LENGTH) or "secret"
    display_name = sanitize_string(raw.get("secret_type_display_name"), _MAX_ID_LENGTH) or secret_type

    return NormalizedAlert(
        type=AlertType.SECRET_SCANNING,
        number=number,
        url=url,
        rule=AlertRule(
            id=secret_type,
            severity="critical",
            security_severity_level="critical",
            description=f"Secret Detected: {display_name}",
            full_description=f"A {display_name} secret was detected in the repository.",
        ),
        location=AlertLocation(path=UNKNOWN_PATH),
    )


def _normalize_dependabot(raw: dict, number: int, url: str | None) -> NormalizedAlert:
    advisory = _as_dict(raw.get("security_advisory"))
    dependency = _as_dict(raw.get("dependency"))
    package = _as_dict(dependency.get("package"))
    vulnerability = _as_dict(raw.get("security_vulnerability"))

    rule_id = (
        sanitize_string(advisory.get("cve_id"), _MAX_ID_LENGTH)
        or sanitize_string(advisory.get("ghsa_id"), _MAX_ID_LENGTH)
        or f"dependabot-{number}"
    )
    severity = sanitize_severity(advisory.get("severity"))

    return NormalizedAlert(
        type=AlertType.DEPENDABOT,
        number=number,
        url=url,
        rule=AlertRule(
            id=rule_id,
            severity=severity,
            security_severity_level=severity,
            description=sanitize_string(advisory.get("summary")) or "Dependabot Alert",
            full_description=sanitize_string(
                advisory.get("description") or "", _MAX_FULL_DESCRIPTION_LENGTH
            ),
        ),
        location=AlertLocation(
            path=sanitize_string(dependency.get("manifest_path"), _MAX_PATH_LENGTH) or UNKNOWN_PATH,
        ),
        package_name=sanitize_string(package.get("name"), _MAX_ID_LENGTH) or None,
        vulnerable_range=sanitize_string(
            raw.get("vulnerable_version_range") or vulnerability.get("vulnerable_version_range"),
            _MAX_ID_LENGTH,
        )
        or None,
    )
