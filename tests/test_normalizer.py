"""Tests for the alert normalizer."""

import pytest

from alertbridge.errors.exceptions import InvalidAlert
from alertbridge.models.alert import UNKNOWN_PATH
from alertbridge.models.enums import AlertType
from alertbridge.services.normalizer import normalize_alert

from conftest import code_scanning_alert


@pytest.fixture
def secret_alert() -> dict:
    return {
        "number": 7,
        "html_url": "https://github.com/acme/api/security/secret-scanning/7",
        "secret_type": "github_personal_access_token",
        "secret_type_display_name": "GitHub PAT",
    }


@pytest.fixture
def dependabot_alert() -> dict:
    return {
        "number": 99,
        "html_url": "https://github.com/acme/api/security/dependabot/99",
        "security_advisory": {
            "cve_id": "CVE-2025-12345",
            "ghsa_id": "GHSA-xxxx-yyyy-zzzz",
            "severity": "critical",
            "summary": "RCE in example-lib",
            "description": "Full description here",
        },
        "dependency": {
            "package": {"name": "example-lib"},
            "manifest_path": "package.json",
        },
        "vulnerable_version_range": "< 2.0.0",
    }


class TestCodeScanning:
    def test_normalizes_valid_alert(self):
        alert = normalize_alert("code_scanning_alert", code_scanning_alert())
        assert alert.type is AlertType.CODE_SCANNING
        assert alert.number == 42
        assert alert.url == "https://github.com/acme/api/security/code-scanning/42"
        assert alert.rule.id == "js/sql-injection"
        assert alert.rule.security_severity_level == "high"
        assert alert.location.path == "src/db.js"
        assert alert.location.start_line == 15
        assert alert.location.end_line == 20
        assert alert.location.commit_sha == "abc123"
        assert alert.effective_severity == "high"

    def test_falls_back_to_tool_severity(self):
        raw = code_scanning_alert()
        raw["rule"]["security_severity_level"] = None
        raw["rule"]["severity"] = "warning"
        alert = normalize_alert("code_scanning_alert", raw)
        assert alert.rule.security_severity_level == "warning"
        assert alert.effective_severity == "warning"

    def test_missing_location_uses_sentinel(self):
        raw = {"number": 3, "rule": {"id": "r"}}
        alert = normalize_alert("code_scanning_alert", raw)
        assert alert.location.path == UNKNOWN_PATH
        assert alert.location.start_line is None
        assert alert.location.commit_sha is None
        assert alert.rule.description == "Code Scanning Alert"
        assert alert.url is None

    def test_strings_are_sanitized(self):
        raw = code_scanning_alert()
        raw["rule"]["description"] = "  SQL\x00 Injection  "
        raw["most_recent_instance"]["location"]["path"] = "p" * 900
        alert = normalize_alert("code_scanning_alert", raw)
        assert alert.rule.description == "SQL Injection"
        assert len(alert.location.path) == 500

    def test_accepts_bare_alert_type_name(self):
        alert = normalize_alert("code_scanning", code_scanning_alert())
        assert alert.type is AlertType.CODE_SCANNING

    def test_deterministic(self):
        raw = code_scanning_alert()
        first = normalize_alert("code_scanning_alert", raw)
        second = normalize_alert("code_scanning_alert", raw)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()


class TestSecretScanning:
    def test_always_critical(self, secret_alert):
        alert = normalize_alert("secret_scanning_alert", secret_alert)
        assert alert.type is AlertType.SECRET_SCANNING
        assert alert.rule.severity == "critical"
        assert alert.effective_severity == "critical"
        assert alert.rule.id == "github_personal_access_token"
        assert "GitHub PAT" in alert.rule.description
        assert alert.location.path == UNKNOWN_PATH

    def test_display_name_falls_back_to_type(self, secret_alert):
        del secret_alert["secret_type_display_name"]
        alert = normalize_alert("secret_scanning_alert", secret_alert)
        assert alert.rule.description == "Secret Detected: github_personal_access_token"


class TestDependabot:
    def test_normalizes_valid_alert(self, dependabot_alert):
        alert = normalize_alert("dependabot_alert", dependabot_alert)
        assert alert.type is AlertType.DEPENDABOT
        assert alert.rule.id == "CVE-2025-12345"
        assert alert.effective_severity == "critical"
        assert alert.location.path == "package.json"
        assert alert.package_name == "example-lib"
        assert alert.vulnerable_range == "< 2.0.0"

    def test_rule_id_fallbacks(self, dependabot_alert):
        del dependabot_alert["security_advisory"]["cve_id"]
        assert normalize_alert("dependabot_alert", dependabot_alert).rule.id == "GHSA-xxxx-yyyy-zzzz"
        del dependabot_alert["security_advisory"]["ghsa_id"]
        assert normalize_alert("dependabot_alert", dependabot_alert).rule.id == "dependabot-99"


class TestInvalidInput:
    def test_missing_number(self):
        with pytest.raises(InvalidAlert):
            normalize_alert("code_scanning_alert", {"html_url": "https://x.test"})

    @pytest.mark.parametrize("number", [-1, 1.5, float("inf"), 2**60, "x", None])
    def test_bad_number(self, number):
        with pytest.raises(InvalidAlert):
            normalize_alert("code_scanning_alert", {"number": number})

    def test_unknown_event_type(self):
        with pytest.raises(InvalidAlert) as exc_info:
            normalize_alert("unknown_event", {"number": 1})
        assert exc_info.value.code == "INVALID_ALERT"

    @pytest.mark.parametrize("payload", [None, "alert", 5, ["number", 1]])
    def test_non_object_payload(self, payload):
        with pytest.raises(InvalidAlert):
            normalize_alert("code_scanning_alert", payload)
