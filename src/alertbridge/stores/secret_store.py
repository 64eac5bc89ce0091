"""Secret stores for tracker credentials and notification webhook URLs.

Secrets are addressed by reference names stored in tenant configuration;
the configuration itself never holds secret values.
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod

from alertbridge.errors.exceptions import ConfigurationError
from alertbridge.tracker.client import TrackerCredentials

logger = logging.getLogger(__name__)


def _parse_credentials(ref: str, raw: str | None) -> TrackerCredentials:
    if not raw:
        raise ConfigurationError(f"Secret '{ref}' has no value")
    try:
        return TrackerCredentials.model_validate_json(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Secret '{ref}' is missing required fields (user_email, api_token)"
        ) from exc


class SecretStore(ABC):
    @abstractmethod
    async def get_secret(self, ref: str) -> str | None:
        ...

    async def get_tracker_credentials(self, ref: str) -> TrackerCredentials:
        return _parse_credentials(ref, await self.get_secret(ref))

    async def get_webhook_url(self, ref: str) -> str:
        """Webhook URL for *ref*, or ``""`` if it cannot be resolved."""
        if not ref:
            return ""
        value = await self.get_secret(ref)
        if not value:
            logger.warning("Could not retrieve webhook secret '%s'", ref)
            return ""
        return value


class InMemorySecretStore(SecretStore):
    def __init__(self, secrets: dict[str, str] | None = None):
        self._secrets = dict(secrets or {})

    async def get_secret(self, ref: str) -> str | None:
        return self._secrets.get(ref)


class EnvSecretStore(SecretStore):
    """Resolves ``jira-acme`` to the ``ALERTBRIDGE_SECRET_JIRA_ACME`` env var."""

    def __init__(self, prefix: str = "ALERTBRIDGE_SECRET_"):
        self.prefix = prefix

    def env_var_name(self, ref: str) -> str:
        return self.prefix + re.sub(r"[^A-Z0-9]", "_", ref.upper())

    async def get_secret(self, ref: str) -> str | None:
        return os.environ.get(self.env_var_name(ref))
