"""Tenant configuration stores. Unknown tenants resolve to defaults."""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from alertbridge.errors.exceptions import ConfigurationError
from alertbridge.models.policy import TenantConfig

logger = logging.getLogger(__name__)

_ORG_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def default_tenant_config(org: str, installation_id: int = 0) -> TenantConfig:
    return TenantConfig(
        org=org,
        installation_id=installation_id,
        tracker={"credential_ref": f"jira-{org}"},
    )


class ConfigStore(ABC):
    @abstractmethod
    async def get_tenant_config(self, org: str) -> TenantConfig:
        """Return the tenant document, or defaults if none exists."""
        ...


class InMemoryConfigStore(ConfigStore):
    def __init__(self, configs: dict[str, TenantConfig] | None = None):
        self._configs = dict(configs or {})

    def put(self, config: TenantConfig) -> None:
        self._configs[config.org] = config

    async def get_tenant_config(self, org: str) -> TenantConfig:
        config = self._configs.get(org)
        if config is None:
            logger.warning("No config found for org '%s', returning defaults", org)
            return default_tenant_config(org)
        return config.model_copy(deep=True)


class FileConfigStore(ConfigStore):
    """Reads ``<config_dir>/<org>.json`` on every call; nothing is cached."""

    def __init__(self, config_dir: str | Path):
        self.config_dir = Path(config_dir)

    async def get_tenant_config(self, org: str) -> TenantConfig:
        if not _ORG_NAME_RE.match(org or ""):
            raise ConfigurationError(f"Invalid org name '{org}'")
        path = self.config_dir / f"{org}.json"
        if not path.is_file():
            logger.warning("No config found for org '%s', returning defaults", org)
            return default_tenant_config(org)
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return TenantConfig.model_validate_json(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid tenant config for '{org}'", details=str(exc)) from exc
