"""
Configuration for logic app integration tests.

Settings come from a YAML file, overridden by ``LOGICAPP_TESTING_*``
environment variables; a ``.env`` file is loaded into the environment first.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional

import pydantic
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .authentication import AzureCloud, LogicAppAuthentication
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(".logicapp-testing") / "config.yaml"
ENV_PREFIX = "LOGICAPP_TESTING_"

# Environment variable suffix -> (section, field)
_ENV_OVERRIDES = {
    "TENANT_ID": ("azure", "tenant_id"),
    "SUBSCRIPTION_ID": ("azure", "subscription_id"),
    "CLIENT_ID": ("azure", "client_id"),
    "CLIENT_SECRET": ("azure", "client_secret"),
    "ACCESS_TOKEN": ("azure", "access_token"),
    "CLOUD": ("azure", "cloud"),
    "RESOURCE_GROUP": ("logic_apps", "resource_group"),
    "LOGIC_APP_NAME": ("logic_apps", "logic_app_name"),
    "TIMEOUT_SECONDS": ("polling", "timeout_seconds"),
    "POLL_INTERVAL_SECONDS": ("polling", "poll_interval_seconds"),
}


class AzureConfig(BaseModel):
    """Azure subscription and credentials."""

    tenant_id: Optional[str] = None
    subscription_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    cloud: AzureCloud = AzureCloud.GLOBAL


class LogicAppsConfig(BaseModel):
    """Location of the logic app under test."""

    resource_group: Optional[str] = None
    logic_app_name: Optional[str] = None


class PollingConfig(BaseModel):
    """Polling defaults."""

    timeout_seconds: float = Field(default=90.0, gt=0)
    poll_interval_seconds: float = Field(default=5.0, gt=0)

    @property
    def timeout(self) -> timedelta:
        return timedelta(seconds=self.timeout_seconds)

    @property
    def poll_interval(self) -> timedelta:
        return timedelta(seconds=self.poll_interval_seconds)


class LogicAppTestConfig(BaseModel):
    """Complete logic app testing configuration."""

    azure: AzureConfig = Field(default_factory=AzureConfig)
    logic_apps: LogicAppsConfig = Field(default_factory=LogicAppsConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "LogicAppTestConfig":
        """Load configuration from YAML file; a missing file gives the defaults."""
        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug(f"No configuration file at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
            return cls(**data)
        except (yaml.YAMLError, TypeError) as exc:
            raise ValidationError("config_path", f"Invalid YAML configuration: {exc}", str(config_path)) from exc
        except pydantic.ValidationError as exc:
            raise ValidationError("config_path", f"Invalid configuration: {exc}", str(config_path)) from exc

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as fh:
            yaml.dump(
                self.model_dump(mode="json"),
                fh,
                default_flow_style=False,
                sort_keys=False,
            )

    def with_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> "LogicAppTestConfig":
        """Return a copy with every non-empty ``LOGICAPP_TESTING_*`` variable applied."""
        environ = os.environ if environ is None else environ
        data = self.model_dump()

        for suffix, (section, field_name) in _ENV_OVERRIDES.items():
            value = environ.get(f"{ENV_PREFIX}{suffix}")
            if value:
                data[section][field_name] = value

        try:
            return LogicAppTestConfig(**data)
        except pydantic.ValidationError as exc:
            raise ValidationError("environment", f"Invalid {ENV_PREFIX}* override: {exc}") from exc

    def create_authentication(self) -> LogicAppAuthentication:
        """
        Create the authentication the configured credentials describe.

        A service principal wins over an access token when both are configured.
        """
        azure = self.azure
        if azure.client_id or azure.client_secret:
            return LogicAppAuthentication.using_service_principal(
                tenant_id=azure.tenant_id,
                subscription_id=azure.subscription_id,
                client_id=azure.client_id,
                client_secret=azure.client_secret,
                cloud=azure.cloud,
            )
        if azure.access_token:
            return LogicAppAuthentication.using_access_token(azure.subscription_id, azure.access_token)

        raise ValidationError(
            "azure",
            "Requires either service principal credentials (client_id, client_secret) or an access token"
        )


def load_config(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
) -> LogicAppTestConfig:
    """
    Load the configuration the way tests and the CLI see it.

    Variables already present in the environment take precedence over the
    ``.env`` file, which in turn takes precedence over the YAML file.
    """
    env_file = Path(env_file) if env_file is not None else Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")

    config = LogicAppTestConfig.from_file(Path(config_path or DEFAULT_CONFIG_PATH))
    return config.with_env_overrides()
