"""
Authentication with Azure to manage logic apps.

A LogicAppAuthentication describes how to obtain a credential; calling
authenticate() acquires a token once, so a bad credential fails right away
instead of somewhere inside a polling loop.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional

from azure.core.credentials import AccessToken
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity.aio import ClientSecretCredential
from azure.mgmt.logic.aio import LogicManagementClient

from .exceptions import AuthenticationError, ErrorContext, ValidationError

logger = logging.getLogger(__name__)

SecretProvider = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class AzureEnvironment:
    """Endpoints of one Azure cloud"""
    authority_host: str
    resource_manager_url: str

    @property
    def scope(self) -> str:
        return f"{self.resource_manager_url}/.default"


class AzureCloud(str, Enum):
    GLOBAL = "global"
    CHINA = "china"
    US_GOVERNMENT = "usgovernment"
    GERMAN = "german"

    @property
    def environment(self) -> AzureEnvironment:
        return _ENVIRONMENTS[self]


_ENVIRONMENTS = {
    AzureCloud.GLOBAL: AzureEnvironment("login.microsoftonline.com", "https://management.azure.com"),
    AzureCloud.CHINA: AzureEnvironment("login.chinacloudapi.cn", "https://management.chinacloudapi.cn"),
    AzureCloud.US_GOVERNMENT: AzureEnvironment("login.microsoftonline.us", "https://management.usgovcloudapi.net"),
    AzureCloud.GERMAN: AzureEnvironment("login.microsoftonline.de", "https://management.microsoftazure.de"),
}


class StaticTokenCredential:
    """Async token credential handing out a fixed access token."""

    def __init__(self, access_token: str, lifetime_seconds: int = 3600):
        self._access_token = access_token
        self._lifetime_seconds = lifetime_seconds

    async def get_token(self, *scopes: str, **kwargs) -> AccessToken:
        return AccessToken(self._access_token, int(time.time()) + self._lifetime_seconds)

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _require(field_name: str, value: Optional[str], message: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(field_name, message, value)


class LogicAppAuthentication:
    """
    Authentication mechanism to interact with logic apps running on Azure.

    Use one of the ``using_*`` factory methods to create an instance.
    """

    def __init__(
        self,
        subscription_id: str,
        create_credential: Callable[[], Awaitable[object]],
        cloud: AzureCloud = AzureCloud.GLOBAL,
    ):
        _require("subscription_id", subscription_id, "Requires an ID that identifies the Azure subscription")
        self.subscription_id = subscription_id
        self.cloud = AzureCloud(cloud)
        self._create_credential = create_credential

    @classmethod
    def using_service_principal(
        cls,
        tenant_id: str,
        subscription_id: str,
        client_id: str,
        client_secret: str,
        cloud: AzureCloud = AzureCloud.GLOBAL,
    ) -> "LogicAppAuthentication":
        """Authenticate with a service principal and its client secret."""
        _require("tenant_id", tenant_id, "Requires a tenant ID where the Azure resources are located")
        _require("client_id", client_id, "Requires a client or application ID authorized on the logic apps")
        _require("client_secret", client_secret, "Requires the client or application secret")
        cloud = AzureCloud(cloud)

        async def create_credential():
            return ClientSecretCredential(
                tenant_id, client_id, client_secret,
                authority=cloud.environment.authority_host,
            )

        return cls(subscription_id, create_credential, cloud)

    @classmethod
    def using_service_principal_secret(
        cls,
        tenant_id: str,
        subscription_id: str,
        client_id: str,
        client_secret_key: str,
        secret_provider: SecretProvider,
        cloud: AzureCloud = AzureCloud.GLOBAL,
    ) -> "LogicAppAuthentication":
        """Authenticate with a service principal whose secret is looked up in a secret provider."""
        _require("tenant_id", tenant_id, "Requires a tenant ID where the Azure resources are located")
        _require("client_id", client_id, "Requires a client or application ID authorized on the logic apps")
        _require("client_secret_key", client_secret_key, "Requires the name of the secret holding the client secret")
        if secret_provider is None:
            raise ValidationError("secret_provider", "Requires a secret provider to retrieve the client secret")
        cloud = AzureCloud(cloud)

        async def create_credential():
            client_secret = await secret_provider(client_secret_key)
            return ClientSecretCredential(
                tenant_id, client_id, client_secret,
                authority=cloud.environment.authority_host,
            )

        return cls(subscription_id, create_credential, cloud)

    @classmethod
    def using_access_token(cls, subscription_id: str, access_token: str) -> "LogicAppAuthentication":
        """Authenticate with an already acquired access token."""
        _require("access_token", access_token, "Requires an access token to authenticate with Azure")

        async def create_credential():
            return StaticTokenCredential(access_token)

        return cls(subscription_id, create_credential)

    @classmethod
    def using_access_token_secret(
        cls,
        subscription_id: str,
        access_token_key: str,
        secret_provider: SecretProvider,
    ) -> "LogicAppAuthentication":
        """Authenticate with an access token looked up in a secret provider."""
        _require("access_token_key", access_token_key, "Requires the name of the secret holding the access token")
        if secret_provider is None:
            raise ValidationError("secret_provider", "Requires a secret provider to retrieve the access token")

        async def create_credential():
            access_token = await secret_provider(access_token_key)
            _require("access_token", access_token, "Secret provider returned an empty access token")
            return StaticTokenCredential(access_token)

        return cls(subscription_id, create_credential)

    @asynccontextmanager
    async def authenticate(self) -> AsyncIterator[LogicManagementClient]:
        """
        Create an authenticated logic management client.

        The client and its credential are closed when the block exits.

        Raises:
            AuthenticationError: If no token could be acquired
        """
        environment = self.cloud.environment
        context = ErrorContext(subscription_id=self.subscription_id, url=environment.resource_manager_url)

        try:
            credential = await self._create_credential()
        except (ValidationError, AuthenticationError):
            raise
        except Exception as e:
            raise AuthenticationError(f"Could not create credential: {e}", context, e) from e

        try:
            logger.debug(f"Acquiring management token for subscription '{self.subscription_id}' on {self.cloud.value} cloud")
            try:
                await credential.get_token(environment.scope)
            except ClientAuthenticationError as e:
                raise AuthenticationError(f"Could not acquire management token: {e.message}", context, e) from e
            except AzureError as e:
                raise AuthenticationError(f"Could not reach the token authority: {e.message}", context, e) from e

            client = LogicManagementClient(
                credential,
                self.subscription_id,
                base_url=environment.resource_manager_url,
                credential_scopes=[environment.scope],
            )
            async with client:
                yield client
        finally:
            await credential.close()
