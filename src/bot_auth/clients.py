"""
Configured OAuth2 clients, one per enabled provider.

Uses Authlib's httpx integration for the authorization-code exchange. Building the
client set only captures configuration; the network is touched only by
exchange_code_for_token().
"""

import logging
from typing import Dict, Optional, Sequence

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri

from bot_auth.config import AuthenticationConfig, ProviderCredentials
from bot_auth.errors import TokenExchangeFailure
from bot_auth.protocol import OAuthClient
from bot_auth.providers import ProviderDescriptor, ProviderId, describe

logger = logging.getLogger(__name__)

# Timeout (seconds) for the token endpoint call.
TOKEN_REQUEST_TIMEOUT = 15


class ConfiguredOAuthClient(OAuthClient):
    """OAuth2 authorization-code client for a single provider."""

    # Extra headers sent to the token endpoint.
    token_request_headers: Dict[str, str] = {"Accept": "application/json"}
    token_endpoint_auth_method = "client_secret_post"

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        credentials: ProviderCredentials,
        callback_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.descriptor = descriptor
        self.credentials = credentials
        self.callback_url = callback_url
        # Tests inject httpx.MockTransport here to stand in for the provider.
        self._transport = transport

    @property
    def provider_id(self) -> ProviderId:
        return self.descriptor.provider_id

    @property
    def scopes(self) -> list[str]:
        return list(self.credentials.scopes or self.descriptor.default_scopes)

    @property
    def button_text(self) -> str:
        return self.credentials.button_text or self.descriptor.default_button_text

    def build_authorization_url(self, redirect_uri: str, scope: Sequence[str], state: str) -> str:
        return prepare_grant_uri(
            self.descriptor.authorization_url,
            client_id=self.credentials.client_id,
            response_type="code",
            redirect_uri=redirect_uri,
            scope=" ".join(scope),
            state=state,
        )

    def _session(self) -> AsyncOAuth2Client:
        kwargs = {"timeout": TOKEN_REQUEST_TIMEOUT}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return AsyncOAuth2Client(
            client_id=self.credentials.client_id,
            client_secret=self.credentials.client_secret,
            token_endpoint_auth_method=self.token_endpoint_auth_method,
            **kwargs,
        )

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> dict:
        """
        POST the authorization code to the provider's token endpoint.

        redirect_uri must be byte-for-byte the one used in the authorization URL;
        providers reject the exchange otherwise. Raises TokenExchangeFailure.
        """
        try:
            async with self._session() as session:
                token = await session.fetch_token(
                    self.descriptor.token_url,
                    code=code,
                    redirect_uri=redirect_uri,
                    headers=self.token_request_headers,
                )
        except OAuthError as e:
            raise TokenExchangeFailure(self.provider_id.value, str(e)) from e
        except httpx.HTTPError as e:
            raise TokenExchangeFailure(self.provider_id.value, repr(e)) from e
        except ValueError as e:
            # Body was not JSON, e.g. an HTML error page.
            raise TokenExchangeFailure(self.provider_id.value, f"unreadable response: {e}") from e

        if not token.get("access_token"):
            raise TokenExchangeFailure(self.provider_id.value, "no access_token in response")
        logger.debug("Token endpoint for %s returned %s", self.provider_id.value, sorted(token))
        return token


class FacebookOAuthClient(ConfiguredOAuthClient):
    """Facebook Login (Graph API v3.0)."""


class ActiveDirectoryOAuthClient(ConfiguredOAuthClient):
    """Microsoft identity platform v2.0, multi-tenant (/common) endpoints."""


class GithubOAuthClient(ConfiguredOAuthClient):
    """GitHub OAuth Apps. The token endpoint answers form-encoded unless asked for JSON."""

    token_request_headers = {"Accept": "application/json", "User-Agent": "bot-auth-gate"}


CLIENT_CLASSES = {
    ProviderId.FACEBOOK: FacebookOAuthClient,
    ProviderId.ACTIVE_DIRECTORY: ActiveDirectoryOAuthClient,
    ProviderId.GITHUB: GithubOAuthClient,
}


def build_clients(
    config: AuthenticationConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[ProviderId, ConfiguredOAuthClient]:
    """
    Create one client per provider that has credentials in config.

    Raises InvalidProviderConfig if a configured provider lacks its client id or
    secret. Unconfigured providers get no entry.
    """
    clients = {}
    for provider_id, credentials in config.enabled_providers().items():
        credentials.validate(provider_id)
        client_cls = CLIENT_CLASSES[provider_id]
        clients[provider_id] = client_cls(
            describe(provider_id), credentials, config.callback_url, transport=transport
        )
        logger.info("OAuth client configured for %s", provider_id.value)
    return clients
