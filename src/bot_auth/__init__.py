"""
Chat bot authentication gate.

Exposes the middleware (AuthenticationMiddleware), its configuration
(AuthenticationConfig, ProviderCredentials), the provider registry (describe,
ProviderId), and the FastAPI router factory for the OAuth callback
(create_auth_router).
"""

from .card import LoginCard, build_login_card
from .clients import ConfiguredOAuthClient, build_clients
from .config import AuthenticationConfig, ProviderCredentials
from .errors import (
    AuthenticationError,
    InvalidProviderConfig,
    MagicCodeMismatch,
    MissingPendingAuthentication,
    TokenExchangeFailure,
    UnknownProvider,
)
from .middleware import AuthenticationMiddleware
from .pending import PendingAuthentication, PendingAuthStore
from .providers import PROVIDERS, ProviderDescriptor, ProviderId, describe
from .router import create_auth_router

__all__ = [
    "AuthenticationConfig",
    "ProviderCredentials",
    "AuthenticationMiddleware",
    "create_auth_router",
    "describe",
    "PROVIDERS",
    "ProviderDescriptor",
    "ProviderId",
    "build_clients",
    "ConfiguredOAuthClient",
    "build_login_card",
    "LoginCard",
    "PendingAuthentication",
    "PendingAuthStore",
    "AuthenticationError",
    "UnknownProvider",
    "InvalidProviderConfig",
    "TokenExchangeFailure",
    "MagicCodeMismatch",
    "MissingPendingAuthentication",
]
