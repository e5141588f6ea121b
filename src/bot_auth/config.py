"""
Configuration for the authentication gate.

A provider is enabled by giving it ProviderCredentials. AuthenticationConfig also
carries the host application's hooks: is_authenticated(context) decides whether a
chat session is already logged in, and on_login_success(context, token) receives
the access token once the user has typed the right magic code.

AuthenticationConfig.from_env() reads the same settings from environment variables
(load .env with python-dotenv before calling it).
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from bot_auth.errors import InvalidProviderConfig
from bot_auth.providers import ProviderId

DEFAULT_CALLBACK_URL = "http://localhost:3978/auth/callback"
DEFAULT_MAGIC_CODE_TTL_SECONDS = 600

# Env var prefix per provider, e.g. GITHUB_CLIENT_ID.
_ENV_PREFIXES = {
    ProviderId.FACEBOOK: "FACEBOOK",
    ProviderId.ACTIVE_DIRECTORY: "ACTIVE_DIRECTORY",
    ProviderId.GITHUB: "GITHUB",
}


@dataclass
class ProviderCredentials:
    client_id: str
    client_secret: str
    scopes: Optional[List[str]] = None
    button_text: Optional[str] = None

    def validate(self, provider_id: ProviderId) -> None:
        """Both halves of the client credential are required."""
        missing = [
            name for name in ("client_id", "client_secret") if not getattr(self, name)
        ]
        if missing:
            raise InvalidProviderConfig(
                f"{provider_id.value}: missing {' and '.join(missing)}"
            )


def _never_authenticated(context) -> bool:
    return False


async def _ignore_login(context, token) -> None:
    return None


@dataclass
class AuthenticationConfig:
    facebook: Optional[ProviderCredentials] = None
    active_directory: Optional[ProviderCredentials] = None
    github: Optional[ProviderCredentials] = None
    callback_url: str = DEFAULT_CALLBACK_URL
    not_authenticated_message: Optional[str] = None
    success_message: str = "Authentication Success"
    failure_message: str = "Authentication Failure"
    magic_code_ttl_seconds: float = DEFAULT_MAGIC_CODE_TTL_SECONDS
    # Append a per-session ticket to the OAuth state so callbacks are bound
    # to the conversation that requested the login card.
    bind_state_to_session: bool = True
    is_authenticated: Callable[[Any], Any] = field(default=_never_authenticated)
    on_login_success: Callable[[Any, Any], Any] = field(default=_ignore_login)

    def credentials_for(self, provider_id: ProviderId) -> Optional[ProviderCredentials]:
        return {
            ProviderId.FACEBOOK: self.facebook,
            ProviderId.ACTIVE_DIRECTORY: self.active_directory,
            ProviderId.GITHUB: self.github,
        }[provider_id]

    def enabled_providers(self) -> Dict[ProviderId, ProviderCredentials]:
        """Providers with credentials, keyed by id."""
        enabled = {}
        for provider_id in ProviderId:
            creds = self.credentials_for(provider_id)
            if creds is not None:
                enabled[provider_id] = creds
        return enabled

    @classmethod
    def from_env(cls, **hooks) -> "AuthenticationConfig":
        """
        Build a config from environment variables.

        A provider is enabled when either <PREFIX>_CLIENT_ID or <PREFIX>_CLIENT_SECRET
        is set; a half-configured provider fails later in build_clients(). hooks are
        passed through (is_authenticated, on_login_success).
        """
        providers = {
            provider_id: _credentials_from_env(prefix)
            for provider_id, prefix in _ENV_PREFIXES.items()
        }
        return cls(
            facebook=providers[ProviderId.FACEBOOK],
            active_directory=providers[ProviderId.ACTIVE_DIRECTORY],
            github=providers[ProviderId.GITHUB],
            callback_url=os.getenv("AUTH_CALLBACK_URL", DEFAULT_CALLBACK_URL),
            not_authenticated_message=os.getenv("NOT_AUTHENTICATED_MESSAGE") or None,
            magic_code_ttl_seconds=_magic_code_ttl_seconds(),
            bind_state_to_session=_env_flag("BIND_STATE_TO_SESSION", True),
            **hooks,
        )


def _credentials_from_env(prefix: str) -> Optional[ProviderCredentials]:
    client_id = os.getenv(f"{prefix}_CLIENT_ID", "")
    client_secret = os.getenv(f"{prefix}_CLIENT_SECRET", "")
    if not client_id and not client_secret:
        return None
    raw_scopes = os.getenv(f"{prefix}_SCOPES", "")
    scopes = [s for s in raw_scopes.replace(",", " ").split() if s] or None
    return ProviderCredentials(
        client_id=client_id,
        client_secret=client_secret,
        scopes=scopes,
        button_text=os.getenv(f"{prefix}_BUTTON_TEXT") or None,
    )


def _magic_code_ttl_seconds() -> float:
    """Seconds a pending login stays claimable. 0 = never expires."""
    return float(os.getenv("MAGIC_CODE_TTL_SECONDS", str(DEFAULT_MAGIC_CODE_TTL_SECONDS)))


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
