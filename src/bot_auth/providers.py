"""
Provider registry: token and authorization endpoints for each supported IdP.

The set of providers is fixed. Descriptors are immutable and built at import
time; look them up with describe().
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from bot_auth.errors import UnknownProvider


class ProviderId(str, Enum):
    """Supported identity providers. The value is what travels in OAuth state."""

    ACTIVE_DIRECTORY = "activeDirectory"
    FACEBOOK = "facebook"
    GITHUB = "github"


# Provider used when the callback state cannot be resolved.
DEFAULT_PROVIDER = ProviderId.ACTIVE_DIRECTORY


@dataclass(frozen=True)
class ProviderDescriptor:
    provider_id: ProviderId
    token_base_url: str
    token_endpoint_path: str
    authorization_base_url: str
    authorization_endpoint_path: str
    default_scopes: Tuple[str, ...]
    default_button_text: str

    @property
    def token_url(self) -> str:
        return self.token_base_url + self.token_endpoint_path

    @property
    def authorization_url(self) -> str:
        return self.authorization_base_url + self.authorization_endpoint_path


PROVIDERS = {
    ProviderId.FACEBOOK: ProviderDescriptor(
        provider_id=ProviderId.FACEBOOK,
        token_base_url="https://graph.facebook.com",
        token_endpoint_path="/v3.0/oauth/access_token",
        authorization_base_url="https://www.facebook.com",
        authorization_endpoint_path="/v3.0/dialog/oauth",
        default_scopes=("public_profile",),
        default_button_text="Log in with Facebook",
    ),
    ProviderId.ACTIVE_DIRECTORY: ProviderDescriptor(
        provider_id=ProviderId.ACTIVE_DIRECTORY,
        token_base_url="https://login.microsoftonline.com",
        token_endpoint_path="/common/oauth2/v2.0/token",
        authorization_base_url="https://login.microsoftonline.com",
        authorization_endpoint_path="/common/oauth2/v2.0/authorize",
        default_scopes=("User.Read",),
        default_button_text="Log in with Microsoft",
    ),
    ProviderId.GITHUB: ProviderDescriptor(
        provider_id=ProviderId.GITHUB,
        token_base_url="https://github.com",
        token_endpoint_path="/login/oauth/access_token",
        authorization_base_url="https://github.com",
        authorization_endpoint_path="/login/oauth/authorize",
        default_scopes=("user",),
        default_button_text="Log in with GitHub",
    ),
}

# Order of the buttons on the login card.
CARD_ORDER = (ProviderId.FACEBOOK, ProviderId.ACTIVE_DIRECTORY, ProviderId.GITHUB)


def parse_provider_id(value: Union[str, ProviderId, None]) -> ProviderId:
    """Return the ProviderId for a raw identifier; raise UnknownProvider otherwise."""
    if isinstance(value, ProviderId):
        return value
    try:
        return ProviderId(value)
    except ValueError:
        raise UnknownProvider(value) from None


def describe(provider_id: Union[str, ProviderId]) -> ProviderDescriptor:
    """Return the static descriptor for provider_id (enum member or its string value)."""
    return PROVIDERS[parse_provider_id(provider_id)]
