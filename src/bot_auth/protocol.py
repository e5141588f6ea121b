"""
Protocols for the collaborators the authentication gate talks to.

OAuthClient is implemented by the configured provider clients in bot_auth.clients.
TurnContext matches the subset of botbuilder's TurnContext the gate uses, so a
Bot Framework context (or any object shaped like one) can be passed straight in.
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class OAuthClient(Protocol):
    """An OAuth2 client for one identity provider (e.g. GitHub, Microsoft)."""

    provider_id: Any

    def build_authorization_url(self, redirect_uri: str, scope: Sequence[str], state: str) -> str:
        """Return the URL the user opens to sign in with the provider."""
        ...

    async def exchange_code_for_token(self, code: str, redirect_uri: str) -> dict:
        """Exchange an authorization code for the provider's token response."""
        ...


@runtime_checkable
class TurnContext(Protocol):
    """One inbound chat event plus the ability to reply in the same conversation."""

    activity: Any

    async def send_activity(self, activity_or_text: Any) -> Optional[Any]:
        """Send text or an activity dict back to the conversation."""
        ...
