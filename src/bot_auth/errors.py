"""
Exceptions raised by the authentication gate.

Only InvalidProviderConfig is meant to reach the host application (at startup).
The others are caught by the callback route or the turn handler and turned into
an HTTP error response or a chat reply.
"""


class AuthenticationError(Exception):
    """Base class for every error raised by bot_auth."""


class UnknownProvider(AuthenticationError):
    """The provider identifier is not one of the supported providers."""

    def __init__(self, provider_id):
        super().__init__(f"Unknown OAuth provider: {provider_id!r}")
        self.provider_id = provider_id


class InvalidProviderConfig(AuthenticationError):
    """A provider was configured without a client id or client secret."""


class TokenExchangeFailure(AuthenticationError):
    """The identity provider rejected the code or could not be reached."""

    def __init__(self, provider_id, detail: str):
        super().__init__(f"Token exchange with {provider_id} failed: {detail}")
        self.provider_id = provider_id
        self.detail = detail


class MagicCodeMismatch(AuthenticationError):
    """The code typed into the chat does not match the pending authentication."""


class MissingPendingAuthentication(AuthenticationError):
    """A code was submitted but no live pending authentication exists."""
