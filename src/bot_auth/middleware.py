"""
Authentication middleware for a chat bot.

Every inbound turn goes through on_turn(). Unauthenticated users get a login card;
after signing in with a provider the browser shows them a magic code, which they
type into the chat. The next message from that session is checked against the
pending authentication and, on a match, on_login_success(context, token) is called.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import httpx

from bot_auth.card import LoginCard, build_login_card
from bot_auth.clients import ConfiguredOAuthClient, build_clients
from bot_auth.config import AuthenticationConfig
from bot_auth.errors import (
    MagicCodeMismatch,
    MissingPendingAuthentication,
    TokenExchangeFailure,
    UnknownProvider,
)
from bot_auth.pending import PendingAuthentication, PendingAuthStore
from bot_auth.protocol import TurnContext
from bot_auth.providers import DEFAULT_PROVIDER, ProviderId, parse_provider_id
from bot_auth.session import (
    compose_state,
    is_message,
    message_text,
    session_key,
    split_state,
)

logger = logging.getLogger(__name__)

CALLBACK_SUCCESS_TEMPLATE = "Please enter the code into the bot: {magic_code}"


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class CallbackResult:
    """Outcome of an OAuth redirect, as returned to the browser."""

    status_code: int
    body: str
    pending: Optional[PendingAuthentication] = None


class AuthenticationMiddleware:
    """Gates chat turns behind an OAuth2 login bridged by a magic code."""

    def __init__(
        self,
        config: AuthenticationConfig,
        store: Optional[PendingAuthStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.clients: Dict[ProviderId, ConfiguredOAuthClient] = build_clients(
            config, transport=transport
        )
        self.store = store or PendingAuthStore(ttl_seconds=config.magic_code_ttl_seconds)

    # -- chat side ------------------------------------------------------------

    async def on_turn(
        self, context: TurnContext, next_handler: Callable[[], Awaitable[None]]
    ) -> None:
        if not is_message(context):
            await next_handler()
            return

        if await _maybe_await(self.config.is_authenticated(context)):
            await next_handler()
            return

        key = session_key(context)
        if not self.store.code_sent(key):
            if self.config.not_authenticated_message:
                await context.send_activity(self.config.not_authenticated_message)
            await context.send_activity(self.create_login_card(key).to_activity())
            logger.info("Login card sent to session %s", key)
        else:
            await self.handle_magic_code(context)

    def create_login_card(self, key: str) -> LoginCard:
        """Build the card and mark the session as waiting for a code."""
        ticket = self.store.mark_code_sent(key)
        if not self.config.bind_state_to_session:
            ticket = None
        return build_login_card(
            self.clients,
            self.config.callback_url,
            state_for=lambda provider_id: compose_state(provider_id.value, ticket),
        )

    async def handle_magic_code(self, context: TurnContext) -> bool:
        """Check the submitted code; returns True if the login succeeded."""
        key = session_key(context)
        try:
            pending = self.store.claim(key, message_text(context))
        except MagicCodeMismatch:
            logger.warning("Wrong magic code from session %s; pending login discarded", key)
            await context.send_activity(self.config.failure_message)
            return False
        except MissingPendingAuthentication:
            logger.warning("Magic code from session %s but no login is pending", key)
            await context.send_activity(self.config.failure_message)
            return False

        try:
            await _maybe_await(self.config.on_login_success(context, pending.access_token))
        except Exception:
            logger.exception("on_login_success failed for session %s", key)
            await context.send_activity(self.config.failure_message)
            return False
        logger.info("Session %s authenticated via %s", key, pending.provider_id.value)
        await context.send_activity(self.config.success_message)
        return True

    # -- browser side ---------------------------------------------------------

    def resolve_client(self, provider_part: str) -> ConfiguredOAuthClient:
        """
        Client for the provider named in the callback state.

        An empty or unrecognized provider falls back to the Active Directory
        client. Raises UnknownProvider if the resolved provider is not configured.
        """
        try:
            provider_id = parse_provider_id(provider_part)
        except UnknownProvider:
            logger.warning(
                "Unrecognized OAuth state provider %r; falling back to %s",
                provider_part,
                DEFAULT_PROVIDER.value,
            )
            provider_id = DEFAULT_PROVIDER

        client = self.clients.get(provider_id)
        if client is None:
            raise UnknownProvider(provider_id.value)
        return client

    async def handle_callback(self, code: Optional[str], state: Optional[str]) -> CallbackResult:
        """Redeem the authorization code and mint a magic code for the chat."""
        if not code:
            logger.warning("OAuth callback without an authorization code")
            return CallbackResult(400, "Missing authorization code")

        provider_part, ticket = split_state(state)
        try:
            client = self.resolve_client(provider_part)
        except UnknownProvider as e:
            logger.error("OAuth callback cannot be routed: %s", e)
            return CallbackResult(400, "Unknown identity provider")

        try:
            token = await client.exchange_code_for_token(code, self.config.callback_url)
        except TokenExchangeFailure as e:
            logger.error("Access token error: %s", e)
            return CallbackResult(502, "Could not complete sign-in with the identity provider")

        key = self.store.session_for_ticket(ticket)
        if ticket and key is None:
            logger.warning("OAuth state ticket is unknown or expired; storing unbound login")
        pending = self.store.store(token, client.provider_id, session_key=key)
        logger.info(
            "Magic code issued for %s login (session %s)",
            client.provider_id.value,
            key or "unbound",
        )
        return CallbackResult(
            200, CALLBACK_SUCCESS_TEMPLATE.format(magic_code=pending.magic_code), pending
        )
