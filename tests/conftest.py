"""Shared fixtures: a fake identity provider and the middleware wired to it."""

import httpx
import pytest

from bot_auth import AuthenticationConfig, AuthenticationMiddleware

from .fakes import CALLBACK_URL, FakeIdentityProvider, creds


@pytest.fixture
def idp():
    return FakeIdentityProvider()


@pytest.fixture
def transport(idp):
    return httpx.MockTransport(idp)


@pytest.fixture
def logins():
    """Records on_login_success calls as (conversation id, token) pairs."""
    return []


@pytest.fixture
def authenticated():
    return set()


@pytest.fixture
def make_config(logins, authenticated):
    def _make(**overrides):
        async def on_login_success(context, token):
            logins.append((context.activity.conversation.id, token))

        kwargs = dict(
            facebook=creds("facebook"),
            github=creds("github"),
            callback_url=CALLBACK_URL,
            is_authenticated=lambda context: context.activity.conversation.id in authenticated,
            on_login_success=on_login_success,
        )
        kwargs.update(overrides)
        return AuthenticationConfig(**kwargs)

    return _make


@pytest.fixture
def middleware(make_config, transport):
    return AuthenticationMiddleware(make_config(), transport=transport)
