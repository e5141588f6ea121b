"""Tests for the OAuth client set and the token exchange against a fake provider."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from bot_auth import (
    AuthenticationConfig,
    InvalidProviderConfig,
    ProviderCredentials,
    ProviderId,
    TokenExchangeFailure,
    build_clients,
)
from bot_auth.clients import GithubOAuthClient
from bot_auth.protocol import OAuthClient, TurnContext

from .fakes import CALLBACK_URL, GOOD_CODE, FakeTurnContext, creds


class TestBuildClients:
    def test_only_configured_providers(self):
        clients = build_clients(AuthenticationConfig(github=creds("github")))
        assert list(clients) == [ProviderId.GITHUB]
        assert isinstance(clients[ProviderId.GITHUB], GithubOAuthClient)

    def test_no_providers(self):
        assert build_clients(AuthenticationConfig()) == {}

    def test_all_providers(self):
        config = AuthenticationConfig(
            facebook=creds("facebook"),
            active_directory=creds("ad"),
            github=creds("github"),
        )
        assert set(build_clients(config)) == set(ProviderId)

    def test_missing_secret_fails_fast(self):
        config = AuthenticationConfig(
            github=ProviderCredentials(client_id="gh-id", client_secret="")
        )
        with pytest.raises(InvalidProviderConfig, match="github"):
            build_clients(config)

    def test_build_performs_no_network_io(self):
        def explode(request):
            raise AssertionError("network used during construction")

        build_clients(
            AuthenticationConfig(github=creds("github")),
            transport=httpx.MockTransport(explode),
        )


class TestAuthorizationUrl:
    def test_url_parameters(self):
        client = build_clients(AuthenticationConfig(github=creds("github")))[ProviderId.GITHUB]
        url = client.build_authorization_url(CALLBACK_URL, ["user", "repo"], "github")
        parsed = urlparse(url)
        params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == (
            "https://github.com/login/oauth/authorize"
        )
        assert params == {
            "response_type": "code",
            "client_id": "github-id",
            "redirect_uri": CALLBACK_URL,
            "scope": "user repo",
            "state": "github",
        }

    def test_default_and_configured_scopes(self):
        config = AuthenticationConfig(
            facebook=creds("facebook"),
            active_directory=ProviderCredentials("ad-id", "ad-secret", scopes=["openid"]),
        )
        clients = build_clients(config)
        assert clients[ProviderId.FACEBOOK].scopes == ["public_profile"]
        assert clients[ProviderId.ACTIVE_DIRECTORY].scopes == ["openid"]


class TestExchange:
    @pytest.fixture
    def github(self, transport):
        config = AuthenticationConfig(github=creds("github"), callback_url=CALLBACK_URL)
        return build_clients(config, transport=transport)[ProviderId.GITHUB]

    async def test_success(self, github, idp):
        token = await github.exchange_code_for_token(GOOD_CODE, CALLBACK_URL)
        assert token["access_token"] == "token-from-github.com"
        request = idp.requests[-1]
        assert str(request.url) == "https://github.com/login/oauth/access_token"
        assert request.headers["accept"] == "application/json"
        form = idp.last_form
        assert form["grant_type"] == "authorization_code"
        assert form["client_id"] == "github-id"
        assert form["client_secret"] == "github-secret"

    async def test_redirect_uri_mismatch_fails(self, github):
        with pytest.raises(TokenExchangeFailure, match="github"):
            await github.exchange_code_for_token(GOOD_CODE, "http://localhost:3978/other")

    async def test_bad_code_fails(self, github):
        with pytest.raises(TokenExchangeFailure):
            await github.exchange_code_for_token("stale-code", CALLBACK_URL)

    async def test_provider_outage_fails(self, github, idp):
        idp.fail_with_status = 503
        with pytest.raises(TokenExchangeFailure):
            await github.exchange_code_for_token(GOOD_CODE, CALLBACK_URL)

    async def test_html_response_fails(self, github, idp):
        idp.html_body = "<html><body>Down for maintenance</body></html>"
        with pytest.raises(TokenExchangeFailure, match="unreadable response"):
            await github.exchange_code_for_token(GOOD_CODE, CALLBACK_URL)

    async def test_network_error_fails(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = build_clients(
            AuthenticationConfig(github=creds("github")),
            transport=httpx.MockTransport(refuse),
        )[ProviderId.GITHUB]
        with pytest.raises(TokenExchangeFailure, match="ConnectError"):
            await client.exchange_code_for_token(GOOD_CODE, CALLBACK_URL)


def test_clients_and_contexts_satisfy_protocols():
    client = build_clients(AuthenticationConfig(github=creds("github")))[ProviderId.GITHUB]
    assert isinstance(client, OAuthClient)
    assert isinstance(FakeTurnContext(), TurnContext)
