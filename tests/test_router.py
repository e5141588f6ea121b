"""Tests for the /auth/callback route."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bot_auth import create_auth_router

from .fakes import GOOD_CODE


@pytest.fixture
def client(middleware):
    app = FastAPI()
    app.include_router(create_auth_router(middleware))
    return TestClient(app)


def test_callback_success(client, middleware, monkeypatch):
    monkeypatch.setattr("bot_auth.pending.generate_magic_code", lambda: "a1b2c3d4")
    resp = client.get("/auth/callback", params={"code": GOOD_CODE, "state": "github"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "Please enter the code into the bot: a1b2c3d4"
    assert len(middleware.store) == 1


def test_parameters_parsed_by_name(client, middleware):
    # Order does not matter and extra parameters are ignored.
    resp = client.get(f"/auth/callback?session_state=x&state=facebook&code={GOOD_CODE}")
    assert resp.status_code == 200


def test_url_encoded_state(client, idp):
    resp = client.get(f"/auth/callback?code={GOOD_CODE}&state=github%3Aunknown-ticket")
    assert resp.status_code == 200
    assert idp.requests[-1].url.host == "github.com"


def test_missing_code(client):
    resp = client.get("/auth/callback", params={"state": "github"})
    assert resp.status_code == 400


def test_token_exchange_failure(client, middleware):
    resp = client.get("/auth/callback", params={"code": "bad", "state": "github"})
    assert resp.status_code == 502
    assert len(middleware.store) == 0


def test_unroutable_state(client):
    # No Active Directory client is configured for the fallback.
    resp = client.get("/auth/callback", params={"code": GOOD_CODE, "state": "myspace"})
    assert resp.status_code == 400


def test_non_json_token_response(client, middleware, idp):
    idp.html_body = "<html><body>Down for maintenance</body></html>"
    resp = client.get("/auth/callback", params={"code": GOOD_CODE, "state": "github"})
    assert resp.status_code == 502
    assert len(middleware.store) == 0
