"""Tests for GitHub App installation token handling."""

import time

import pytest
from fakes_http import FakeResponse

from watchbot.connectors import github_app
from watchbot.connectors.github_app import GitHubAppAuth, TokenAuth
from watchbot.core.errors import ConfigError, ConnectorError, MalformedResponseError


@pytest.fixture
def app_auth(tmp_path, monkeypatch):
    key = tmp_path / "app.pem"
    key.write_text("fake key")
    monkeypatch.setattr(github_app.jwt, "encode", lambda payload, key, algorithm: f"jwt-for-{payload['iss']}")
    return GitHubAppAuth("123", str(key), "456", "https://api.github.com/")


def test_installation_token_is_cached(app_auth, monkeypatch):
    calls = []

    def fake_post(url, headers, timeout):
        calls.append((url, headers))
        return FakeResponse(status_code=201, payload={"token": "inst-token", "expires_at": "2999-01-01T00:00:00Z"})

    monkeypatch.setattr(github_app.requests, "post", fake_post)

    assert app_auth.get_auth_headers()["Authorization"] == "token inst-token"
    assert app_auth.get_auth_headers()["Authorization"] == "token inst-token"
    assert len(calls) == 1
    assert calls[0][0] == "https://api.github.com/app/installations/456/access_tokens"
    assert calls[0][1]["Authorization"] == "Bearer jwt-for-123"


def test_token_is_refreshed_near_expiry(app_auth, monkeypatch):
    soon = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time() + 60))
    tokens = iter(["first", "second"])
    monkeypatch.setattr(
        github_app.requests,
        "post",
        lambda url, headers, timeout: FakeResponse(status_code=201, payload={"token": next(tokens), "expires_at": soon}),
    )

    assert app_auth.get_installation_token() == "first"
    assert app_auth.get_installation_token() == "second"


def test_refused_token_raises_connector_error(app_auth, monkeypatch):
    monkeypatch.setattr(
        github_app.requests,
        "post",
        lambda url, headers, timeout: FakeResponse(status_code=404, payload={"message": "Not Found"}),
    )

    with pytest.raises(ConnectorError, match="Not Found"):
        app_auth.get_installation_token()


def test_empty_token_rejected():
    with pytest.raises(ConfigError):
        TokenAuth("")


def test_token_response_without_token_is_malformed(app_auth, monkeypatch):
    monkeypatch.setattr(
        github_app.requests,
        "post",
        lambda url, headers, timeout: FakeResponse(status_code=201, payload={"expires_at": "2999-01-01T00:00:00Z"}),
    )

    with pytest.raises(MalformedResponseError):
        app_auth.get_installation_token()
