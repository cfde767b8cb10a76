"""
Pytest configuration for auth_backend. Environment is set before the app is
imported; provider HTTP calls are patched, never made.
"""
import json
import os
import time
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

os.environ["APP_FRONTEND_URL"] = "app.example.com/"
os.environ["OAUTH_CLIENT_ID"] = "test-client"
os.environ["OAUTH_CLIENT_SECRET"] = "test-secret"
os.environ["OAUTH_ISSUER"] = "https://accounts.example.com"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ.pop("OAUTH_REDIRECT_URI", None)
os.environ.pop("SESSION_COOKIE", None)

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric.rsa import generate_private_key
from fastapi.testclient import TestClient

from auth_backend import oauth_client

FRONTEND = "https://app.example.com"

ADA = {"sub": "1001", "name": "Ada", "email": "ada@x.com", "picture": "http://p"}


class FakeResponse:
    """Stand-in for httpx.Response: status_code, headers, json()."""

    def __init__(self, status_code=200, body=None, content_type="application/json"):
        self.status_code = status_code
        self.headers = {"content-type": content_type} if content_type else {}
        self._body = body
        self.text = json.dumps(body) if body is not None else ""

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


def token_response(**extra):
    body = {"access_token": "at", "token_type": "Bearer", "expires_in": 3599, "scope": "openid profile email"}
    body.update(extra)
    return FakeResponse(200, body)


def authorize_params(response) -> dict:
    """Query parameters of the provider redirect issued by the login trigger."""
    assert response.status_code == 302
    return {k: v[0] for k, v in parse_qs(urlparse(response.headers["location"]).query).items()}


@pytest.fixture(autouse=True)
def _reset_jwks_clients():
    oauth_client._jwks_clients.clear()
    yield
    oauth_client._jwks_clients.clear()


@pytest.fixture
def client():
    from auth_backend.main import app

    return TestClient(app)


@pytest.fixture
def login():
    """
    Drive the full login round-trip on a TestClient with the provider mocked.
    Returns the callback response (a redirect to the frontend).
    """

    def _login(test_client, userinfo=None, token=None):
        start = test_client.get("/oauth2/authorization/google", follow_redirects=False)
        state = authorize_params(start)["state"]
        with patch(
            "auth_backend.oauth_client.httpx.post", return_value=token or token_response()
        ), patch(
            "auth_backend.oauth_client.httpx.get", return_value=FakeResponse(200, userinfo or ADA)
        ):
            return test_client.get(
                "/login/oauth2/code/google",
                params={"code": "auth-code", "state": state},
                follow_redirects=False,
            )

    return _login


@pytest.fixture
def authed_client(client, login):
    r = login(client)
    assert r.headers["location"] == f"{FRONTEND}/"
    return client


# --- ID tokens ---


def _int_to_b64url(value: int) -> str:
    length = (value.bit_length() + 7) // 8
    s = jwt.utils.base64url_encode(value.to_bytes(length, "big"))
    return s.decode("utf-8") if isinstance(s, bytes) else s


@pytest.fixture(scope="session")
def rsa_key():
    return generate_private_key(65537, 2048)


@pytest.fixture
def jwks(rsa_key):
    pub = rsa_key.public_key().public_numbers()
    return {
        "keys": [
            {"kty": "RSA", "kid": "test-key", "alg": "RS256", "use": "sig",
             "n": _int_to_b64url(pub.n), "e": _int_to_b64url(pub.e)}
        ]
    }


@pytest.fixture
def mint_id_token(rsa_key):
    def _mint(nonce, *, aud="test-client", iss="https://accounts.example.com", **claims):
        now = int(time.time())
        payload = {"iss": iss, "aud": aud, "sub": "1001", "nonce": nonce, "iat": now, "exp": now + 3600}
        payload.update(claims)
        return jwt.encode(payload, rsa_key, algorithm="RS256", headers={"kid": "test-key"})

    return _mint


@pytest.fixture
def serve_jwks(jwks):
    """Make PyJWKClient's urlopen return the test JWKS."""

    class MockResponse:
        def read(self):
            return json.dumps(jwks).encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, *args):
            pass

    def fake_urlopen(req, timeout=None, context=None):
        return MockResponse()

    with patch("urllib.request.urlopen", fake_urlopen):
        yield
