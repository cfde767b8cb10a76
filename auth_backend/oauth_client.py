"""
Outbound calls to the identity provider: authorization-code exchange,
ID token verification via JWKS, and the userinfo endpoint.
Every failure surfaces as ProviderError; callers decide how to report it.
"""
import logging
from dataclasses import dataclass

import httpx
import jwt
from jwt import PyJWKClient

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Token exchange, ID token or userinfo step of the login failed."""


@dataclass(frozen=True)
class ProviderRegistration:
    """One configured identity provider (client credentials plus endpoints)."""

    registration_id: str
    client_id: str
    client_secret: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str | None
    jwks_uri: str | None
    issuer: str
    scope: str
    redirect_uri: str | None = None


# One PyJWKClient per JWKS URI; each caches the key set
_jwks_clients: dict[str, PyJWKClient] = {}


def _json_body(r: httpx.Response, what: str) -> dict:
    try:
        body = r.json()
    except ValueError as e:
        raise ProviderError(f"{what} response is not JSON") from e
    if not isinstance(body, dict):
        raise ProviderError(f"{what} response is not a JSON object")
    return body


def _error_description(r: httpx.Response) -> str:
    """error_description or error from an OAuth error body, else the HTTP status."""
    fallback = f"HTTP {r.status_code}"
    if not r.headers.get("content-type", "").startswith("application/json"):
        return fallback
    try:
        err = _json_body(r, "error")
    except ProviderError:
        return fallback
    return str(err.get("error_description") or err.get("error") or fallback)


def get_jwks_client(jwks_uri: str) -> PyJWKClient:
    client = _jwks_clients.get(jwks_uri)
    if client is None:
        client = PyJWKClient(uri=jwks_uri, cache_jwk_set=True, lifespan=300)
        _jwks_clients[jwks_uri] = client
    return client


def exchange_code(
    *,
    token_endpoint: str,
    code: str,
    redirect_uri: str,
    client_id: str,
    client_secret: str,
    code_verifier: str,
    timeout: float = 10.0,
) -> dict:
    """POST the authorization code to the token endpoint. Returns the token response."""
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": client_id,
        "code_verifier": code_verifier,
    }
    if client_secret:
        data["client_secret"] = client_secret
    try:
        r = httpx.post(
            token_endpoint,
            data=data,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        raise ProviderError(f"token endpoint unreachable: {e}") from e

    if r.status_code != 200:
        raise ProviderError(f"token exchange rejected: {_error_description(r)}")

    tokens = _json_body(r, "token")
    if not tokens.get("access_token"):
        raise ProviderError("token response has no access_token")
    return tokens


def verify_id_token(
    id_token: str,
    *,
    jwks_uri: str,
    issuer: str,
    client_id: str,
    nonce: str,
) -> dict:
    """Verify signature (RS256 via JWKS), iss, aud, exp and nonce. Returns the claims."""
    try:
        signing_key = get_jwks_client(jwks_uri).get_signing_key_from_jwt(id_token)
        claims = jwt.decode(
            id_token,
            signing_key.key,
            algorithms=["RS256"],
            audience=client_id,
            issuer=issuer,
            options={"verify_exp": True, "verify_aud": True, "verify_iss": True},
        )
    except jwt.PyJWTError as e:
        logger.debug("ID token verification failed: %s", e)
        raise ProviderError(f"invalid ID token: {e}") from e
    if claims.get("nonce") != nonce:
        raise ProviderError("ID token nonce mismatch")
    return claims


def fetch_userinfo(*, userinfo_endpoint: str, access_token: str, timeout: float = 10.0) -> dict:
    """GET the userinfo endpoint with the access token."""
    try:
        r = httpx.get(
            userinfo_endpoint,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        raise ProviderError(f"userinfo endpoint unreachable: {e}") from e
    if r.status_code != 200:
        raise ProviderError(f"userinfo rejected: HTTP {r.status_code}")
    return _json_body(r, "userinfo")
