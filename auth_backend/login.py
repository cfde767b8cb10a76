"""
OAuth2 login and logout: the authorization-code + PKCE round-trip with the
identity provider, session establishment, and redirects back to the frontend.

GET /oauth2/authorization/{registration_id}  -> 302 provider
GET /login/oauth2/code/{registration_id}     -> 302 frontend / or /?error=login_failed
GET|POST /logout                             -> 302 frontend /
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse

from auth_backend.config import PROVIDER_TIMEOUT
from auth_backend.flow import PendingFlow, pop_flow, store_flow
from auth_backend.oauth_client import (
    ProviderError,
    ProviderRegistration,
    exchange_code,
    fetch_userinfo,
    verify_id_token,
)
from auth_backend.pkce import LoginSecrets, new_login_secrets
from auth_backend.principal import Principal, save_principal
from auth_backend.urls import frontend_redirect

logger = logging.getLogger(__name__)
router = APIRouter()

LOGIN_FAILED = {"error": "login_failed"}


class LoginError(Exception):
    """Callback could not be matched to a pending login."""


def _registration(request: Request, registration_id: str) -> ProviderRegistration:
    registration = request.app.state.registrations.get(registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Unknown registration")
    return registration


def _redirect_uri(request: Request, registration: ProviderRegistration) -> str:
    """Configured callback URL, else this server's own callback route."""
    if registration.redirect_uri:
        return registration.redirect_uri
    return str(request.url_for("oauth2_callback", registration_id=registration.registration_id))


def authorize_url(registration: ProviderRegistration, redirect_uri: str, login: LoginSecrets) -> str:
    """Provider authorization URL for the code flow with an S256 challenge and nonce."""
    params = {
        "response_type": "code",
        "client_id": registration.client_id,
        "redirect_uri": redirect_uri,
        "scope": registration.scope,
        "state": login.state,
        "code_challenge": login.code_challenge,
        "code_challenge_method": "S256",
        "nonce": login.nonce,
    }
    endpoint = registration.authorization_endpoint
    sep = "&" if "?" in endpoint else "?"
    return f"{endpoint}{sep}{urlencode(params)}"


@router.get("/oauth2/authorization/{registration_id}")
def start_login(request: Request, registration_id: str):
    """Store state, nonce and PKCE verifier in the session; redirect to the provider."""
    registration = _registration(request, registration_id)
    login = new_login_secrets()
    store_flow(request.session, state=login.state, nonce=login.nonce, code_verifier=login.code_verifier)
    url = authorize_url(registration, _redirect_uri(request, registration), login)
    return RedirectResponse(url=url, status_code=302)


def _authenticate(
    request: Request,
    registration: ProviderRegistration,
    flow: PendingFlow | None,
    code: str | None,
    error: str | None,
) -> Principal:
    if error:
        raise LoginError(f"provider returned error={error}")
    if flow is None:
        raise LoginError("missing, unknown or expired state")
    if not code:
        raise LoginError("missing code")

    tokens = exchange_code(
        token_endpoint=registration.token_endpoint,
        code=code,
        redirect_uri=_redirect_uri(request, registration),
        client_id=registration.client_id,
        client_secret=registration.client_secret,
        code_verifier=flow.code_verifier,
        timeout=PROVIDER_TIMEOUT,
    )

    claims: dict = {}
    id_token = tokens.get("id_token")
    if id_token and registration.jwks_uri:
        claims.update(
            verify_id_token(
                id_token,
                jwks_uri=registration.jwks_uri,
                issuer=registration.issuer,
                client_id=registration.client_id,
                nonce=flow.nonce,
            )
        )
    if registration.userinfo_endpoint:
        claims.update(
            fetch_userinfo(
                userinfo_endpoint=registration.userinfo_endpoint,
                access_token=tokens["access_token"],
                timeout=PROVIDER_TIMEOUT,
            )
        )

    principal = Principal.from_claims(claims)
    if not principal.name:
        raise ProviderError("no usable identity claims")
    return principal


@router.get("/login/oauth2/code/{registration_id}", name="oauth2_callback")
def oauth2_callback(
    request: Request,
    registration_id: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
):
    """
    Provider redirect target. The pending flow is consumed on every call.
    Any failure sends the browser to the frontend with ?error=login_failed.
    """
    registration = _registration(request, registration_id)
    frontend_url = request.app.state.frontend_url
    flow = pop_flow(request.session, state)

    try:
        principal = _authenticate(request, registration, flow, code, error)
    except (LoginError, ProviderError) as e:
        logger.warning("Login via %s failed: %s", registration_id, e)
        return RedirectResponse(url=frontend_redirect(frontend_url, LOGIN_FAILED), status_code=302)

    # Fresh session on login; nothing from the anonymous session carries over
    request.session.clear()
    save_principal(request.session, principal)
    logger.info("Login via %s succeeded", registration_id)
    return RedirectResponse(url=frontend_redirect(frontend_url), status_code=302)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request):
    """Drop the session; SessionMiddleware then expires the session cookie."""
    request.session.clear()
    return RedirectResponse(url=frontend_redirect(request.app.state.frontend_url), status_code=302)
