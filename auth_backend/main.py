"""
Auth backend: OAuth2 login against an external provider, session cookie,
and the /api/hello and /api/user endpoints.

Middleware, outermost first: CORS -> session -> access policy -> routes.
CSRF protection is off: the API is JSON over a session cookie and the only
cross-origin caller allowed by CORS is the configured frontend. Accepted risk.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from auth_backend import config
from auth_backend.hello import router as hello_router
from auth_backend.login import router as login_router
from auth_backend.oauth_client import ProviderRegistration
from auth_backend.security import AccessPolicyMiddleware, AuthenticationRequired, authentication_required_handler
from auth_backend.urls import normalize_frontend_url
from auth_backend.user import router as user_router

logger = logging.getLogger(__name__)


def default_registration() -> ProviderRegistration:
    """Provider registration from environment configuration."""
    return ProviderRegistration(
        registration_id=config.REGISTRATION_ID,
        client_id=config.CLIENT_ID,
        client_secret=config.CLIENT_SECRET,
        authorization_endpoint=config.AUTHORIZATION_ENDPOINT,
        token_endpoint=config.TOKEN_ENDPOINT,
        userinfo_endpoint=config.USERINFO_ENDPOINT or None,
        jwks_uri=config.JWKS_URI or None,
        issuer=config.ISSUER,
        scope=config.SCOPE,
        redirect_uri=config.REDIRECT_URI,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or non-object request bodies are a plain 400."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(
    frontend_url: str | None = None,
    *,
    registrations: list[ProviderRegistration] | None = None,
    session_secret: str | None = None,
) -> FastAPI:
    """
    Build the application. The frontend URL is resolved once here and shared
    by CORS and every redirect. Raises RuntimeError when it is not configured.
    """
    raw = config.FRONTEND_URL if frontend_url is None else frontend_url
    if not raw or not raw.strip():
        raise RuntimeError("APP_FRONTEND_URL is required")
    resolved = normalize_frontend_url(raw)

    app = FastAPI(title="Auth Backend", version="0.1.0")
    app.state.frontend_url = resolved
    app.state.registrations = {r.registration_id: r for r in (registrations or [default_registration()])}

    app.add_exception_handler(AuthenticationRequired, authentication_required_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # add_middleware wraps: the last one added is the outermost
    if session_secret is None and config.SESSION_SECRET_GENERATED:
        logger.warning("SESSION_SECRET not set; using a per-process key (sessions not shared across workers)")

    app.add_middleware(AccessPolicyMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret or config.SESSION_SECRET,
        session_cookie=config.SESSION_COOKIE,
        max_age=config.SESSION_MAX_AGE,
        same_site=config.SESSION_SAME_SITE,
        https_only=config.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[resolved],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    app.include_router(login_router, tags=["login"])
    app.include_router(hello_router, tags=["hello"])
    app.include_router(user_router, tags=["user"])

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "auth_backend"}

    logger.info("Frontend origin %s", resolved)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL.upper())
    uvicorn.run(
        "auth_backend.main:app",
        host="127.0.0.1",
        port=8080,
        log_level=config.LOG_LEVEL,
    )
