"""
Access policy: which paths require an authenticated session, and the empty
401 returned when they are requested anonymously. No redirect to login.
"""
import logging

from fastapi import Request
from fastapi.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from auth_backend.principal import Principal, load_principal

logger = logging.getLogger(__name__)

# Every method on these paths requires a principal; all other paths are public
PROTECTED_PATHS = frozenset({"/api/hello"})


class AuthenticationRequired(Exception):
    """No authenticated principal on a request that needs one."""


def unauthorized_response() -> Response:
    """401 with no body and no WWW-Authenticate challenge."""
    return Response(status_code=401)


async def authentication_required_handler(request: Request, exc: AuthenticationRequired) -> Response:
    return unauthorized_response()


def is_protected(path: str, protected_paths=PROTECTED_PATHS) -> bool:
    return (path.rstrip("/") or "/") in protected_paths


class AccessPolicyMiddleware:
    """
    Rejects anonymous requests to protected paths before routing, so handlers
    (and request body parsing) never run for them. Must sit inside
    SessionMiddleware, which populates scope["session"].
    """

    def __init__(self, app: ASGIApp, protected_paths=PROTECTED_PATHS) -> None:
        self.app = app
        self.protected_paths = frozenset(protected_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not is_protected(scope["path"], self.protected_paths):
            await self.app(scope, receive, send)
            return
        if load_principal(scope.get("session")) is None:
            logger.debug("Anonymous %s %s rejected", scope.get("method"), scope["path"])
            await unauthorized_response()(scope, receive, send)
            return
        await self.app(scope, receive, send)


def get_principal(request: Request) -> Principal | None:
    """Dependency: principal from the session, or None when anonymous."""
    return load_principal(request.session)


def require_principal(request: Request) -> Principal:
    """Dependency: principal from the session; AuthenticationRequired when anonymous."""
    principal = load_principal(request.session)
    if principal is None:
        raise AuthenticationRequired()
    return principal
