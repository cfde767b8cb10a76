"""
/api/hello: greeting and echo for the authenticated principal.
Authentication is enforced by AccessPolicyMiddleware before these run.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends

from auth_backend.principal import Principal
from auth_backend.security import require_principal

router = APIRouter(prefix="/api/hello")


@router.get("")
def hello(principal: Principal = Depends(require_principal)):
    """Greets the caller by name."""
    return {
        "message": f"Hello, {principal.name}!",
        "email": principal.email,
        "picture": principal.picture,
    }


@router.post("")
def echo(
    body: dict[str, Any] = Body(...),
    principal: Principal = Depends(require_principal),
):
    """Echoes the JSON object back with the caller's email."""
    return {"received": body, "from": principal.email, "status": "ok"}
