"""
/api/user: login status check. Public; never errors.
"""
from fastapi import APIRouter, Depends

from auth_backend.principal import Principal
from auth_backend.security import get_principal

router = APIRouter()


@router.get("/api/user")
def current_user(principal: Principal | None = Depends(get_principal)):
    if principal is None or not principal.authenticated:
        return {"authenticated": False}
    return {
        "authenticated": principal.authenticated,
        "name": principal.name,
        "email": principal.email,
        "picture": principal.picture,
    }
