"""
Authenticated principal: profile attributes taken from the provider once, at
callback time, and kept in the session until logout or expiry.
"""
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping

SESSION_KEY = "principal"


@dataclass(frozen=True)
class Principal:
    name: str
    email: str | None
    picture: str | None
    authenticated: bool = True

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """
        Build from merged ID token / userinfo claims.
        name falls back to preferred_username, email, then sub.
        """
        name = (
            claims.get("name")
            or claims.get("preferred_username")
            or claims.get("email")
            or claims.get("sub")
            or ""
        )
        return cls(
            name=str(name),
            email=_optional_str(claims.get("email")),
            picture=_optional_str(claims.get("picture")),
        )

    def to_session(self) -> dict[str, Any]:
        return {"name": self.name, "email": self.email, "picture": self.picture}


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def load_principal(session: Mapping[str, Any] | None) -> Principal | None:
    """Principal stored in the session, or None for an anonymous session."""
    if not session:
        return None
    raw = session.get(SESSION_KEY)
    if not isinstance(raw, dict) or not raw.get("name"):
        return None
    return Principal(
        name=str(raw["name"]),
        email=_optional_str(raw.get("email")),
        picture=_optional_str(raw.get("picture")),
    )


def save_principal(session: MutableMapping[str, Any], principal: Principal) -> None:
    session[SESSION_KEY] = principal.to_session()
