"""
Pending login flow (state, nonce, PKCE verifier) kept in the session between
the login trigger and the provider callback. Expires after FLOW_TTL seconds.
"""
import hmac
import time
from dataclasses import asdict, dataclass
from typing import Any, MutableMapping

# Provider codes are short-lived; allow the user 10 minutes at the consent screen
FLOW_TTL = 600

SESSION_KEY = "oauth2_flow"


@dataclass(frozen=True)
class PendingFlow:
    state: str
    nonce: str
    code_verifier: str
    created_at: float

    def expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return (now - self.created_at) > FLOW_TTL


def store_flow(session: MutableMapping[str, Any], *, state: str, nonce: str, code_verifier: str) -> PendingFlow:
    """Save a new pending flow, replacing any earlier unfinished one."""
    flow = PendingFlow(state=state, nonce=nonce, code_verifier=code_verifier, created_at=time.time())
    session[SESSION_KEY] = asdict(flow)
    return flow


def pop_flow(session: MutableMapping[str, Any], state: str | None) -> PendingFlow | None:
    """
    Remove the pending flow from the session and return it if it matches state
    and has not expired. The flow is consumed even when it does not match.
    """
    raw = session.pop(SESSION_KEY, None)
    if not isinstance(raw, dict) or not state:
        return None
    try:
        flow = PendingFlow(
            state=str(raw["state"]),
            nonce=str(raw["nonce"]),
            code_verifier=str(raw["code_verifier"]),
            created_at=float(raw["created_at"]),
        )
    except (KeyError, TypeError, ValueError):
        return None
    if flow.expired() or not hmac.compare_digest(flow.state.encode("utf-8"), state.encode("utf-8")):
        return None
    return flow
