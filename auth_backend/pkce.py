"""
Per-login secrets: state (callback binding), nonce (ID token binding) and the
PKCE verifier whose S256 challenge goes to the provider (RFC 7636).
"""
import hashlib
import secrets
from base64 import urlsafe_b64encode
from dataclasses import dataclass

# 32 random bytes -> 43 base64url chars, the RFC 7636 minimum verifier length
ENTROPY_BYTES = 32


def s256_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class LoginSecrets:
    state: str
    nonce: str
    code_verifier: str

    @property
    def code_challenge(self) -> str:
        return s256_challenge(self.code_verifier)


def new_login_secrets() -> LoginSecrets:
    """Fresh, independent random values for one login attempt."""
    return LoginSecrets(
        state=secrets.token_urlsafe(ENTROPY_BYTES),
        nonce=secrets.token_urlsafe(ENTROPY_BYTES),
        code_verifier=secrets.token_urlsafe(ENTROPY_BYTES),
    )
