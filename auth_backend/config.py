"""
Backend configuration. Read once from the environment at import time.
Provider endpoints default to Google; credentials come from env only.
Set SESSION_SECRET when running more than one worker: the per-process fallback
key makes each worker reject cookies signed by the others.
"""
import os
import secrets

# app.frontend-url: required; normalized once by the app factory
FRONTEND_URL = os.environ.get("APP_FRONTEND_URL", "").strip()

# Path segment used by /oauth2/authorization/{id} and /login/oauth2/code/{id}
REGISTRATION_ID = os.environ.get("OAUTH_REGISTRATION_ID", "google")

CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID", "")
CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET", "")

AUTHORIZATION_ENDPOINT = os.environ.get(
    "OAUTH_AUTHORIZATION_ENDPOINT", "https://accounts.google.com/o/oauth2/v2/auth"
)
TOKEN_ENDPOINT = os.environ.get("OAUTH_TOKEN_ENDPOINT", "https://oauth2.googleapis.com/token")
# Empty string disables the userinfo call (claims come from the ID token only)
USERINFO_ENDPOINT = os.environ.get(
    "OAUTH_USERINFO_ENDPOINT", "https://openidconnect.googleapis.com/v1/userinfo"
).strip()
# Empty string disables ID token verification
JWKS_URI = os.environ.get("OAUTH_JWKS_URI", "https://www.googleapis.com/oauth2/v3/certs").strip()
ISSUER = os.environ.get("OAUTH_ISSUER", "https://accounts.google.com").rstrip("/")

SCOPE = os.environ.get("OAUTH_SCOPE", "openid profile email")

# Callback registered at the provider; derived from the request when unset
REDIRECT_URI = os.environ.get("OAUTH_REDIRECT_URI", "").strip() or None

# Outbound HTTP timeout for token and userinfo calls (seconds)
PROVIDER_TIMEOUT = 10.0

# Session cookie. A generated secret is per process: sessions do not survive a
# restart and are not shared between workers.
SESSION_SECRET_GENERATED = not os.environ.get("SESSION_SECRET", "")
SESSION_SECRET = os.environ.get("SESSION_SECRET", "") or secrets.token_urlsafe(32)
SESSION_COOKIE = os.environ.get("SESSION_COOKIE", "JSESSIONID")
SESSION_MAX_AGE = int(os.environ.get("SESSION_MAX_AGE", "1800"))
SESSION_SAME_SITE = os.environ.get("SESSION_SAME_SITE", "lax")
SESSION_HTTPS_ONLY = os.environ.get("SESSION_HTTPS_ONLY", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()
