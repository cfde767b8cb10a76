"""
Frontend URL resolution. The resolved origin is the single CORS origin and the
base of every post-login / post-logout redirect.
"""
from urllib.parse import urlencode


def normalize_frontend_url(raw: str) -> str:
    """Prefix https:// when no scheme is given; strip trailing slashes. Idempotent."""
    url = raw.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url.rstrip("/")


def frontend_redirect(frontend_url: str, query: dict[str, str] | None = None) -> str:
    """Redirect target at the frontend root, e.g. https://app.example/?error=login_failed."""
    url = f"{frontend_url}/"
    if query:
        url = f"{url}?{urlencode(query)}"
    return url
