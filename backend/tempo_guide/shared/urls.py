"""
URL helpers for OAuth redirects.
"""

from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for a URL (empty string if not absolute)."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}".lower()


def is_allowed_origin(url: str, allowed: list[str]) -> bool:
    """Check that url shares its origin with one of the allowed origins."""
    origin = origin_of(url)
    if not origin:
        return False
    return origin in {origin_of(a) for a in allowed if a}


def with_query(url: str, **params: str) -> str:
    """
    Append query parameters to a URL, keeping any existing ones.

    Examples:
        with_query("https://app.test", strava="connected")
        -> "https://app.test?strava=connected"
        with_query("https://app.test/x?tab=1", error="state_expired")
        -> "https://app.test/x?tab=1&error=state_expired"
    """
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))
