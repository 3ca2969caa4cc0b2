"""Security utilities for credentials in URLs and command lines."""

import re
import urllib.parse


class SecurityError(Exception):
    """Raised when a security violation is detected."""

    pass


_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)(?P<auth>[^/@\s]+)@")
_SECRET_ARG = re.compile(
    r"(?P<key>(?:--?|-D)?[\w.-]*(?:password|token|apikey|api-key|secret)[\w.-]*[=\s])(?P<value>\S+)",
    re.IGNORECASE,
)

MASK = "***"


def sanitize_url_component(component: str) -> str:
    """Sanitize a string for safe use in URL construction."""

    return urllib.parse.quote(component, safe="")


def mask_credentials(text: str) -> str:
    """Hide credentials embedded in URLs or ``--password=...`` style arguments."""
    masked = _URL_CREDENTIALS.sub(lambda m: f"{m.group('scheme')}{MASK}@", text)
    return _SECRET_ARG.sub(lambda m: f"{m.group('key')}{MASK}", masked)


def masked_command(args: list[str]) -> str:
    """Printable form of a command line with secrets masked."""
    return mask_credentials(" ".join(str(a) for a in args))


def url_with_credentials(url: str, user: str, secret: str) -> str:
    """Embed ``user:secret`` into ``url`` (used by resolvers that only take URLs)."""
    parsed = urllib.parse.urlsplit(url)
    if parsed.scheme not in ("http", "https"):
        raise SecurityError(f"Refusing to embed credentials in non-HTTP URL: {mask_credentials(url)}")
    if not user and not secret:
        return url
    auth = sanitize_url_component(user)
    if secret:
        auth += ":" + sanitize_url_component(secret)
    netloc = f"{auth}@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urllib.parse.urlunsplit((parsed.scheme, netloc, parsed.path, parsed.query, parsed.fragment))
