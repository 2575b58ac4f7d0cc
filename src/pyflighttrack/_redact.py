"""Credential redaction for request details logged at DEBUG level.

OpenSky sources authenticate with HTTP Basic credentials, which end up in
the ``Authorization`` header (or, if configured that way, in the
``user:password@`` part of a base URL).
"""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit

REDACTED = "<redacted>"

_SENSITIVE_HEADERS: frozenset[str] = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "x-api-key",
    }
)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of *headers* with credential-bearing values replaced."""
    return {name: REDACTED if name.lower() in _SENSITIVE_HEADERS else value for name, value in headers.items()}


def redact_url(url: str) -> str:
    """Strip any ``user:password@`` userinfo from *url*."""
    parts = urlsplit(url)
    if parts.username is None and parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return urlunsplit(parts._replace(netloc=f"{REDACTED}@{host}"))
