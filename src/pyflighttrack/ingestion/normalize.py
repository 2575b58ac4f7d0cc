"""Normalization helpers.

Centralizes defensive parsing and placeholder handling so that nothing past
the ingestion boundary has to interpret raw API values.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from pyflighttrack._constants import FULL_CIRCLE, MAX_LATITUDE, MAX_LONGITUDE


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def safe_latitude(value: Any) -> float | None:
    """Parse a latitude; anything outside [-90, 90] counts as not reported."""
    parsed = safe_float(value)
    if parsed is None or abs(parsed) > MAX_LATITUDE:
        return None
    return parsed


def safe_longitude(value: Any) -> float | None:
    """Parse a longitude; anything outside [-180, 180] counts as not reported."""
    parsed = safe_float(value)
    if parsed is None or abs(parsed) > MAX_LONGITUDE:
        return None
    return parsed


def normalize_heading(value: Any) -> float | None:
    """Parse a heading into ``[0, 360)``.

    ``0`` is a valid heading and is returned as ``0.0``; only missing or
    unparseable input maps to ``None``.
    """
    parsed = safe_float(value)
    if parsed is None:
        return None
    return parsed % FULL_CIRCLE


def normalize_entity_id(value: Any) -> str | None:
    """Normalize an aircraft identifier (ICAO 24-bit hex address).

    Identifiers are compared case-insensitively; readsb marks non-ICAO
    addresses with a leading ``~`` which is kept so they never collide with
    real ICAO addresses.
    """
    text = safe_str(value)
    if text is None:
        return None
    return text.lower()


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize API timestamps to epoch seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """

    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > 1e11:
        ts /= 1000.0
    return ts


def timestamp_to_datetime(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds or milliseconds) to a UTC datetime."""
    ts = normalize_timestamp_seconds(value)
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=UTC)
    except (OverflowError, OSError, ValueError):
        # Outside the platform's representable range.
        return None


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
