"""Freshness classification of authoritative records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from pyflighttrack.exceptions import FlightTrackConfigError
from pyflighttrack.ingestion.normalize import ensure_utc
from pyflighttrack.state.records import AuthoritativeRecord


class FreshnessTier(StrEnum):
    FRESH = "fresh"
    AGING = "aging"
    STALE = "stale"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FreshnessClassifier:
    """Derive a :class:`FreshnessTier` from the age of a record.

    Parameters
    ----------
    fresh_window : timedelta
        Records updated at most this long ago are ``FRESH``.
    aging_window : timedelta
        Records updated at most this long ago (and not fresh) are
        ``AGING``; anything older is ``STALE``.
    """

    fresh_window: timedelta
    aging_window: timedelta

    def __post_init__(self) -> None:
        if self.fresh_window < timedelta(0):
            raise FlightTrackConfigError("fresh_window must not be negative")
        if self.fresh_window >= self.aging_window:
            raise FlightTrackConfigError(
                f"fresh_window ({self.fresh_window}) must be shorter than aging_window ({self.aging_window})"
            )

    @classmethod
    def from_seconds(cls, fresh_window: float, aging_window: float) -> FreshnessClassifier:
        return cls(
            fresh_window=timedelta(seconds=fresh_window),
            aging_window=timedelta(seconds=aging_window),
        )

    def classify(self, record: AuthoritativeRecord | None, now: datetime) -> FreshnessTier:
        if record is None:
            return FreshnessTier.UNKNOWN
        elapsed = ensure_utc(now) - record.last_updated_at
        if elapsed <= self.fresh_window:
            return FreshnessTier.FRESH
        if elapsed <= self.aging_window:
            return FreshnessTier.AGING
        return FreshnessTier.STALE
