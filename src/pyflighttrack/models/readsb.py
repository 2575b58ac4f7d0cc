"""Models for readsb v2 style responses (airplanes.live, adsb.lol, adsb.fi)."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import Field, field_validator

from pyflighttrack.ingestion.normalize import (
    normalize_entity_id,
    normalize_heading,
    safe_float,
    safe_latitude,
    safe_longitude,
    safe_str,
)
from pyflighttrack.models._base import ApiModel, EpochTimestamp


class ReadsbAircraft(ApiModel):
    """One entry of the ``ac`` array.

    Coordinates are ``None`` when the aircraft is known to the feed but has
    no current position (readsb omits ``lat``/``lon`` in that case).

    Parameters
    ----------
    hex : str or None
        ICAO address, lowercase. Non-ICAO addresses start with ``~``.
    flight : str or None
        Callsign, whitespace stripped.
    lat, lon : float or None
        Position in degrees.
    track : float or None
        Ground track in degrees.
    true_heading, mag_heading : float or None
        Heading fallbacks when no ground track is available.
    seen_pos : float or None
        Seconds since the position was last updated.
    """

    hex: str | None = None
    flight: str | None = None
    lat: float | None = None
    lon: float | None = None
    track: float | None = None
    true_heading: float | None = None
    mag_heading: float | None = None
    seen_pos: float | None = None

    @field_validator("hex", mode="before")
    @classmethod
    def _coerce_hex(cls, value: Any) -> str | None:
        return normalize_entity_id(value)

    @field_validator("flight", mode="before")
    @classmethod
    def _coerce_flight(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("lat", mode="before")
    @classmethod
    def _coerce_lat(cls, value: Any) -> float | None:
        return safe_latitude(value)

    @field_validator("lon", mode="before")
    @classmethod
    def _coerce_lon(cls, value: Any) -> float | None:
        return safe_longitude(value)

    @field_validator("track", "true_heading", "mag_heading", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float | None:
        return normalize_heading(value)

    @field_validator("seen_pos", mode="before")
    @classmethod
    def _coerce_age(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        if parsed is None or parsed < 0:
            return None
        return parsed

    @property
    def heading(self) -> float | None:
        for candidate in (self.track, self.true_heading, self.mag_heading):
            if candidate is not None:
                return candidate
        return None

    def position_time(self, response_time: datetime | None) -> datetime | None:
        """Capture time of the position relative to the response ``now``."""
        if response_time is None:
            return None
        if self.seen_pos is None:
            return response_time
        try:
            return response_time - timedelta(seconds=self.seen_pos)
        except OverflowError:
            return None


class ReadsbResponse(ApiModel):
    """Top-level readsb v2 response."""

    ac: list[ReadsbAircraft] = Field(default_factory=list)
    now: EpochTimestamp = None
    msg: str | None = None

    @field_validator("ac", mode="before")
    @classmethod
    def _drop_malformed_rows(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [row for row in value if isinstance(row, dict)]
