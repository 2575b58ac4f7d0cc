"""Models for the OpenSky Network ``/states/all`` response."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import Field, field_validator

from pyflighttrack.ingestion.normalize import (
    normalize_entity_id,
    normalize_heading,
    safe_latitude,
    safe_longitude,
    safe_str,
)
from pyflighttrack.models._base import ApiModel, EpochTimestamp


class OpenSkyStateVector(ApiModel):
    """A single state vector.

    OpenSky encodes state vectors as positional arrays; :meth:`from_row`
    maps the documented indices onto named fields.
    """

    _ROW_FIELDS: ClassVar[tuple[tuple[int, str], ...]] = (
        (0, "icao24"),
        (1, "callsign"),
        (2, "origin_country"),
        (3, "time_position"),
        (4, "last_contact"),
        (5, "longitude"),
        (6, "latitude"),
        (8, "on_ground"),
        (10, "true_track"),
    )

    icao24: str | None = None
    callsign: str | None = None
    origin_country: str | None = None
    time_position: EpochTimestamp = None
    last_contact: EpochTimestamp = None
    longitude: float | None = None
    latitude: float | None = None
    on_ground: bool | None = None
    true_track: float | None = None

    @classmethod
    def from_row(cls, row: list[Any]) -> OpenSkyStateVector:
        values: dict[str, Any] = {}
        for index, name in cls._ROW_FIELDS:
            if index < len(row):
                values[name] = row[index]
        return cls.model_validate({**values, "raw": {"state": list(row)}})

    @field_validator("icao24", mode="before")
    @classmethod
    def _coerce_icao24(cls, value: Any) -> str | None:
        return normalize_entity_id(value)

    @field_validator("callsign", "origin_country", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("latitude", mode="before")
    @classmethod
    def _coerce_lat(cls, value: Any) -> float | None:
        return safe_latitude(value)

    @field_validator("longitude", mode="before")
    @classmethod
    def _coerce_lon(cls, value: Any) -> float | None:
        return safe_longitude(value)

    @field_validator("true_track", mode="before")
    @classmethod
    def _coerce_track(cls, value: Any) -> float | None:
        return normalize_heading(value)

    def position_time(self, response_time: datetime | None) -> datetime | None:
        return self.time_position or self.last_contact or response_time


class OpenSkyStates(ApiModel):
    """Top-level ``/states/all`` response.

    ``states`` is ``null`` in the payload when no aircraft matched, which
    is represented here as an empty list.
    """

    time: EpochTimestamp = None
    states: list[OpenSkyStateVector] = Field(default_factory=list)

    @field_validator("states", mode="before")
    @classmethod
    def _parse_rows(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [OpenSkyStateVector.from_row(row) for row in value if isinstance(row, list)]
