"""Normalized position samples.

Every source adapter converts its API response into these samples. Only the
state/store layer is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyflighttrack.ingestion.normalize import (
    ensure_utc,
    normalize_entity_id,
    normalize_heading,
    safe_latitude,
    safe_longitude,
)


class PositionSample(BaseModel):
    """One observation of one entity by one source."""

    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(..., description="Tracked entity id (lowercase ICAO hex)")
    latitude: float | None = None
    longitude: float | None = None
    heading: float | None = Field(default=None, description="Degrees in [0, 360); None means not reported")
    source_name: str
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("entity_id", mode="before")
    @classmethod
    def _normalize_entity_id(cls, value: Any) -> str:
        entity_id = normalize_entity_id(value)
        if entity_id is None:
            raise ValueError("entity_id must be non-empty")
        return entity_id

    @field_validator("latitude", mode="before")
    @classmethod
    def _coerce_latitude(cls, value: Any) -> float | None:
        return safe_latitude(value)

    @field_validator("longitude", mode="before")
    @classmethod
    def _coerce_longitude(cls, value: Any) -> float | None:
        return safe_longitude(value)

    @field_validator("heading", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float | None:
        return normalize_heading(value)

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None
