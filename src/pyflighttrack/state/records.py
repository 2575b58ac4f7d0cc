"""Authoritative per-entity records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AuthoritativeRecord(BaseModel):
    """The tracker's current best-known state for one entity.

    Records are immutable; the store replaces the whole record on every
    accepted sample, so readers never observe a partially written one.
    Coordinates are never ``None``: an entity that has never been seen has
    no record at all.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_id: str
    latitude: float
    longitude: float
    heading: float | None = None
    last_source_name: str
    last_updated_at: datetime = Field(..., description="Store clock time of the last accepted sample")
