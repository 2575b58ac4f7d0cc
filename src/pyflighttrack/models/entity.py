"""Tracked entity model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyflighttrack.ingestion.normalize import normalize_entity_id, safe_str


class TrackedEntity(BaseModel):
    """An aircraft under tracking.

    Parameters
    ----------
    id : str
        Stable identifier, usually the 24-bit ICAO address in hex
        (e.g. ``"407fb9"``). Normalized to lowercase.
    label : str or None
        Display name such as the registration (e.g. ``"G-PJCD"``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="ICAO 24-bit address or other opaque id")
    label: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> str:
        entity_id = normalize_entity_id(value)
        if entity_id is None:
            raise ValueError("entity id must be non-empty")
        return entity_id

    @field_validator("label", mode="before")
    @classmethod
    def _normalize_label(cls, value: object) -> str | None:
        return safe_str(value)

    @property
    def display_label(self) -> str:
        return self.label or self.id

    @classmethod
    def parse(cls, text: str) -> TrackedEntity:
        """Parse ``"id=label"`` or a bare ``"id"``."""
        entity_id, _, label = text.partition("=")
        return cls(id=entity_id, label=label or None)
