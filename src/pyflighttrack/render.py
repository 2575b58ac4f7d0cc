"""Render directives handed to the presentation surface.

The presentation surface (a map, a terminal table, ...) owns all visual
decisions. The tracker only tells it where each entity is, which way it is
heading, what to call it, and how fresh that information is.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from pyflighttrack.models.entity import TrackedEntity
from pyflighttrack.state.freshness import FreshnessClassifier, FreshnessTier
from pyflighttrack.state.store import ReconciliationStore


class RenderDirective(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_id: str
    latitude: float
    longitude: float
    heading: float | None = None
    tier: FreshnessTier
    label: str


def build_render_directives(
    entities: Iterable[TrackedEntity],
    store: ReconciliationStore,
    classifier: FreshnessClassifier,
    now: datetime,
) -> list[RenderDirective]:
    """One directive per entity that has a record, in configuration order.

    Entities that were never seen are left out; every entity with a record
    is included whatever its tier.
    """
    records = store.current_records()
    directives: list[RenderDirective] = []
    for entity in entities:
        record = records.get(entity.id)
        if record is None:
            continue
        directives.append(
            RenderDirective(
                entity_id=entity.id,
                latitude=record.latitude,
                longitude=record.longitude,
                heading=record.heading,
                tier=classifier.classify(record, now),
                label=entity.display_label,
            )
        )
    return directives
