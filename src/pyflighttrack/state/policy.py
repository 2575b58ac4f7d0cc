"""Deterministic merge policy.

This module contains *no* payload parsing or placeholder filtering. The
ingestion/pydantic boundary is responsible for producing normalized samples.
"""

from __future__ import annotations

from datetime import datetime

from pyflighttrack.state.events import PositionSample
from pyflighttrack.state.records import AuthoritativeRecord


def should_accept_sample(sample: PositionSample) -> bool:
    """A sample without both coordinates carries no positional information."""
    return sample.has_position


def merged_heading(previous: float | None, incoming: float | None) -> float | None:
    # 0.0 is a real heading (due north); only None carries forward.
    if incoming is None:
        return previous
    return incoming


def merge_sample(
    previous: AuthoritativeRecord | None,
    sample: PositionSample,
    now: datetime,
) -> AuthoritativeRecord:
    """Produce the record that results from applying *sample* at *now*.

    The caller must have checked :func:`should_accept_sample`. The newest
    accepted sample always overwrites the position, whichever source it
    came from.
    """
    if sample.latitude is None or sample.longitude is None:
        raise ValueError(f"sample for {sample.entity_id} has no position")

    return AuthoritativeRecord(
        entity_id=sample.entity_id,
        latitude=sample.latitude,
        longitude=sample.longitude,
        heading=merged_heading(previous.heading if previous is not None else None, sample.heading),
        last_source_name=sample.source_name,
        last_updated_at=now,
    )
