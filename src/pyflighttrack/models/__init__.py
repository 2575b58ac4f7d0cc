"""Data models for flight-tracking API responses and tracker configuration."""

from pyflighttrack.models._base import ApiModel, EpochTimestamp, parse_epoch
from pyflighttrack.models.entity import TrackedEntity
from pyflighttrack.models.opensky import OpenSkyStates, OpenSkyStateVector
from pyflighttrack.models.readsb import ReadsbAircraft, ReadsbResponse

__all__ = [
    "ApiModel",
    "EpochTimestamp",
    "OpenSkyStateVector",
    "OpenSkyStates",
    "ReadsbAircraft",
    "ReadsbResponse",
    "TrackedEntity",
    "parse_epoch",
]
