"""State/store layer.

This package is the single source of truth for how position samples from
every source are merged into one authoritative record per tracked entity,
and how stale those records are.
"""

from pyflighttrack.state.events import PositionSample
from pyflighttrack.state.freshness import FreshnessClassifier, FreshnessTier
from pyflighttrack.state.records import AuthoritativeRecord
from pyflighttrack.state.store import ReconciliationStore

__all__ = [
    "AuthoritativeRecord",
    "FreshnessClassifier",
    "FreshnessTier",
    "PositionSample",
    "ReconciliationStore",
]
