"""pyflighttrack - Async multi-source aircraft position tracker."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyflighttrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pyflighttrack.config import Precedence, RotationPolicy, SourceConfig, TrackerConfig
from pyflighttrack.exceptions import (
    FlightTrackApiError,
    FlightTrackConfigError,
    FlightTrackError,
    FlightTrackSourceError,
    FlightTrackTransportError,
)
from pyflighttrack.ingestion.orchestrator import CycleResult, FallbackOrchestrator
from pyflighttrack.ingestion.sources import (
    OpenSkyAdapter,
    ReadsbAdapter,
    SourceAdapter,
    SourceOutcome,
    SourceResult,
)
from pyflighttrack.models import TrackedEntity
from pyflighttrack.render import RenderDirective
from pyflighttrack.scheduler import CycleReport, RefreshScheduler, SchedulerState
from pyflighttrack.state import (
    AuthoritativeRecord,
    FreshnessClassifier,
    FreshnessTier,
    PositionSample,
    ReconciliationStore,
)
from pyflighttrack.tracker import FlightTracker

__all__ = [
    "__version__",
    "AuthoritativeRecord",
    "CycleReport",
    "CycleResult",
    "FallbackOrchestrator",
    "FlightTrackApiError",
    "FlightTrackConfigError",
    "FlightTrackError",
    "FlightTrackSourceError",
    "FlightTrackTransportError",
    "FlightTracker",
    "FreshnessClassifier",
    "FreshnessTier",
    "OpenSkyAdapter",
    "PositionSample",
    "Precedence",
    "ReadsbAdapter",
    "ReconciliationStore",
    "RefreshScheduler",
    "RenderDirective",
    "RotationPolicy",
    "SchedulerState",
    "SourceAdapter",
    "SourceConfig",
    "SourceOutcome",
    "SourceResult",
    "TrackedEntity",
    "TrackerConfig",
]
