"""Source adapters.

An adapter fetches a snapshot for a requested set of entity ids from one
upstream API and normalizes it into :class:`PositionSample` values. The
underlying HTTP endpoints live in :mod:`pyflighttrack._api`.

Adapters never raise for upstream failures: transport, auth and format
errors become ``SourceOutcome.UNAVAILABLE`` with no samples, so that a
failing source looks exactly like a source that reported nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol

from pyflighttrack._api.opensky import fetch_states
from pyflighttrack._api.readsb import fetch_aircraft
from pyflighttrack._constants import OPENSKY_BASE_URL, READSB_BASE_URL, SOURCE_KIND_OPENSKY, SOURCE_KIND_READSB
from pyflighttrack._transport import BasicCredentials, Transport
from pyflighttrack.config import SourceConfig
from pyflighttrack.exceptions import FlightTrackConfigError, FlightTrackSourceError, FlightTrackTransportError
from pyflighttrack.ingestion.normalize import normalize_entity_id
from pyflighttrack.state.events import PositionSample

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SourceOutcome(StrEnum):
    OK = "ok"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class SourceResult:
    """What one adapter call produced.

    ``samples`` is always empty when ``outcome`` is ``UNAVAILABLE``.
    """

    source_name: str
    outcome: SourceOutcome
    samples: tuple[PositionSample, ...] = ()
    error: str | None = None

    @classmethod
    def ok(cls, source_name: str, samples: Iterable[PositionSample]) -> SourceResult:
        return cls(source_name=source_name, outcome=SourceOutcome.OK, samples=tuple(samples))

    @classmethod
    def unavailable(cls, source_name: str, error: str) -> SourceResult:
        return cls(source_name=source_name, outcome=SourceOutcome.UNAVAILABLE, error=error)

    @property
    def is_available(self) -> bool:
        return self.outcome == SourceOutcome.OK


class SourceAdapter(Protocol):
    """Structural interface every position source implements."""

    @property
    def name(self) -> str: ...

    async def fetch(self, entity_ids: frozenset[str]) -> SourceResult: ...


def normalize_requested_ids(entity_ids: Iterable[str]) -> frozenset[str]:
    normalized = (normalize_entity_id(entity_id) for entity_id in entity_ids)
    return frozenset(entity_id for entity_id in normalized if entity_id is not None)


class _HttpSourceAdapter:
    """Shared error handling for HTTP-backed adapters."""

    def __init__(
        self,
        transport: Transport,
        *,
        name: str,
        base_url: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._transport = transport
        self._name = name
        self._base_url = base_url
        self._clock = clock

    @property
    def name(self) -> str:
        return self._name

    async def _fetch_samples(self, requested: frozenset[str]) -> list[PositionSample]:
        raise NotImplementedError

    async def fetch(self, entity_ids: frozenset[str]) -> SourceResult:
        requested = normalize_requested_ids(entity_ids)
        if not requested:
            return SourceResult.ok(self._name, ())

        try:
            samples = await self._fetch_samples(requested)
        except FlightTrackSourceError as exc:
            if isinstance(exc, FlightTrackTransportError) and exc.is_auth_error:
                _logger.warning("Source %s rejected credentials: %s", self._name, exc)
            elif isinstance(exc, FlightTrackTransportError) and exc.is_rate_limited:
                _logger.warning("Source %s is rate limiting requests: %s", self._name, exc)
            else:
                _logger.warning("Source %s unavailable: %s", self._name, exc)
            return SourceResult.unavailable(self._name, str(exc))

        kept = [sample for sample in samples if sample.entity_id in requested]
        if len(kept) != len(samples):
            _logger.debug("Source %s returned %d unrequested rows", self._name, len(samples) - len(kept))
        _logger.debug(
            "Source %s: requested=%d samples=%d positioned=%d",
            self._name,
            len(requested),
            len(kept),
            sum(1 for sample in kept if sample.has_position),
        )
        return SourceResult.ok(self._name, kept)


class ReadsbAdapter(_HttpSourceAdapter):
    """Adapter for readsb v2 APIs (airplanes.live and compatibles)."""

    def __init__(
        self,
        transport: Transport,
        *,
        name: str = "airplanes.live",
        base_url: str = READSB_BASE_URL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(transport, name=name, base_url=base_url, clock=clock)

    async def _fetch_samples(self, requested: frozenset[str]) -> list[PositionSample]:
        response = await fetch_aircraft(self._transport, self._base_url, requested)
        response_time = response.now or self._clock()
        return [
            PositionSample(
                entity_id=aircraft.hex,
                latitude=aircraft.lat,
                longitude=aircraft.lon,
                heading=aircraft.heading,
                source_name=self._name,
                observed_at=aircraft.position_time(response_time) or response_time,
            )
            for aircraft in response.ac
            if aircraft.hex is not None
        ]


class OpenSkyAdapter(_HttpSourceAdapter):
    """Adapter for the OpenSky Network ``/states/all`` API."""

    def __init__(
        self,
        transport: Transport,
        *,
        name: str = "opensky",
        base_url: str = OPENSKY_BASE_URL,
        credentials: BasicCredentials | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(transport, name=name, base_url=base_url, clock=clock)
        self._credentials = credentials

    async def _fetch_samples(self, requested: frozenset[str]) -> list[PositionSample]:
        states = await fetch_states(self._transport, self._base_url, requested, credentials=self._credentials)
        response_time = states.time or self._clock()
        return [
            PositionSample(
                entity_id=state.icao24,
                latitude=state.latitude,
                longitude=state.longitude,
                heading=state.true_track,
                source_name=self._name,
                observed_at=state.position_time(response_time) or response_time,
            )
            for state in states.states
            if state.icao24 is not None
        ]


def build_adapter(
    source: SourceConfig,
    transport: Transport,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> SourceAdapter:
    """Construct the adapter matching ``source.kind``."""
    if source.kind == SOURCE_KIND_READSB:
        return ReadsbAdapter(transport, name=source.name, base_url=source.url, clock=clock)
    if source.kind == SOURCE_KIND_OPENSKY:
        return OpenSkyAdapter(
            transport,
            name=source.name,
            base_url=source.url,
            credentials=source.credentials,
            clock=clock,
        )
    raise FlightTrackConfigError(f"no adapter for source kind {source.kind!r}")
