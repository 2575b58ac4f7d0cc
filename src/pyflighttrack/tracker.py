"""High-level async tracker tying sources, store and scheduler together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pyflighttrack._transport import HttpTransport, Transport
from pyflighttrack.config import TrackerConfig
from pyflighttrack.exceptions import FlightTrackError
from pyflighttrack.ingestion.orchestrator import FallbackOrchestrator
from pyflighttrack.ingestion.sources import SourceAdapter, build_adapter
from pyflighttrack.render import RenderDirective
from pyflighttrack.scheduler import CycleReport, DirectivesCallback, RefreshScheduler
from pyflighttrack.state.freshness import FreshnessClassifier, FreshnessTier
from pyflighttrack.state.records import AuthoritativeRecord
from pyflighttrack.state.store import ReconciliationStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FlightTracker:
    """Async multi-source position tracker.

    Usage::

        config = TrackerConfig.from_env()
        async with FlightTracker(config, on_directives=print) as tracker:
            await tracker.refresh()
            for directive in tracker.directives():
                ...

    ``run()`` polls until ``stop()`` is called; leaving the context lets an
    in-flight cycle finish before the HTTP session is closed.
    """

    def __init__(
        self,
        config: TrackerConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        adapters: Sequence[SourceAdapter] | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_directives: DirectivesCallback | None = None,
        scheduler_options: Mapping[str, Any] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._adapters = tuple(adapters) if adapters is not None else None
        self._clock = clock
        self._on_directives = on_directives
        self._scheduler_options = dict(scheduler_options or {})
        self._store = ReconciliationStore(clock=clock)
        self._classifier = FreshnessClassifier.from_seconds(config.fresh_window, config.aging_window)
        self._scheduler: RefreshScheduler | None = None
        self._run_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FlightTracker:
        adapters = self._adapters
        if adapters is None:
            if self._transport is None:
                if self._http_session is None:
                    self._http_session = aiohttp.ClientSession()
                self._transport = HttpTransport(self._http_session)
            adapters = tuple(
                build_adapter(source, self._transport, clock=self._clock) for source in self._config.ordered_sources
            )
        orchestrator = FallbackOrchestrator(
            adapters,
            call_timeout=self._config.call_timeout,
            rotation=self._config.rotation,
            precedence=self._config.precedence,
        )
        self._scheduler = RefreshScheduler(
            orchestrator,
            self._store,
            self._config.entities,
            self._classifier,
            interval=self._config.refresh_interval,
            clock=self._clock,
            on_directives=self._on_directives,
            **self._scheduler_options,
        )
        _logger.debug(
            "Tracker ready: sources=%s entities=%d",
            [adapter.name for adapter in adapters],
            len(self._config.entities),
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
        self._scheduler = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_scheduler(self) -> RefreshScheduler:
        if self._scheduler is None:
            raise FlightTrackError("Tracker not initialized. Use 'async with FlightTracker(...) as tracker:'")
        return self._scheduler

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def store(self) -> ReconciliationStore:
        return self._store

    @property
    def classifier(self) -> FreshnessClassifier:
        return self._classifier

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._require_scheduler()

    async def refresh(self) -> CycleReport:
        """Run one fetch-merge-classify cycle now."""
        return await self._require_scheduler().run_once()

    def directives(self) -> list[RenderDirective]:
        """Current render directives, without fetching."""
        return self._require_scheduler().directives()

    def records(self) -> Mapping[str, AuthoritativeRecord]:
        return self._store.current_records()

    def get(self, entity_id: str) -> AuthoritativeRecord | None:
        return self._store.get(entity_id)

    def freshness(self, entity_id: str) -> FreshnessTier:
        return self._classifier.classify(self._store.get(entity_id), self._clock())

    def _require_running_scheduler(self) -> RefreshScheduler:
        scheduler = self._require_scheduler()
        if scheduler.stop_requested:
            raise FlightTrackError("Tracker was stopped; open a new 'async with FlightTracker(...)' to poll again")
        return scheduler

    async def run(self) -> None:
        """Poll until :meth:`stop` is called."""
        await self._require_running_scheduler().run()

    def start(self) -> asyncio.Task[None]:
        """Start polling in a background task."""
        if self._run_task is not None and not self._run_task.done():
            return self._run_task
        scheduler = self._require_running_scheduler()
        self._run_task = asyncio.create_task(scheduler.run(), name="pyflighttrack-refresh")
        return self._run_task

    async def stop(self) -> None:
        """Stop polling and wait for an in-flight cycle to finish."""
        if self._scheduler is not None:
            self._scheduler.stop()
        task = self._run_task
        self._run_task = None
        if task is not None and not task.done():
            await task
