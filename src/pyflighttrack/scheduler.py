"""Periodic refresh driver.

The scheduler owns the polling loop: every interval it runs one
orchestration cycle, merges the resulting samples into the store in order,
and hands fresh render directives to the presentation callback.

At most one cycle runs at a time. A cycle that takes longer than the
interval pushes the next tick back instead of overlapping it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

from pyflighttrack.exceptions import FlightTrackConfigError
from pyflighttrack.ingestion.orchestrator import CycleResult, FallbackOrchestrator
from pyflighttrack.models.entity import TrackedEntity
from pyflighttrack.render import RenderDirective, build_render_directives
from pyflighttrack.state.freshness import FreshnessClassifier
from pyflighttrack.state.store import ReconciliationStore

_logger = logging.getLogger(__name__)

DirectivesCallback = Callable[[list[RenderDirective]], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class CycleReport:
    """Summary of one completed refresh cycle."""

    number: int
    started_at: datetime
    duration: float
    cycle: CycleResult
    accepted: int
    directives: tuple[RenderDirective, ...]


class RefreshScheduler:
    """Run fetch, merge and directive passes on a fixed interval.

    Parameters
    ----------
    orchestrator : FallbackOrchestrator
        Decides which sources to consult each cycle.
    store : ReconciliationStore
        Receives every sample the cycle produced, in order.
    entities : sequence of TrackedEntity
        The tracked universe; also fixes the order of directives.
    classifier : FreshnessClassifier
        Tiers each record for the directive pass.
    interval : float
        Seconds between the starts of consecutive cycles.
    clock : callable
        Wall clock used to classify freshness.
    monotonic : callable
        Monotonic clock used to measure cycle duration.
    sleep : callable
        Awaitable sleep used between ticks; tests inject a fake.
    on_directives : callable or None
        Presentation callback, invoked once per cycle.
    """

    def __init__(
        self,
        orchestrator: FallbackOrchestrator,
        store: ReconciliationStore,
        entities: Sequence[TrackedEntity],
        classifier: FreshnessClassifier,
        *,
        interval: float,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_directives: DirectivesCallback | None = None,
    ) -> None:
        if interval <= 0:
            raise FlightTrackConfigError("interval must be positive")
        self._orchestrator = orchestrator
        self._store = store
        self._entities = tuple(entities)
        self._entity_ids = frozenset(entity.id for entity in self._entities)
        self._classifier = classifier
        self._interval = interval
        self._clock = clock
        self._monotonic = monotonic
        self._sleep = sleep
        self._on_directives = on_directives
        self._cycle_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._state = SchedulerState.IDLE
        self._cycles_completed = 0
        self._last_report: CycleReport | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def cycles_completed(self) -> int:
        return self._cycles_completed

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def directives(self) -> list[RenderDirective]:
        """Directive pass against the store as it is right now."""
        return build_render_directives(self._entities, self._store, self._classifier, self._clock())

    async def run_once(self) -> CycleReport:
        """Run a single cycle, waiting for any cycle already in flight."""
        async with self._cycle_lock:
            self._state = SchedulerState.RUNNING
            try:
                started = self._monotonic()
                started_at = self._clock()
                cycle = await self._orchestrator.run_cycle(self._entity_ids)
                accepted = self._store.merge_many(cycle.samples)
                directives = self.directives()
                self._cycles_completed += 1
                report = CycleReport(
                    number=self._cycles_completed,
                    started_at=started_at,
                    duration=self._monotonic() - started,
                    cycle=cycle,
                    accepted=accepted,
                    directives=tuple(directives),
                )
                self._last_report = report
            finally:
                self._state = SchedulerState.STOPPED if self._stop_event.is_set() else SchedulerState.IDLE

        _logger.debug(
            "Cycle %d: samples=%d accepted=%d missing=%d directives=%d in %.2fs",
            report.number,
            len(cycle.samples),
            accepted,
            len(cycle.missing),
            len(directives),
            report.duration,
        )
        self._deliver(directives)
        return report

    def _deliver(self, directives: list[RenderDirective]) -> None:
        if self._on_directives is None:
            return
        try:
            self._on_directives(directives)
        except Exception:
            _logger.warning("on_directives callback failed", exc_info=True)

    async def _wait_for_tick(self, delay: float) -> None:
        if delay <= 0:
            await asyncio.sleep(0)
            return
        sleeper = asyncio.ensure_future(self._sleep(delay))
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, stopper):
                if not task.done():
                    task.cancel()

    async def run(self) -> None:
        """Loop until :meth:`stop` is called.

        The first cycle starts immediately. A failing cycle is logged and
        the loop carries on with the next tick.
        """
        _logger.info("Refresh scheduler started: interval=%.1fs entities=%d", self._interval, len(self._entities))
        while not self._stop_event.is_set():
            started = self._monotonic()
            try:
                await self.run_once()
            except Exception:
                _logger.exception("Refresh cycle failed")
            if self._stop_event.is_set():
                break
            elapsed = self._monotonic() - started
            if elapsed >= self._interval:
                _logger.debug("Cycle took %.2fs (interval %.1fs); next tick deferred", elapsed, self._interval)
            await self._wait_for_tick(self._interval - elapsed)
        self._state = SchedulerState.STOPPED
        _logger.info("Refresh scheduler stopped after %d cycles", self._cycles_completed)

    def stop(self) -> None:
        """Stop scheduling new cycles; an in-flight cycle still finishes."""
        self._stop_event.set()
        if self._state != SchedulerState.RUNNING:
            self._state = SchedulerState.STOPPED
