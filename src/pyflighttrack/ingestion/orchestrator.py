"""Fallback orchestration across position sources.

Each refresh cycle asks the first source for every tracked entity, then asks
each following source only for the entities that are still without a
position. Sources are called one after another because each request set
depends on the previous answers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from pyflighttrack.config import Precedence, RotationPolicy
from pyflighttrack.exceptions import FlightTrackConfigError
from pyflighttrack.ingestion.sources import SourceAdapter, SourceResult, normalize_requested_ids
from pyflighttrack.state.events import PositionSample

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceCall:
    """One adapter call made during a cycle."""

    requested: frozenset[str]
    result: SourceResult


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Aggregated output of one orchestration cycle.

    ``samples`` are in processing order: every sample of an earlier source
    precedes every sample of a later one.
    """

    requested: frozenset[str]
    samples: tuple[PositionSample, ...] = ()
    calls: tuple[SourceCall, ...] = ()
    missing: frozenset[str] = field(default_factory=frozenset)

    @property
    def all_unavailable(self) -> bool:
        return bool(self.calls) and not any(call.result.is_available for call in self.calls)


class FallbackOrchestrator:
    """Decide which sources to consult each cycle, and for which entities.

    Parameters
    ----------
    adapters : sequence of SourceAdapter
        Sources in priority order (highest priority first).
    call_timeout : float or None
        Seconds allowed per adapter call. A timed-out call is treated as
        the source being unavailable.
    rotation : RotationPolicy
        ``ROUND_ROBIN`` rotates which source starts each cycle.
    precedence : Precedence
        ``PRIMARY`` drops samples for entities already positioned earlier in
        the same cycle; ``LAST_WRITE`` passes them through to the store.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        *,
        call_timeout: float | None = None,
        rotation: RotationPolicy = RotationPolicy.FIXED,
        precedence: Precedence = Precedence.LAST_WRITE,
    ) -> None:
        if not adapters:
            raise FlightTrackConfigError("at least one source adapter is required")
        self._adapters = tuple(adapters)
        self._call_timeout = call_timeout
        self._rotation = rotation
        self._precedence = precedence
        self._cycles = 0

    @property
    def adapters(self) -> tuple[SourceAdapter, ...]:
        return self._adapters

    def source_order(self) -> tuple[SourceAdapter, ...]:
        """Order in which the next cycle will consult sources."""
        if self._rotation == RotationPolicy.ROUND_ROBIN:
            offset = self._cycles % len(self._adapters)
            return self._adapters[offset:] + self._adapters[:offset]
        return self._adapters

    async def _call(self, adapter: SourceAdapter, requested: frozenset[str]) -> SourceResult:
        try:
            async with asyncio.timeout(self._call_timeout):
                return await adapter.fetch(requested)
        except TimeoutError:
            _logger.warning("Source %s timed out after %.1fs", adapter.name, self._call_timeout or 0.0)
            return SourceResult.unavailable(adapter.name, "timeout")
        except Exception as exc:
            # Nothing an adapter does may abort the cycle.
            _logger.warning("Source %s failed unexpectedly", adapter.name, exc_info=True)
            return SourceResult.unavailable(adapter.name, f"{type(exc).__name__}: {exc}")

    async def run_cycle(self, entity_ids: Iterable[str]) -> CycleResult:
        """Consult sources in order until every entity has a position."""
        requested = normalize_requested_ids(entity_ids)
        order = self.source_order()
        self._cycles += 1

        pending = set(requested)
        positioned: set[str] = set()
        samples: list[PositionSample] = []
        calls: list[SourceCall] = []

        for adapter in order:
            if not pending:
                break
            ask = frozenset(pending)
            result = await self._call(adapter, ask)
            calls.append(SourceCall(requested=ask, result=result))

            for sample in result.samples:
                if sample.entity_id not in requested:
                    continue
                if self._precedence == Precedence.PRIMARY and sample.entity_id in positioned:
                    _logger.debug(
                        "Dropping %s sample for %s: already positioned this cycle",
                        sample.source_name,
                        sample.entity_id,
                    )
                    continue
                samples.append(sample)
                if sample.has_position:
                    positioned.add(sample.entity_id)
                    pending.discard(sample.entity_id)

        missing = frozenset(pending)
        if missing:
            _logger.debug("No position this cycle for: %s", ", ".join(sorted(missing)))
        cycle = CycleResult(requested=requested, samples=tuple(samples), calls=tuple(calls), missing=missing)
        if cycle.all_unavailable:
            _logger.warning("All %d consulted sources were unavailable this cycle", len(calls))
        return cycle
