from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from pyflighttrack.config import Precedence, RotationPolicy
from pyflighttrack.exceptions import FlightTrackConfigError
from pyflighttrack.ingestion.orchestrator import FallbackOrchestrator
from pyflighttrack.ingestion.sources import SourceOutcome, SourceResult
from pyflighttrack.state.events import PositionSample
from pyflighttrack.state.store import ReconciliationStore

Position = tuple[float | None, float | None, float | None]


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


@dataclass
class FakeAdapter:
    name: str
    positions: dict[str, Position] = field(default_factory=dict)
    unavailable: bool = False
    error: Exception | None = None
    delay: float = 0.0
    ignore_request: bool = False
    calls: list[frozenset[str]] = field(default_factory=list)

    async def fetch(self, entity_ids: frozenset[str]) -> SourceResult:
        self.calls.append(frozenset(entity_ids))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.unavailable:
            return SourceResult.unavailable(self.name, "down")
        return SourceResult.ok(
            self.name,
            [
                PositionSample(
                    entity_id=entity_id,
                    latitude=lat,
                    longitude=lon,
                    heading=heading,
                    source_name=self.name,
                    observed_at=_dt(),
                )
                for entity_id, (lat, lon, heading) in self.positions.items()
                if self.ignore_request or entity_id in entity_ids
            ],
        )


@pytest.mark.asyncio
async def test_fallback_only_asked_for_entities_primary_omitted() -> None:
    primary = FakeAdapter("primary", {"a": (10.0, 20.0, 90.0)})
    fallback = FakeAdapter("fallback", {"a": (0.0, 0.0, 0.0), "b": (30.0, 40.0, None)})
    orchestrator = FallbackOrchestrator([primary, fallback])

    cycle = await orchestrator.run_cycle({"a", "b"})

    assert primary.calls == [frozenset({"a", "b"})]
    assert fallback.calls == [frozenset({"b"})]
    assert [(s.entity_id, s.source_name) for s in cycle.samples] == [("a", "primary"), ("b", "fallback")]
    assert cycle.missing == frozenset()


@pytest.mark.asyncio
async def test_fallback_not_called_when_primary_satisfies_everything() -> None:
    primary = FakeAdapter("primary", {"a": (1.0, 1.0, None), "b": (2.0, 2.0, None)})
    fallback = FakeAdapter("fallback")
    orchestrator = FallbackOrchestrator([primary, fallback])

    await orchestrator.run_cycle({"a", "b"})

    assert fallback.calls == []


@pytest.mark.asyncio
async def test_sample_without_position_does_not_satisfy_entity() -> None:
    primary = FakeAdapter("primary", {"a": (None, None, 90.0)})
    fallback = FakeAdapter("fallback", {"a": (5.0, 6.0, None)})
    orchestrator = FallbackOrchestrator([primary, fallback])

    cycle = await orchestrator.run_cycle({"a"})

    assert fallback.calls == [frozenset({"a"})]
    assert [s.source_name for s in cycle.samples] == ["primary", "fallback"]


@pytest.mark.asyncio
async def test_unavailable_primary_falls_back_for_full_set() -> None:
    primary = FakeAdapter("primary", unavailable=True)
    fallback = FakeAdapter("fallback", {"a": (1.0, 1.0, None)})
    orchestrator = FallbackOrchestrator([primary, fallback])

    cycle = await orchestrator.run_cycle({"a", "b"})

    assert fallback.calls == [frozenset({"a", "b"})]
    assert cycle.missing == frozenset({"b"})
    assert [call.result.outcome for call in cycle.calls] == [SourceOutcome.UNAVAILABLE, SourceOutcome.OK]
    assert not cycle.all_unavailable


@pytest.mark.asyncio
async def test_sources_consulted_in_order_until_satisfied() -> None:
    first = FakeAdapter("first", {"a": (1.0, 1.0, None)})
    second = FakeAdapter("second", {"b": (2.0, 2.0, None)})
    third = FakeAdapter("third", {"c": (3.0, 3.0, None)})
    fourth = FakeAdapter("fourth")
    orchestrator = FallbackOrchestrator([first, second, third, fourth])

    cycle = await orchestrator.run_cycle({"a", "b", "c"})

    assert second.calls == [frozenset({"b", "c"})]
    assert third.calls == [frozenset({"c"})]
    assert fourth.calls == []
    assert cycle.missing == frozenset()


@pytest.mark.asyncio
async def test_all_sources_unavailable_leaves_records_untouched() -> None:
    store = ReconciliationStore(clock=_dt)
    store.merge(
        PositionSample(entity_id="a", latitude=1.0, longitude=1.0, heading=45.0, source_name="primary")
    )
    before = dict(store.current_records())

    orchestrator = FallbackOrchestrator(
        [FakeAdapter("primary", unavailable=True), FakeAdapter("fallback", unavailable=True)]
    )
    cycle = await orchestrator.run_cycle({"a", "b"})
    store.merge_many(cycle.samples)

    assert cycle.samples == ()
    assert cycle.all_unavailable
    assert cycle.missing == frozenset({"a", "b"})
    assert dict(store.current_records()) == before


@pytest.mark.asyncio
async def test_timed_out_source_counts_as_unavailable() -> None:
    slow = FakeAdapter("slow", {"a": (1.0, 1.0, None)}, delay=1.0)
    fallback = FakeAdapter("fallback", {"a": (2.0, 2.0, None)})
    orchestrator = FallbackOrchestrator([slow, fallback], call_timeout=0.01)

    cycle = await orchestrator.run_cycle({"a"})

    assert cycle.calls[0].result.outcome == SourceOutcome.UNAVAILABLE
    assert cycle.calls[0].result.error == "timeout"
    assert [s.source_name for s in cycle.samples] == ["fallback"]


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_does_not_escape() -> None:
    broken = FakeAdapter("broken", error=RuntimeError("boom"))
    fallback = FakeAdapter("fallback", {"a": (2.0, 2.0, None)})
    orchestrator = FallbackOrchestrator([broken, fallback])

    cycle = await orchestrator.run_cycle({"a"})

    assert cycle.calls[0].result.outcome == SourceOutcome.UNAVAILABLE
    assert "boom" in (cycle.calls[0].result.error or "")
    assert [s.source_name for s in cycle.samples] == ["fallback"]


@pytest.mark.asyncio
async def test_last_write_precedence_passes_overlapping_samples_through() -> None:
    primary = FakeAdapter("primary", {"b": (None, None, None), "a": (1.0, 1.0, None)})
    # Answers for more than it was asked about.
    fallback = FakeAdapter("fallback", {"a": (9.0, 9.0, None), "b": (2.0, 2.0, None)}, ignore_request=True)
    orchestrator = FallbackOrchestrator([primary, fallback], precedence=Precedence.LAST_WRITE)
    store = ReconciliationStore(clock=_dt)

    cycle = await orchestrator.run_cycle({"a", "b"})
    store.merge_many(cycle.samples)

    record = store.get("a")
    assert record is not None
    assert record.last_source_name == "fallback"
    assert (record.latitude, record.longitude) == (9.0, 9.0)


@pytest.mark.asyncio
async def test_primary_precedence_drops_overlapping_samples() -> None:
    primary = FakeAdapter("primary", {"b": (None, None, None), "a": (1.0, 1.0, None)})
    fallback = FakeAdapter("fallback", {"a": (9.0, 9.0, None), "b": (2.0, 2.0, None)}, ignore_request=True)
    orchestrator = FallbackOrchestrator([primary, fallback], precedence=Precedence.PRIMARY)
    store = ReconciliationStore(clock=_dt)

    cycle = await orchestrator.run_cycle({"a", "b"})
    store.merge_many(cycle.samples)

    record_a = store.get("a")
    record_b = store.get("b")
    assert record_a is not None and record_b is not None
    assert record_a.last_source_name == "primary"
    assert record_b.last_source_name == "fallback"


@pytest.mark.asyncio
async def test_unrequested_entities_are_dropped() -> None:
    chatty = FakeAdapter("chatty", {"a": (1.0, 1.0, None), "zz": (2.0, 2.0, None)}, ignore_request=True)
    orchestrator = FallbackOrchestrator([chatty])

    cycle = await orchestrator.run_cycle({"a"})

    assert [s.entity_id for s in cycle.samples] == ["a"]


@pytest.mark.asyncio
async def test_round_robin_rotates_starting_source() -> None:
    first = FakeAdapter("first", {"a": (1.0, 1.0, None)})
    second = FakeAdapter("second", {"a": (2.0, 2.0, None)})
    orchestrator = FallbackOrchestrator([first, second], rotation=RotationPolicy.ROUND_ROBIN)

    await orchestrator.run_cycle({"a"})
    await orchestrator.run_cycle({"a"})
    await orchestrator.run_cycle({"a"})

    assert len(first.calls) == 2
    assert len(second.calls) == 1
    assert [adapter.name for adapter in orchestrator.source_order()] == ["second", "first"]


@pytest.mark.asyncio
async def test_fixed_rotation_always_starts_with_primary() -> None:
    first = FakeAdapter("first", {"a": (1.0, 1.0, None)})
    second = FakeAdapter("second", {"a": (2.0, 2.0, None)})
    orchestrator = FallbackOrchestrator([first, second])

    await orchestrator.run_cycle({"a"})
    await orchestrator.run_cycle({"a"})

    assert len(first.calls) == 2
    assert second.calls == []


@pytest.mark.asyncio
async def test_primary_and_fallback_scenario_with_carried_heading() -> None:
    store = ReconciliationStore(clock=_dt)
    primary = FakeAdapter("primary", {"a": (10.0, 20.0, 90.0)})
    fallback = FakeAdapter("fallback", {"b": (30.0, 40.0, None)})
    orchestrator = FallbackOrchestrator([primary, fallback])

    cycle = await orchestrator.run_cycle({"a", "b"})
    store.merge_many(cycle.samples)

    record_a = store.get("a")
    record_b = store.get("b")
    assert record_a is not None and record_b is not None
    assert (record_a.latitude, record_a.longitude, record_a.heading) == (10.0, 20.0, 90.0)
    assert (record_b.latitude, record_b.longitude, record_b.heading) == (30.0, 40.0, None)

    # A later cycle without a heading for b keeps the one b had.
    store.merge(PositionSample(entity_id="b", latitude=30.0, longitude=40.0, heading=180.0, source_name="primary"))
    fallback.positions["b"] = (31.0, 41.0, None)
    primary.positions["a"] = (11.0, 21.0, 95.0)
    cycle = await orchestrator.run_cycle({"a", "b"})
    store.merge_many(cycle.samples)

    record_b = store.get("b")
    assert record_b is not None
    assert (record_b.latitude, record_b.longitude, record_b.heading) == (31.0, 41.0, 180.0)


def test_orchestrator_requires_a_source() -> None:
    with pytest.raises(FlightTrackConfigError):
        FallbackOrchestrator([])
