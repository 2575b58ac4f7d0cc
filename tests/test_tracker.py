"""End-to-end tracker tests against a fake HTTP backend."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pyflighttrack import FlightTrackError, FlightTracker, FreshnessTier, TrackerConfig
from pyflighttrack.exceptions import FlightTrackTransportError
from pyflighttrack.render import RenderDirective

_T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
_READSB_URL = "https://api.airplanes.live/v2/icao/407fb9,408099"
_OPENSKY_URL = "https://opensky-network.org/api/states/all"


class _Clock:
    def __init__(self) -> None:
        self.now = _T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeBackend:
    """Serves canned readsb and OpenSky bodies keyed by URL."""

    bodies: dict[str, Any] = field(default_factory=dict)
    down: bool = False
    calls: list[tuple[str, list[tuple[str, str]]]] = field(default_factory=list)

    async def get_json(
        self,
        url: str,
        *,
        params: list[tuple[str, str]] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> Any:
        self.calls.append((url, list(params or ())))
        if self.down:
            raise FlightTrackTransportError(f"{url} unreachable", endpoint=url)
        return self.bodies[url]

    def readsb(self, *rows: dict[str, Any]) -> None:
        self.bodies[_READSB_URL] = {"ac": list(rows), "now": int(_T0.timestamp() * 1000), "msg": "No error"}

    def opensky(self, *rows: list[Any] | None) -> None:
        self.bodies[_OPENSKY_URL] = {"time": int(_T0.timestamp()), "states": list(rows) if rows else None}


def _config(**kwargs: Any) -> TrackerConfig:
    return TrackerConfig(entities=("407fb9=G-PJCD", "408099=G-PJCM"), **kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_primary_and_fallback_fill_all_positions() -> None:
    backend = FakeBackend()
    backend.readsb({"hex": "407fb9", "lat": 10.0, "lon": 20.0, "track": 90.0}, {"hex": "408099"})
    backend.opensky(["408099", "GPJCM", "United Kingdom", None, None, 40.0, 30.0, None, False, None, None])
    delivered: list[list[RenderDirective]] = []

    async with FlightTracker(_config(), transport=backend, clock=_Clock(), on_directives=delivered.append) as tracker:
        report = await tracker.refresh()

        assert backend.calls == [(_READSB_URL, []), (_OPENSKY_URL, [("icao24", "408099")])]
        assert report.cycle.missing == frozenset()

        a = tracker.get("407fb9")
        b = tracker.get("408099")
        assert a is not None and b is not None
        assert (a.latitude, a.longitude, a.heading, a.last_source_name) == (10.0, 20.0, 90.0, "airplanes.live")
        assert (b.latitude, b.longitude, b.heading, b.last_source_name) == (30.0, 40.0, None, "opensky")

    (directives,) = delivered
    assert [(d.label, d.tier) for d in directives] == [("G-PJCD", FreshnessTier.FRESH), ("G-PJCM", FreshnessTier.FRESH)]


@pytest.mark.asyncio
async def test_record_survives_empty_cycles_and_ages() -> None:
    clock = _Clock()
    backend = FakeBackend()
    backend.readsb({"hex": "407fb9", "lat": 1.0, "lon": 1.0, "track": 45.0})
    backend.opensky()

    async with FlightTracker(_config(), transport=backend, clock=clock) as tracker:
        await tracker.refresh()
        assert tracker.freshness("407fb9") == FreshnessTier.FRESH
        assert tracker.freshness("408099") == FreshnessTier.UNKNOWN

        clock.advance(120)
        backend.readsb({"hex": "407fb9"})
        report = await tracker.refresh()

        record = tracker.get("407fb9")
        assert record is not None
        assert (record.latitude, record.longitude, record.heading) == (1.0, 1.0, 45.0)
        assert record.last_updated_at == _T0
        assert report.accepted == 0
        assert tracker.freshness("407fb9") == FreshnessTier.AGING

        clock.advance(300)
        assert tracker.freshness("407fb9") == FreshnessTier.STALE
        (directive,) = tracker.directives()
        assert directive.tier == FreshnessTier.STALE
        assert (directive.latitude, directive.longitude) == (1.0, 1.0)


@pytest.mark.asyncio
async def test_all_sources_down_leaves_records_untouched() -> None:
    backend = FakeBackend()
    backend.readsb({"hex": "407fb9", "lat": 1.0, "lon": 1.0})
    backend.opensky()

    async with FlightTracker(_config(), transport=backend, clock=_Clock()) as tracker:
        await tracker.refresh()
        before = dict(tracker.records())

        backend.down = True
        report = await tracker.refresh()

        assert report.cycle.all_unavailable
        assert dict(tracker.records()) == before


@pytest.mark.asyncio
async def test_background_run_stops_cleanly() -> None:
    backend = FakeBackend()
    backend.readsb({"hex": "407fb9", "lat": 1.0, "lon": 1.0})
    backend.opensky()
    never = asyncio.Event()

    async def idle(delay: float) -> None:
        await never.wait()

    async with FlightTracker(
        _config(), transport=backend, clock=_Clock(), scheduler_options={"sleep": idle}
    ) as tracker:
        task = tracker.start()
        assert tracker.start() is task
        while tracker.scheduler.cycles_completed == 0:
            await asyncio.sleep(0)
        await tracker.stop()

        assert task.done()
        assert tracker.get("407fb9") is not None

        with pytest.raises(FlightTrackError, match="stopped"):
            tracker.start()
        with pytest.raises(FlightTrackError, match="stopped"):
            await tracker.run()


@pytest.mark.asyncio
async def test_tracker_requires_context() -> None:
    tracker = FlightTracker(_config(), transport=FakeBackend())
    with pytest.raises(FlightTrackError):
        await tracker.refresh()
    with pytest.raises(FlightTrackError):
        tracker.directives()
