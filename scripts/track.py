#!/usr/bin/env python3
"""Watch tracked aircraft and print their reconciled positions.

Runs the refresh loop and prints one line per aircraft every cycle, or one
JSON document per cycle with ``--json``.

Usage
-----
Configure via environment variables::

    export FLIGHTTRACK_ENTITIES="407fb9=G-PJCD,408099=G-PJCM,40809b=G-PJCS,40809a=G-PJCN"
    export FLIGHTTRACK_OPENSKY_USERNAME="you"       # optional
    export FLIGHTTRACK_OPENSKY_PASSWORD="secret"    # optional
    python scripts/track.py

or a JSON file::

    python scripts/track.py --config tracker.json

Options::

    --config FILE        Load configuration from FILE instead of the environment
    --entity ID[=LABEL]  Track this aircraft (repeatable; overrides the env list)
    --interval SECONDS   Refresh interval
    --once               Run a single cycle and exit
    --json               Output machine-readable JSON
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyflighttrack import (  # noqa: E402
    FlightTrackConfigError,
    FlightTracker,
    RenderDirective,
    TrackerConfig,
)

_TIER_MARKS = {"fresh": "*", "aging": "~", "stale": "!", "unknown": "?"}


def _format_directive(directive: RenderDirective) -> str:
    heading = "---" if directive.heading is None else f"{directive.heading:5.1f}"
    mark = _TIER_MARKS.get(directive.tier.value, " ")
    return (
        f"{mark} {directive.label:<10} {directive.entity_id:<8} "
        f"lat={directive.latitude:10.5f} lon={directive.longitude:11.5f} hdg={heading} {directive.tier.value}"
    )


def _print_text(directives: list[RenderDirective]) -> None:
    if not directives:
        print("(no positions yet)")
        return
    for directive in directives:
        print(_format_directive(directive))
    print()


def _print_json(directives: list[RenderDirective]) -> None:
    payload: list[dict[str, Any]] = [directive.model_dump(mode="json") for directive in directives]
    print(json.dumps(payload), flush=True)


def _load_config(args: argparse.Namespace) -> TrackerConfig:
    overrides: dict[str, Any] = {}
    if args.entity:
        overrides["entities"] = args.entity
    if args.interval is not None:
        overrides["refresh_interval"] = args.interval

    if args.config:
        config = TrackerConfig.from_file(args.config)
        if overrides:
            data = {
                "entities": list(config.entities),
                "sources": config.sources,
                "refresh_interval": config.refresh_interval,
                "fresh_window": config.fresh_window,
                "aging_window": config.aging_window,
                "call_timeout": config.call_timeout,
                "rotation": config.rotation,
                "precedence": config.precedence,
            }
            data.update(overrides)
            config = TrackerConfig(**data)
        return config
    return TrackerConfig.from_env(**overrides)


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Poll flight-tracking APIs and print reconciled aircraft positions.",
    )
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--entity", action="append", help="Aircraft to track as ID or ID=LABEL (repeatable)")
    parser.add_argument("--interval", type=float, help="Refresh interval in seconds")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = _load_config(args)
    except FlightTrackConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    emit = _print_json if args.json_mode else _print_text

    async with FlightTracker(config, on_directives=emit) as tracker:
        if args.once:
            await tracker.refresh()
            return 0

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on Windows event loops.
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, tracker.scheduler.stop)
        await tracker.run()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
