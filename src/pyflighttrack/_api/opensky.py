"""OpenSky Network state vector endpoint.

Endpoint:
  - GET /states/all?icao24=<hex>&icao24=<hex>...

Anonymous access works with tighter rate limits; HTTP Basic credentials
raise them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from pyflighttrack._transport import BasicCredentials, Transport
from pyflighttrack.exceptions import FlightTrackApiError
from pyflighttrack.models.opensky import OpenSkyStates

_logger = logging.getLogger(__name__)


def build_states_params(icao_ids: Iterable[str]) -> list[tuple[str, str]]:
    return [("icao24", icao) for icao in sorted(icao_ids)]


def parse_states_response(endpoint: str, body: Any) -> OpenSkyStates:
    # ``states`` may be null, but the key itself is always present.
    if not isinstance(body, dict) or "states" not in body:
        raise FlightTrackApiError(
            f"{endpoint} returned no 'states' field",
            endpoint=endpoint,
        )
    if body["states"] is not None and not isinstance(body["states"], list):
        raise FlightTrackApiError(
            f"{endpoint} returned non-list 'states'",
            endpoint=endpoint,
        )
    try:
        return OpenSkyStates.model_validate(body)
    except ValidationError as exc:
        raise FlightTrackApiError(
            f"{endpoint} returned an unexpected payload: {exc.error_count()} validation errors",
            endpoint=endpoint,
        ) from exc


async def fetch_states(
    transport: Transport,
    base_url: str,
    icao_ids: Iterable[str],
    *,
    credentials: BasicCredentials | None = None,
) -> OpenSkyStates:
    """Fetch current state vectors for the given ICAO addresses."""
    url = f"{base_url.rstrip('/')}/states/all"
    body = await transport.get_json(url, params=build_states_params(icao_ids), auth=credentials)
    states = parse_states_response(url, body)
    _logger.debug("opensky %s: states=%d", url, len(states.states))
    return states
