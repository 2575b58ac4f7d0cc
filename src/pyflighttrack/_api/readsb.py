"""readsb v2 aircraft lookup endpoint.

Endpoint:
  - GET /v2/icao/{hex[,hex...]}

Served by airplanes.live and by other readsb-based aggregators with the same
v2 response shape (``{"ac": [...], "now": <epoch ms>, "msg": ...}``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from pyflighttrack._transport import Transport
from pyflighttrack.exceptions import FlightTrackApiError
from pyflighttrack.models.readsb import ReadsbResponse

_logger = logging.getLogger(__name__)


def build_icao_url(base_url: str, icao_ids: Iterable[str]) -> str:
    """Build the lookup URL for a set of ICAO addresses (sorted for stable URLs)."""
    joined = ",".join(sorted(icao_ids))
    return f"{base_url.rstrip('/')}/v2/icao/{joined}"


def parse_readsb_response(endpoint: str, body: Any) -> ReadsbResponse:
    """Validate a decoded body; a missing ``ac`` list is a format error."""
    if not isinstance(body, dict) or not isinstance(body.get("ac"), list):
        raise FlightTrackApiError(
            f"{endpoint} returned no 'ac' list",
            endpoint=endpoint,
        )
    try:
        return ReadsbResponse.model_validate(body)
    except ValidationError as exc:
        raise FlightTrackApiError(
            f"{endpoint} returned an unexpected payload: {exc.error_count()} validation errors",
            endpoint=endpoint,
        ) from exc


async def fetch_aircraft(
    transport: Transport,
    base_url: str,
    icao_ids: Iterable[str],
) -> ReadsbResponse:
    """Fetch aircraft by ICAO address.

    Parameters
    ----------
    transport : Transport
        HTTP transport.
    base_url : str
        API root, e.g. ``https://api.airplanes.live``.
    icao_ids : iterable of str
        Lowercase ICAO addresses to look up.

    Returns
    -------
    ReadsbResponse
        Parsed response. Aircraft the feed does not currently see are
        simply absent from ``ac``.

    Raises
    ------
    FlightTrackTransportError
        On network errors or non-200 responses.
    FlightTrackApiError
        If the body is not a readsb v2 document.
    """
    url = build_icao_url(base_url, icao_ids)
    body = await transport.get_json(url)
    response = parse_readsb_response(url, body)
    _logger.debug("readsb %s: ac=%d msg=%s", url, len(response.ac), response.msg)
    return response
