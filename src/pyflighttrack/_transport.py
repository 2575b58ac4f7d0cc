"""HTTP transport for position source endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp

from pyflighttrack._constants import USER_AGENT
from pyflighttrack._redact import redact_headers, redact_url
from pyflighttrack.exceptions import FlightTrackTransportError

_logger = logging.getLogger(__name__)

QueryParams = Sequence[tuple[str, str]]
BasicCredentials = tuple[str, str]


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(
        self,
        url: str,
        *,
        params: QueryParams | None = None,
        auth: BasicCredentials | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """aiohttp-backed transport returning decoded JSON bodies."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._http = http_session
        self._user_agent = user_agent

    def _headers(self, auth: BasicCredentials | None) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "user-agent": self._user_agent,
        }
        if auth is not None:
            headers["authorization"] = aiohttp.BasicAuth(auth[0], auth[1]).encode()
        return headers

    async def get_json(
        self,
        url: str,
        *,
        params: QueryParams | None = None,
        auth: BasicCredentials | None = None,
    ) -> Any:
        """GET *url* and decode the JSON body.

        Raises
        ------
        FlightTrackTransportError
            On network errors, non-200 responses or a body that is not JSON.
        """
        headers = self._headers(auth)
        query = list(params or ())
        safe_url = redact_url(url)

        _logger.debug("GET %s params=%s headers=%s", safe_url, query, redact_headers(headers))

        try:
            async with self._http.get(url, params=query, headers=headers) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise FlightTrackTransportError(
                        f"HTTP {resp.status} from {safe_url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=safe_url,
                    )
        except FlightTrackTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise FlightTrackTransportError(
                f"Request to {safe_url} failed: {exc}",
                endpoint=safe_url,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FlightTrackTransportError(
                f"Invalid JSON from {safe_url}: {text[:200]}",
                status_code=200,
                endpoint=safe_url,
            ) from exc
