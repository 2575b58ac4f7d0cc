"""Custom exception hierarchy for pyflighttrack."""

from __future__ import annotations


class FlightTrackError(Exception):
    """Base exception for all pyflighttrack errors."""


class FlightTrackConfigError(FlightTrackError):
    """Invalid or missing configuration.

    Only raised while building configuration or wiring the tracker at
    startup; never during a refresh cycle.
    """


class FlightTrackSourceError(FlightTrackError):
    """A position source could not deliver a usable snapshot.

    Subclasses cover the ways a source becomes unavailable. Adapters catch
    these and report ``SourceOutcome.UNAVAILABLE`` instead of propagating.
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
        endpoint: str = "",
    ) -> None:
        self.source = source
        self.endpoint = endpoint
        super().__init__(message)


class FlightTrackTransportError(FlightTrackSourceError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        source: str = "",
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        super().__init__(message, source=source, endpoint=endpoint)

    @property
    def is_auth_error(self) -> bool:
        """Whether the server rejected the request credentials."""
        return self.status_code in (401, 403)

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class FlightTrackApiError(FlightTrackSourceError):
    """The response was valid JSON but not the shape the API documents."""
