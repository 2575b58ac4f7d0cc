"""Tracker configuration for pyflighttrack."""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Iterable, Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pyflighttrack._constants import (
    DEFAULT_AGING_WINDOW,
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_FRESH_WINDOW,
    DEFAULT_REFRESH_INTERVAL,
    OPENSKY_BASE_URL,
    READSB_BASE_URL,
    SOURCE_KIND_OPENSKY,
    SOURCE_KIND_READSB,
    SOURCE_KINDS,
)
from pyflighttrack.exceptions import FlightTrackConfigError
from pyflighttrack.models.entity import TrackedEntity

_DEFAULT_BASE_URLS: dict[str, str] = {
    SOURCE_KIND_READSB: READSB_BASE_URL,
    SOURCE_KIND_OPENSKY: OPENSKY_BASE_URL,
}


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise FlightTrackConfigError(f"{key} must be a number, got {value!r}") from exc


class RotationPolicy(StrEnum):
    """Which source a cycle starts with."""

    FIXED = "fixed"
    """Always consult sources in priority order."""
    ROUND_ROBIN = "round_robin"
    """Rotate the starting source by one every cycle."""


class Precedence(StrEnum):
    """Which sample wins when two sources report an entity in one cycle."""

    LAST_WRITE = "last_write"
    """Every sample reaches the store; the later-processed one wins."""
    PRIMARY = "primary"
    """Samples for an entity already positioned this cycle are dropped."""


def _coerce_enum(enum_cls: type[StrEnum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise FlightTrackConfigError(f"{field_name} must be one of {choices}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SourceConfig:
    """One upstream position source.

    Parameters
    ----------
    name : str
        Unique display name (e.g. ``"airplanes.live"``). Recorded on every
        sample and record the source produces.
    kind : str
        API flavour: ``"readsb"`` or ``"opensky"``.
    priority : int
        Lower values are consulted first.
    base_url : str or None
        API root. Defaults to the public endpoint for *kind*.
    username, password : str or None
        Optional HTTP Basic credentials (OpenSky).
    """

    name: str
    kind: str
    priority: int = 0
    base_url: str | None = None
    username: str | None = None
    password: str | None = dataclasses.field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise FlightTrackConfigError("source name must be non-empty")
        if self.kind not in SOURCE_KINDS:
            raise FlightTrackConfigError(
                f"source {self.name!r} has unknown kind {self.kind!r} (expected one of {sorted(SOURCE_KINDS)})"
            )
        if (self.username is None) != (self.password is None):
            raise FlightTrackConfigError(f"source {self.name!r} needs both username and password, or neither")

    @property
    def url(self) -> str:
        return self.base_url or _DEFAULT_BASE_URLS[self.kind]

    @property
    def credentials(self) -> tuple[str, str] | None:
        if self.username is None or self.password is None:
            return None
        return (self.username, self.password)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SourceConfig:
        try:
            return cls(
                name=str(data["name"]),
                kind=str(data["kind"]),
                priority=int(data.get("priority", 0)),
                base_url=data.get("base_url"),
                username=data.get("username"),
                password=data.get("password"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise FlightTrackConfigError(f"invalid source entry {dict(data)!r}: {exc}") from exc


def _parse_entities(items: Iterable[Any]) -> tuple[TrackedEntity, ...]:
    entities: list[TrackedEntity] = []
    for item in items:
        try:
            if isinstance(item, TrackedEntity):
                entities.append(item)
            elif isinstance(item, str):
                entities.append(TrackedEntity.parse(item))
            elif isinstance(item, Mapping):
                entities.append(TrackedEntity.model_validate(dict(item)))
            else:
                raise FlightTrackConfigError(f"invalid entity entry {item!r}")
        except ValidationError as exc:
            raise FlightTrackConfigError(f"invalid entity entry {item!r}: {exc}") from exc
    return tuple(entities)


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    entities : tuple of TrackedEntity
        The universe of tracked aircraft. Fixed for the tracker's lifetime.
    sources : tuple of SourceConfig
        Position sources; consulted in ``priority`` order.
    refresh_interval : float
        Seconds between the starts of consecutive refresh cycles.
    fresh_window : float
        Records updated within this many seconds are fresh.
    aging_window : float
        Records updated within this many seconds (and not fresh) are aging;
        older records are stale.
    call_timeout : float
        Per-source-call timeout in seconds. A timed-out call counts as the
        source being unavailable.
    rotation : RotationPolicy
        Whether the starting source rotates between cycles.
    precedence : Precedence
        Which sample wins when two sources report one entity in a cycle.
    """

    entities: tuple[TrackedEntity, ...]
    sources: tuple[SourceConfig, ...] = (
        SourceConfig(name="airplanes.live", kind=SOURCE_KIND_READSB, priority=0),
        SourceConfig(name="opensky", kind=SOURCE_KIND_OPENSKY, priority=1),
    )
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    fresh_window: float = DEFAULT_FRESH_WINDOW
    aging_window: float = DEFAULT_AGING_WINDOW
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    rotation: RotationPolicy = RotationPolicy.FIXED
    precedence: Precedence = Precedence.LAST_WRITE

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", _parse_entities(self.entities))
        object.__setattr__(self, "sources", tuple(self.sources))
        object.__setattr__(self, "rotation", _coerce_enum(RotationPolicy, self.rotation, "rotation"))
        object.__setattr__(self, "precedence", _coerce_enum(Precedence, self.precedence, "precedence"))

        if not self.entities:
            raise FlightTrackConfigError("at least one tracked entity is required")
        ids = [entity.id for entity in self.entities]
        duplicates = sorted({entity_id for entity_id in ids if ids.count(entity_id) > 1})
        if duplicates:
            raise FlightTrackConfigError(f"duplicate entity ids: {', '.join(duplicates)}")

        if not self.sources:
            raise FlightTrackConfigError("at least one source is required")
        names = [source.name for source in self.sources]
        duplicate_names = sorted({name for name in names if names.count(name) > 1})
        if duplicate_names:
            raise FlightTrackConfigError(f"duplicate source names: {', '.join(duplicate_names)}")

        if self.refresh_interval <= 0:
            raise FlightTrackConfigError("refresh_interval must be positive")
        if self.call_timeout <= 0:
            raise FlightTrackConfigError("call_timeout must be positive")
        if self.fresh_window < 0 or self.fresh_window >= self.aging_window:
            raise FlightTrackConfigError("windows must satisfy 0 <= fresh_window < aging_window")

    @property
    def entity_ids(self) -> frozenset[str]:
        return frozenset(entity.id for entity in self.entities)

    @property
    def ordered_sources(self) -> tuple[SourceConfig, ...]:
        """Sources sorted by priority; ties keep their configured order."""
        return tuple(sorted(self.sources, key=lambda source: source.priority))

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from environment variables.

        Reads ``FLIGHTTRACK_ENTITIES`` (comma-separated ``id=label`` or bare
        ``id`` items) and optional ``FLIGHTTRACK_*`` timing and source
        variables. Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TrackerConfig
            Populated configuration.

        Raises
        ------
        FlightTrackConfigError
            If required variables are missing or values are malformed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "entities" not in overrides:
            raw_entities = env.get("FLIGHTTRACK_ENTITIES", "")
            items = [item.strip() for item in raw_entities.split(",") if item.strip()]
            if not items:
                raise FlightTrackConfigError("FLIGHTTRACK_ENTITIES is not set")
            config_kwargs["entities"] = items

        _ENV_FLOAT_MAP = {
            "FLIGHTTRACK_INTERVAL": "refresh_interval",
            "FLIGHTTRACK_FRESH_WINDOW": "fresh_window",
            "FLIGHTTRACK_AGING_WINDOW": "aging_window",
            "FLIGHTTRACK_CALL_TIMEOUT": "call_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            value = _env_float(env, env_key)
            if value is not None:
                config_kwargs[field_name] = value

        _ENV_ENUM_MAP = {
            "FLIGHTTRACK_ROTATION": "rotation",
            "FLIGHTTRACK_PRECEDENCE": "precedence",
        }
        for env_key, field_name in _ENV_ENUM_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        if "sources" not in overrides:
            sources: list[SourceConfig] = []
            if _env_bool(env.get("FLIGHTTRACK_READSB_ENABLED"), True):
                sources.append(
                    SourceConfig(
                        name=env.get("FLIGHTTRACK_READSB_NAME", "airplanes.live"),
                        kind=SOURCE_KIND_READSB,
                        priority=0,
                        base_url=env.get("FLIGHTTRACK_READSB_URL") or None,
                    )
                )
            if _env_bool(env.get("FLIGHTTRACK_OPENSKY_ENABLED"), True):
                sources.append(
                    SourceConfig(
                        name="opensky",
                        kind=SOURCE_KIND_OPENSKY,
                        priority=1,
                        base_url=env.get("FLIGHTTRACK_OPENSKY_URL") or None,
                        username=env.get("FLIGHTTRACK_OPENSKY_USERNAME") or None,
                        password=env.get("FLIGHTTRACK_OPENSKY_PASSWORD") or None,
                    )
                )
            config_kwargs["sources"] = tuple(sources)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TrackerConfig:
        """Create configuration from a decoded JSON/dict document."""
        if not isinstance(data, Mapping):
            raise FlightTrackConfigError("configuration document must be an object")
        known = {field.name for field in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise FlightTrackConfigError(f"unknown configuration keys: {', '.join(unknown)}")

        kwargs: dict[str, Any] = dict(data)
        entities = kwargs.get("entities")
        if not isinstance(entities, list):
            raise FlightTrackConfigError("'entities' must be a list")
        if "sources" in kwargs:
            sources = kwargs["sources"]
            if not isinstance(sources, list):
                raise FlightTrackConfigError("'sources' must be a list")
            if not all(isinstance(item, Mapping) for item in sources):
                raise FlightTrackConfigError("every 'sources' entry must be an object")
            kwargs["sources"] = tuple(SourceConfig.from_mapping(item) for item in sources)
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise FlightTrackConfigError(f"invalid configuration: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | Path) -> TrackerConfig:
        """Load configuration from a JSON file."""
        file_path = Path(path)
        try:
            document = json.loads(file_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise FlightTrackConfigError(f"cannot read configuration file {file_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise FlightTrackConfigError(f"configuration file {file_path} is not valid JSON: {exc}") from exc
        return cls.from_mapping(document)
