"""Deterministic in-memory reconciliation store.

This is the only component allowed to write authoritative records.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType

from pyflighttrack.ingestion.normalize import ensure_utc, normalize_entity_id
from pyflighttrack.state.events import PositionSample
from pyflighttrack.state.policy import merge_sample, should_accept_sample
from pyflighttrack.state.records import AuthoritativeRecord

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReconciliationStore:
    """In-memory store holding one authoritative record per entity.

    This store is designed to be deterministic: given the same sequence of
    samples and clock readings, it will produce the same records.

    Records are created on the first sample that carries a position and are
    never deleted; a sample without a position is discarded so a good
    record is never overwritten with nulls.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, AuthoritativeRecord] = {}

    def merge(self, sample: PositionSample) -> AuthoritativeRecord | None:
        """Apply one sample.

        Returns
        -------
        AuthoritativeRecord or None
            The new record, or ``None`` when the sample was discarded.
        """
        if not should_accept_sample(sample):
            _logger.debug(
                "Discarding sample without position entity=%s source=%s",
                sample.entity_id,
                sample.source_name,
            )
            return None

        with self._lock:
            now = ensure_utc(self._clock())
            record = merge_sample(self._records.get(sample.entity_id), sample, now)
            self._records[sample.entity_id] = record
        return record

    def merge_many(self, samples: Iterable[PositionSample]) -> int:
        """Apply samples in order; returns how many were accepted."""
        accepted = 0
        for sample in samples:
            if self.merge(sample) is not None:
                accepted += 1
        return accepted

    def get(self, entity_id: str) -> AuthoritativeRecord | None:
        key = normalize_entity_id(entity_id)
        if key is None:
            return None
        with self._lock:
            return self._records.get(key)

    def current_records(self) -> Mapping[str, AuthoritativeRecord]:
        """Snapshot of all records, keyed by entity id.

        The returned mapping is a read-only copy; later merges do not show
        up in it.
        """
        with self._lock:
            return MappingProxyType(dict(self._records))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, entity_id: object) -> bool:
        return isinstance(entity_id, str) and self.get(entity_id) is not None
