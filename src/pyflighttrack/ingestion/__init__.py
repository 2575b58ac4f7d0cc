"""Ingestion layer.

This package contains the adapters that fetch position snapshots from
upstream APIs, the helpers that normalize their values, and the orchestrator
that decides which source to ask for which entity.
"""

__all__: list[str] = []
