"""Threshold registry: CRUD over threshold definitions.

Thin layer over a ``ThresholdStore`` that owns id/timestamp assignment,
validation of partial updates, and reset to the built-in seed set. Callers
always receive copies, so mutating a returned record never changes the
stored one.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any

from src.alerts.repository import InMemoryThresholdStore, ThresholdStore
from src.alerts.schemas import Threshold
from src.alerts.seed_data import default_thresholds

logger = logging.getLogger(__name__)

# Fields a caller may set on create/update
_EDITABLE_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(Threshold)
) - {"id", "created_at"}


class ThresholdRegistry:
    """Named threshold definitions backed by an injected store.

    When no store is given, an in-memory store seeded with the default
    thresholds is used.
    """

    def __init__(self, store: ThresholdStore | None = None) -> None:
        self._store = store or InMemoryThresholdStore(default_thresholds())

    async def list(self) -> list[Threshold]:
        """Return copies of all thresholds, in insertion order."""
        return [replace(t) for t in await self._store.list()]

    async def get(self, threshold_id: str) -> Threshold | None:
        """Return a copy of one threshold, or None if not found."""
        threshold = await self._store.get(threshold_id)
        return replace(threshold) if threshold is not None else None

    async def create(self, definition: dict[str, Any]) -> Threshold:
        """Create a threshold from a definition without id/created_at.

        Args:
            definition: Threshold fields (name, metric, operator, value, unit,
                and optional flags).

        Returns:
            The stored threshold with its generated id and created_at.

        Raises:
            ValueError: Unknown field, or invalid metric/operator/value.
        """
        _check_fields(definition)
        threshold = Threshold(
            id=f"threshold-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}",
            created_at=datetime.now(timezone.utc),
            **definition,
        )
        await self._store.add(threshold)
        logger.info("Threshold created: %s (%s)", threshold.id, threshold.name)
        return replace(threshold)

    async def update(self, threshold_id: str, updates: dict[str, Any]) -> Threshold | None:
        """Merge ``updates`` into an existing threshold.

        ``id`` and ``created_at`` in ``updates`` are ignored.

        Returns:
            The updated threshold, or None if the id does not exist.

        Raises:
            ValueError: Unknown field, or the merged record is invalid.
        """
        updates = {k: v for k, v in updates.items() if k not in ("id", "created_at")}
        _check_fields(updates)

        current = await self._store.get(threshold_id)
        if current is None:
            return None

        updated = replace(current, **updates)
        if not await self._store.save(updated):
            return None
        logger.debug("Threshold updated: %s fields=%s", threshold_id, sorted(updates))
        return replace(updated)

    async def delete(self, threshold_id: str) -> bool:
        """Remove a threshold. Returns True if one was removed."""
        removed = await self._store.delete(threshold_id)
        if removed:
            logger.info("Threshold deleted: %s", threshold_id)
        return removed

    async def reset_to_defaults(self) -> list[Threshold]:
        """Replace every threshold with the built-in seed set."""
        seeds = default_thresholds()
        await self._store.replace_all(seeds)
        logger.info("Thresholds reset to %d defaults", len(seeds))
        return [replace(t) for t in seeds]

    async def mark_triggered(self, threshold_id: str, when: datetime) -> None:
        """Record the time a threshold last fired."""
        current = await self._store.get(threshold_id)
        if current is None:
            return
        await self._store.save(replace(current, last_triggered=when))


def _check_fields(data: dict[str, Any]) -> None:
    unknown = set(data) - _EDITABLE_FIELDS
    if unknown:
        raise ValueError(
            f"Unknown threshold field(s): {sorted(unknown)}. "
            f"Allowed: {sorted(_EDITABLE_FIELDS)}"
        )
