"""Seeded dataset tier: the last resort that always answers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.enums import EmergencyCategory, ResponderSource
from src.services.responders.base import nearest

if TYPE_CHECKING:
    from collections.abc import Mapping

    from src.models.emergency import Coordinate, ResponderCandidate

logger = structlog.get_logger(__name__)


class SeededResponderResolver:
    """Serves responders from a read-only, startup-loaded dataset.

    Unknown categories (including ``general``) use the medical list, so
    the result is never empty for a dataset loaded by
    :func:`src.data.seed.load_seed_responders`.
    """

    source = ResponderSource.SEED

    def __init__(self, dataset: Mapping[str, tuple[ResponderCandidate, ...]]) -> None:
        self._dataset = dataset

    @property
    def categories(self) -> list[str]:
        return sorted(self._dataset)

    async def resolve(
        self,
        category: str,
        at: Coordinate,
        limit: int,
    ) -> list[ResponderCandidate]:
        entries = self._dataset.get(category) or self._dataset.get(EmergencyCategory.MEDICAL, ())
        results = nearest(entries, at, limit)
        logger.info("seeded.resolved", category=category, results=len(results))
        return results
