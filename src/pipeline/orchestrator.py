"""Responder resolution orchestrator for Rakshak.

Coordinates the full pipeline: emergency categorization, then the
responder fallback ladder (Places directory, Gemini knowledge search,
seeded dataset).  Every tier's output is normalized to the same
:class:`Responder` shape: distance rounded to one decimal, sorted
nearest first, ranked from 1, truncated to the requested limit.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Final

import structlog

from src.models.emergency import Responder, ResolutionResult
from src.services.responders.base import candidate_distance_km

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.models.emergency import Coordinate, ResponderCandidate
    from src.models.enums import ResponderSource
    from src.services.categorizer import CategoryClassifier
    from src.services.responders.base import ResponderResolver

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_LIMIT: Final[int] = 3
MAX_LIMIT: Final[int] = 10


class ResponderResolutionError(RuntimeError):
    """Raised when every tier, including the seeded dataset, came back empty."""


# ---------------------------------------------------------------------------
# ResolutionOrchestrator
# ---------------------------------------------------------------------------


class ResolutionOrchestrator:
    """Central responder resolution pipeline for Rakshak.

    Parameters
    ----------
    classifier:
        Turns a free-text message into an emergency categorization.
    resolvers:
        Tiers in the order they are tried.  The first one to return a
        non-empty list wins; later tiers are not invoked.
    max_limit:
        Upper bound accepted for ``limit``.
    """

    __slots__ = ("_classifier", "_max_limit", "_resolvers")

    def __init__(
        self,
        classifier: CategoryClassifier,
        resolvers: Sequence[ResponderResolver],
        max_limit: int = MAX_LIMIT,
    ) -> None:
        if not resolvers:
            raise ValueError("at least one responder tier is required")
        self._classifier = classifier
        self._resolvers = tuple(resolvers)
        self._max_limit = max_limit

    @property
    def tiers(self) -> list[str]:
        return [resolver.source.value for resolver in self._resolvers]

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------

    async def resolve_responders(
        self,
        message: str,
        at: Coordinate,
        limit: int = DEFAULT_LIMIT,
    ) -> ResolutionResult:
        """Categorize *message* and find the nearest matching responders.

        Steps:
        1. Classify the message (never fails; falls back to ``general``)
        2. Try each tier in order until one returns candidates
        3. Normalize, sort, rank and truncate
        """
        self._check_limit(limit)
        pipeline_start = time.perf_counter()

        categorization = await self._classifier.categorize(message)
        responders, source = await self.find_responders(categorization.category, at, limit)

        logger.info(
            "pipeline.resolve_complete",
            category=categorization.category.value,
            severity=categorization.severity.value,
            source=source.value,
            count=len(responders),
            total_ms=_elapsed_ms(pipeline_start),
        )
        return ResolutionResult(
            categorization=categorization,
            responders=responders,
            source=source,
        )

    # ------------------------------------------------------------------
    # Responder lookup for a known category
    # ------------------------------------------------------------------

    async def find_responders(
        self,
        category: str,
        at: Coordinate,
        limit: int = DEFAULT_LIMIT,
    ) -> tuple[list[Responder], ResponderSource]:
        """Run the fallback ladder for *category* around *at*.

        Returns
        -------
        tuple[list[Responder], ResponderSource]
            At most *limit* responders, nearest first, and the tier that
            produced them.

        Raises
        ------
        ValueError
            If *limit* is outside ``1..max_limit``.
        ResponderResolutionError
            If no tier produced any responder.
        """
        self._check_limit(limit)
        category = str(category)
        log = logger.bind(category=category, lat=at.lat, lng=at.lng, limit=limit)

        for resolver in self._resolvers:
            step_start = time.perf_counter()
            try:
                candidates = await resolver.resolve(category, at, limit)
            except Exception:
                log.warning("responders.tier_failed", tier=resolver.source.value, exc_info=True)
                continue

            if not candidates:
                log.info(
                    "responders.tier_empty",
                    tier=resolver.source.value,
                    elapsed_ms=_elapsed_ms(step_start),
                )
                continue

            responders = normalize(candidates, category, at, limit)
            log.info(
                "responders.tier_hit",
                tier=resolver.source.value,
                count=len(responders),
                elapsed_ms=_elapsed_ms(step_start),
            )
            return responders, resolver.source

        log.error("responders.all_tiers_empty", tiers=self.tiers)
        raise ResponderResolutionError(f"no responders found for category {category!r}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_limit(self, limit: int) -> None:
        if not 1 <= limit <= self._max_limit:
            raise ValueError(f"limit must be between 1 and {self._max_limit}, got {limit}")


def normalize(
    candidates: Sequence[ResponderCandidate],
    category: str,
    at: Coordinate,
    limit: int,
) -> list[Responder]:
    """Convert tier candidates into ranked :class:`Responder` objects.

    Distances are rounded to one decimal before sorting so that
    ``distance`` is non-decreasing by ``priority`` in the output.
    Candidates without coordinates are placed at *at*.
    """
    measured = [(round(candidate_distance_km(c, at), 1), c) for c in candidates]
    measured.sort(key=lambda pair: pair[0])

    return [
        Responder(
            name=candidate.name,
            address=candidate.address,
            distance=distance,
            type=category,
            place_id=f"{candidate.source.value}:{candidate.source_id}",
            location=candidate.location or at,
            phone=candidate.phone,
            rating=candidate.rating,
            priority=rank,
            hours=candidate.hours,
        )
        for rank, (distance, candidate) in enumerate(measured[:limit], start=1)
    ]


def _elapsed_ms(start: float) -> float:
    """Return milliseconds elapsed since *start* (from ``time.perf_counter``)."""
    return round((time.perf_counter() - start) * 1000, 2)
