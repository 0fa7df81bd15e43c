"""Common interface for responder tiers.

Each tier (directory, AI knowledge, seeded dataset) is a strategy that
turns ``(category, coordinate, limit)`` into a list of
:class:`ResponderCandidate`.  Tiers report "no data" by returning an
empty list; the orchestrator decides what to try next.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from src.services.geo import distance_km

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.models.emergency import Coordinate, ResponderCandidate
    from src.models.enums import ResponderSource


@runtime_checkable
class ResponderResolver(Protocol):
    """A single tier of the responder fallback ladder."""

    source: ResponderSource

    async def resolve(
        self,
        category: str,
        at: Coordinate,
        limit: int,
    ) -> list[ResponderCandidate]: ...


def candidate_distance_km(candidate: ResponderCandidate, at: Coordinate) -> float:
    """Distance from *at* to *candidate*.

    Uses the candidate's coordinates when known, else its own estimate
    when that is a non-negative number, else ``0.0``.
    """
    if candidate.location is not None:
        return distance_km(at, candidate.location)
    estimate = candidate.estimated_distance_km
    if estimate is not None and estimate >= 0:
        return estimate
    return 0.0


def nearest(
    candidates: Iterable[ResponderCandidate],
    at: Coordinate,
    limit: int,
) -> list[ResponderCandidate]:
    """Sort *candidates* by distance from *at* and keep the first *limit*."""
    ordered = sorted(candidates, key=lambda c: candidate_distance_km(c, at))
    return ordered[: max(limit, 0)]
