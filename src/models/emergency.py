"""Emergency categorization and responder models.

Wire names are camelCase (``suggestedAction``, ``placeId``) to match the
web client; Python attributes stay snake_case.  Models accept either
form on input.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.models.enums import EmergencyCategory, ResponderSource, Severity

DEFAULT_SUGGESTED_ACTION = "Contact emergency services immediately"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Coordinate(CamelModel):
    """WGS84 coordinate in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    @field_validator("lat", "lng")
    @classmethod
    def check_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate must be a finite number")
        return value


class EmergencyCategorization(CamelModel):
    """Structured result of classifying one user message."""

    model_config = ConfigDict(frozen=True)

    category: EmergencyCategory
    severity: Severity
    keywords: list[str] = Field(default_factory=list)
    suggested_action: str
    detected_language: str | None = None
    translated_message: str | None = None

    @classmethod
    def default(cls) -> EmergencyCategorization:
        """Safe fallback used whenever classification fails."""
        return cls(
            category=EmergencyCategory.GENERAL,
            severity=Severity.MEDIUM,
            keywords=[],
            suggested_action=DEFAULT_SUGGESTED_ACTION,
        )


class ResponderCandidate(CamelModel):
    """A responder as produced by a single tier, before ranking.

    ``location`` is ``None`` only for AI-sourced candidates whose
    coordinates the model did not supply; ``estimated_distance_km`` is
    the source's own distance estimate, if it gave one.
    """

    name: str
    address: str
    location: Coordinate | None = None
    phone: str | None = None
    rating: float | None = None
    hours: str | None = None
    source_id: str
    source: ResponderSource
    estimated_distance_km: float | None = None


class Responder(CamelModel):
    """Normalized responder returned to API callers."""

    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    distance: float = Field(ge=0.0)
    type: str
    place_id: str
    location: Coordinate
    phone: str | None = None
    rating: float | None = None
    priority: int | None = Field(default=None, ge=1)
    hours: str | None = None


class ResolutionResult(CamelModel):
    """Categorization plus the ranked responders for one submission."""

    categorization: EmergencyCategorization
    responders: list[Responder]
    source: ResponderSource
