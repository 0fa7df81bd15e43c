"""Gemini knowledge-search tier.

Used when the Places directory returns nothing.  The coordinate is first
turned into a human-readable locality (``"City, State"``), then Gemini is
asked for real facilities of the requested category near that locality.
The reply is free text that should contain a JSON array; it is parsed
leniently and anything unusable yields an empty list.
"""

from __future__ import annotations

import json
import math
import re
from typing import TYPE_CHECKING, Any, Final

import structlog

from src.models.emergency import Coordinate, ResponderCandidate
from src.models.enums import EmergencyCategory, ResponderSource
from src.services.responders.base import nearest

if TYPE_CHECKING:
    from src.services.llm import LLMService

logger = structlog.get_logger(__name__)

DEFAULT_LOCALITY: Final[str] = "India"

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_QUOTES = "\"'`"

_CATEGORY_DESCRIPTIONS: Final[dict[str, str]] = {
    EmergencyCategory.MEDICAL: "emergency hospitals and medical centres",
    EmergencyCategory.POLICE: "police stations",
    EmergencyCategory.MENTAL_HEALTH: "mental health crisis centres, counselling services and helplines",
    EmergencyCategory.DISASTER: "fire stations and disaster response units",
    EmergencyCategory.FINANCE: "financial consumer protection offices and helplines",
}


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def locality_prompt(at: Coordinate) -> str:
    return (
        f"What is the city or town at coordinates {at.lat}, {at.lng} in India? "
        'Reply with ONLY the city and state in the format "City, State", '
        'for example "Bangalore, Karnataka" or "Mumbai, Maharashtra". '
        "Return nothing else."
    )


def knowledge_prompt(category: str, at: Coordinate, locality: str, limit: int) -> str:
    description = _CATEGORY_DESCRIPTIONS.get(
        category, _CATEGORY_DESCRIPTIONS[EmergencyCategory.MEDICAL]
    )
    return f"""\
Find the {limit} nearest REAL {category} emergency responders ({description}) \
near {locality} (coordinates {at.lat:.4f}, {at.lng:.4f}). \
Use only facilities you know actually exist.

Return a JSON array in exactly this format, with no markdown and no other text:
[
  {{
    "name": "Official name",
    "address": "Full address, City, State",
    "phone": "+91-XXX-XXX-XXXX",
    "distance": 2.5,
    "hours": "24/7 or specific hours",
    "lat": 12.9716,
    "lng": 77.5946
  }}
]

Rules:
- Only facilities in or near {locality}; do not default to Delhi.
- Phone numbers with the +91 country code.
- "distance" is the approximate distance in km from the coordinates above.
- Include "lat" and "lng" only if you know them.
- At most {limit} entries."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def extract_json_array(text: str) -> str | None:
    """Return the first balanced top-level JSON array in *text*.

    Markdown code fences are removed first.  Brackets inside string
    literals are ignored.  Returns ``None`` when no complete array is
    found.
    """
    cleaned = _FENCE_RE.sub("", text or "")
    start = cleaned.find("[")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(cleaned)):
        char = cleaned[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return cleaned[start : index + 1]
    return None


def _slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-") or "responder"


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def candidate_from_knowledge(entry: Any, rank: int) -> ResponderCandidate | None:
    """Map one element of the model's array to a candidate.

    Entries that are not objects or have no name are skipped.
    """
    if not isinstance(entry, dict):
        return None
    name = _text(entry.get("name"))
    if name is None:
        return None

    location: Coordinate | None = None
    lat, lng = _number(entry.get("lat")), _number(entry.get("lng"))
    if lat is not None and lng is not None:
        try:
            location = Coordinate(lat=lat, lng=lng)
        except ValueError:
            location = None

    return ResponderCandidate(
        name=name,
        address=_text(entry.get("address")) or "",
        location=location,
        phone=_text(entry.get("phone")),
        hours=_text(entry.get("hours")),
        source_id=f"{rank}-{_slugify(name)}",
        source=ResponderSource.AI,
        estimated_distance_km=_number(entry.get("distance")),
    )


def candidates_from_payload(text: str) -> list[ResponderCandidate]:
    """Parse a model reply into candidates; ``[]`` on any parse problem."""
    array_text = extract_json_array(text)
    if array_text is None:
        logger.warning("knowledge.no_json_array", response_preview=(text or "")[:200])
        return []

    try:
        payload = json.loads(array_text)
    except json.JSONDecodeError:
        logger.warning("knowledge.invalid_json", exc_info=True)
        return []

    if not isinstance(payload, list) or not payload:
        logger.warning("knowledge.empty_array")
        return []

    candidates: list[ResponderCandidate] = []
    for rank, entry in enumerate(payload, start=1):
        candidate = candidate_from_knowledge(entry, rank)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


# ---------------------------------------------------------------------------
# KnowledgeResolver
# ---------------------------------------------------------------------------


class KnowledgeResolver:
    """AI knowledge tier: locality lookup followed by a facility search."""

    source = ResponderSource.AI

    def __init__(self, llm: LLMService) -> None:
        self._llm = llm

    async def resolve_locality(self, at: Coordinate) -> str:
        """Return ``"City, State"`` for *at*, or ``"India"`` on any failure."""
        if not self._llm.is_configured:
            return DEFAULT_LOCALITY
        try:
            result = await self._llm.generate_text(locality_prompt(at), max_output_tokens=64)
        except Exception:
            logger.warning("knowledge.locality_failed", exc_info=True)
            return DEFAULT_LOCALITY

        locality = result.text.strip()
        for quote in _QUOTES:
            locality = locality.replace(quote, "")
        locality = locality.strip() or DEFAULT_LOCALITY
        logger.info("knowledge.locality_resolved", lat=at.lat, lng=at.lng, locality=locality)
        return locality

    async def knowledge_search(
        self,
        category: str,
        at: Coordinate,
        locality: str,
        limit: int,
    ) -> list[ResponderCandidate]:
        """Ask Gemini for up to *limit* real facilities near *locality*.

        Single attempt.  Any failure yields an empty list.
        """
        if not self._llm.is_configured:
            return []
        try:
            result = await self._llm.generate_text(knowledge_prompt(category, at, locality, limit))
        except Exception:
            logger.warning("knowledge.search_failed", category=category, exc_info=True)
            return []

        candidates = nearest(candidates_from_payload(result.text), at, limit)
        logger.info(
            "knowledge.search_complete",
            category=category,
            locality=locality,
            results=len(candidates),
        )
        return candidates

    async def resolve(
        self,
        category: str,
        at: Coordinate,
        limit: int,
    ) -> list[ResponderCandidate]:
        if not self._llm.is_configured:
            logger.info("knowledge.not_configured")
            return []
        locality = await self.resolve_locality(at)
        return await self.knowledge_search(category, at, locality, limit)
