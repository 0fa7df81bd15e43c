"""Google Places directory tier.

Searches the Places API (New) Text Search first and falls back to the
legacy Nearby Search when it yields nothing.  Legacy results carry no
phone number or opening hours, so each one returned is enriched with a Place
Details call; a failed enrichment leaves that candidate's phone and
hours unset.

Wire formats never leave this module: :func:`candidate_from_places_v1`
and :func:`candidate_from_legacy` map the two response shapes into
:class:`ResponderCandidate`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import httpx
import structlog

from src.models.emergency import Coordinate, ResponderCandidate
from src.models.enums import EmergencyCategory, ResponderSource
from src.services.responders.base import nearest

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEXT_SEARCH_URL: Final[str] = "https://places.googleapis.com/v1/places:searchText"
NEARBY_SEARCH_URL: Final[str] = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACE_DETAILS_URL: Final[str] = "https://maps.googleapis.com/maps/api/place/details/json"

TEXT_SEARCH_FIELD_MASK: Final[str] = ",".join(
    [
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.internationalPhoneNumber",
        "places.rating",
        "places.currentOpeningHours",
        "places.id",
    ]
)
DETAILS_FIELDS: Final[str] = "formatted_phone_number,opening_hours"

# Over-fetch so that distance sorting has something to choose from.
_OVERFETCH_FACTOR: Final[int] = 3

_LEGACY_OK_STATUSES: Final[frozenset[str]] = frozenset({"OK", "ZERO_RESULTS"})


@dataclass(frozen=True, slots=True)
class PlaceQuery:
    """What to ask the Places API for one emergency category."""

    place_types: tuple[str, ...]
    keyword: str


CATEGORY_QUERIES: Final[Mapping[str, PlaceQuery]] = {
    EmergencyCategory.MEDICAL: PlaceQuery(("hospital", "doctor", "pharmacy"), "hospital emergency"),
    EmergencyCategory.POLICE: PlaceQuery(("police",), "police station"),
    EmergencyCategory.MENTAL_HEALTH: PlaceQuery(
        ("hospital", "doctor"), "mental health clinic counseling"
    ),
    EmergencyCategory.DISASTER: PlaceQuery(("fire_station", "hospital"), "fire station emergency"),
    EmergencyCategory.FINANCE: PlaceQuery(
        ("bank", "atm", "accounting"), "bank consumer protection financial assistance"
    ),
}


def query_for(category: str) -> PlaceQuery:
    """Return the Places query for *category*; unknown ones use medical."""
    return CATEGORY_QUERIES.get(category, CATEGORY_QUERIES[EmergencyCategory.MEDICAL])


# ---------------------------------------------------------------------------
# Wire-format adapters
# ---------------------------------------------------------------------------


def _coordinate(lat: Any, lng: Any) -> Coordinate | None:
    if not isinstance(lat, int | float) or not isinstance(lng, int | float):
        return None
    try:
        return Coordinate(lat=lat, lng=lng)
    except ValueError:
        return None


def _rating(value: Any) -> float | None:
    return float(value) if isinstance(value, int | float) else None


def candidate_from_places_v1(place: Mapping[str, Any]) -> ResponderCandidate | None:
    """Map one Places API (New) ``places[]`` entry to a candidate.

    Returns ``None`` when the entry has no usable coordinates.
    """
    location = place.get("location") or {}
    coordinate = _coordinate(location.get("latitude"), location.get("longitude"))
    if coordinate is None:
        return None

    opening = place.get("currentOpeningHours")
    if opening is None:
        hours = "24/7"
    else:
        hours = "Open now" if opening.get("openNow") else "Check hours"

    return ResponderCandidate(
        name=(place.get("displayName") or {}).get("text") or "Unknown",
        address=place.get("formattedAddress") or "",
        location=coordinate,
        phone=place.get("internationalPhoneNumber"),
        rating=_rating(place.get("rating")),
        hours=hours,
        source_id=place.get("id") or "",
        source=ResponderSource.PLACES,
    )


def candidate_from_legacy(place: Mapping[str, Any]) -> ResponderCandidate | None:
    """Map one legacy Nearby Search ``results[]`` entry to a candidate.

    Phone and hours are left unset; they come from Place Details.
    Returns ``None`` when the entry has no usable coordinates.
    """
    location = (place.get("geometry") or {}).get("location") or {}
    coordinate = _coordinate(location.get("lat"), location.get("lng"))
    if coordinate is None:
        return None

    return ResponderCandidate(
        name=place.get("name") or "Unknown",
        address=place.get("vicinity") or place.get("formatted_address") or "",
        location=coordinate,
        rating=_rating(place.get("rating")),
        source_id=place.get("place_id") or "",
        source=ResponderSource.PLACES,
    )


def _details_hours(result: Mapping[str, Any]) -> str | None:
    opening = result.get("opening_hours")
    if opening is None:
        return None
    return "Open now" if opening.get("open_now") else "24/7"


# ---------------------------------------------------------------------------
# PlacesDirectoryResolver
# ---------------------------------------------------------------------------


class PlacesDirectoryResolver:
    """Directory tier backed by Google Places.

    Parameters
    ----------
    api_key:
        Google Maps Platform key.  When empty the tier always returns
        an empty list without touching the network.
    client:
        Shared ``httpx.AsyncClient``.  One is created (and owned) when
        not supplied.
    radius_m:
        Search radius around the query coordinate, in metres.
    timeout:
        Per-request timeout in seconds for an owned client.
    """

    source = ResponderSource.PLACES

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        *,
        radius_m: float = 20_000.0,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._radius_m = radius_m
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(
        self,
        category: str,
        at: Coordinate,
        limit: int,
    ) -> list[ResponderCandidate]:
        """Return up to *limit* nearby candidates, nearest first.

        Never raises; transport and API errors yield an empty list.
        """
        if not self._api_key:
            logger.info("directory.not_configured")
            return []

        query = query_for(category)
        try:
            candidates = await self._search_text(query, at, limit)
            results = nearest(candidates, at, limit)
            if not candidates:
                logger.info("directory.text_search_empty", category=category)
                candidates = await self._nearby_search_legacy(query, at)
                # Details lookups run only for the places returned.
                results = [await self._enrich_details(c) for c in nearest(candidates, at, limit)]
        except Exception:
            logger.warning("directory.search_failed", category=category, exc_info=True)
            return []

        logger.info(
            "directory.search_complete",
            category=category,
            candidates=len(candidates),
            results=len(results),
        )
        return results

    # ------------------------------------------------------------------
    # Places API calls
    # ------------------------------------------------------------------

    async def _search_text(
        self,
        query: PlaceQuery,
        at: Coordinate,
        limit: int,
    ) -> list[ResponderCandidate]:
        body = {
            "textQuery": f"{query.keyword} near me",
            "locationBias": {
                "circle": {
                    "center": {"latitude": at.lat, "longitude": at.lng},
                    "radius": self._radius_m,
                }
            },
            "maxResultCount": limit * _OVERFETCH_FACTOR,
            "languageCode": "en",
            "regionCode": "IN",
        }
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": TEXT_SEARCH_FIELD_MASK,
        }
        response = await self._client.post(TEXT_SEARCH_URL, json=body, headers=headers)
        response.raise_for_status()
        data = response.json()

        candidates: list[ResponderCandidate] = []
        for place in data.get("places") or []:
            candidate = candidate_from_places_v1(place)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    async def _nearby_search_legacy(
        self,
        query: PlaceQuery,
        at: Coordinate,
    ) -> list[ResponderCandidate]:
        params = {
            "location": f"{at.lat},{at.lng}",
            "radius": str(int(self._radius_m)),
            "type": query.place_types[0],
            "keyword": query.keyword,
            "key": self._api_key,
            "region": "in",
        }
        response = await self._client.get(NEARBY_SEARCH_URL, params=params)
        response.raise_for_status()
        data = response.json()

        status = data.get("status")
        if status not in _LEGACY_OK_STATUSES:
            logger.warning(
                "directory.legacy_status",
                status=status,
                error_message=data.get("error_message"),
            )
            return []

        candidates: list[ResponderCandidate] = []
        for place in data.get("results") or []:
            candidate = candidate_from_legacy(place)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    async def _enrich_details(self, candidate: ResponderCandidate) -> ResponderCandidate:
        """Fill phone and hours from Place Details; keep *candidate* on failure."""
        if not candidate.source_id:
            return candidate

        params = {
            "place_id": candidate.source_id,
            "fields": DETAILS_FIELDS,
            "key": self._api_key,
        }
        try:
            response = await self._client.get(PLACE_DETAILS_URL, params=params)
            response.raise_for_status()
            result = response.json().get("result") or {}
        except Exception:
            logger.warning(
                "directory.details_failed",
                place_id=candidate.source_id,
                exc_info=True,
            )
            return candidate

        return candidate.model_copy(
            update={
                "phone": result.get("formatted_phone_number"),
                "hours": _details_hours(result),
            }
        )
