"""Emergency categorization and responder lookup endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import Field, ValidationError

from config.settings import settings
from src.models.emergency import (
    CamelModel,
    Coordinate,
    EmergencyCategorization,
    ResolutionResult,
    Responder,
)
from src.models.enums import EmergencyCategory

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/emergency", tags=["emergency"])


class CategorizeRequest(CamelModel):
    message: str = Field(..., max_length=5000, description="Describe the emergency in any language")


class ResolveRequest(CamelModel):
    message: str = Field(..., max_length=5000)
    location: Coordinate
    limit: int = Field(default=settings.responder_limit, ge=1, le=settings.max_responder_limit)


def _require_message(message: str) -> str:
    if not message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    return message


def _service(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not available")
    return service


@router.post(
    "/categorize",
    response_model=EmergencyCategorization,
    response_model_exclude_none=True,
)
async def categorize_emergency(body: CategorizeRequest, request: Request) -> EmergencyCategorization:
    """Classify a free-text emergency into category and severity.

    Never fails because of the model: on any upstream problem the safe
    ``general`` / ``medium`` categorization is returned.
    """
    message = _require_message(body.message)
    classifier = _service(request, "classifier")
    return await classifier.categorize(message)


@router.get(
    "/responders",
    response_model=list[Responder],
    response_model_exclude_none=True,
)
async def get_responders(
    request: Request,
    lat: Annotated[float, Query(description="Latitude in decimal degrees")],
    lng: Annotated[float, Query(description="Longitude in decimal degrees")],
    category: Annotated[str, Query(alias="type", min_length=1)] = EmergencyCategory.MEDICAL.value,
    limit: Annotated[
        int, Query(ge=1, le=settings.max_responder_limit)
    ] = settings.responder_limit,
) -> list[Responder]:
    """Nearest responders for a known category, nearest first.

    Tries the Places directory, then Gemini knowledge search, then the
    seeded dataset.
    """
    try:
        at = Coordinate(lat=lat, lng=lng)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid latitude or longitude") from exc

    orchestrator = _service(request, "orchestrator")
    responders, source = await orchestrator.find_responders(category, at, limit)
    logger.info("api.emergency.responders", category=category, source=source.value, count=len(responders))
    return responders


@router.post(
    "/resolve",
    response_model=ResolutionResult,
    response_model_exclude_none=True,
)
async def resolve_emergency(body: ResolveRequest, request: Request) -> ResolutionResult:
    """Categorize a message and return the nearest matching responders."""
    message = _require_message(body.message)
    orchestrator = _service(request, "orchestrator")
    return await orchestrator.resolve_responders(message, body.location, body.limit)
