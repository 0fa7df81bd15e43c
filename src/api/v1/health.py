"""Health check endpoints for the Rakshak API.

Provides liveness and readiness probes for container deployments.  The
readiness check reports which responder tiers are usable with the
current configuration.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual component statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe.

    The service is ready once the orchestrator and the seeded dataset are
    in place; missing API keys only degrade the upper tiers.
    """
    checks: dict[str, str] = {}
    ready = True

    # -- Gemini -----------------------------------------------------------
    llm = getattr(request.app.state, "llm", None)
    checks["gemini"] = "ok" if llm is not None and llm.is_configured else "not_configured"

    # -- Places directory ---------------------------------------------------
    directory = getattr(request.app.state, "directory", None)
    checks["places"] = "ok" if directory is not None and directory.is_configured else "not_configured"

    # -- Seeded dataset -----------------------------------------------------
    seed_data = getattr(request.app.state, "seed_data", None)
    if seed_data:
        count = sum(len(entries) for entries in seed_data.values())
        checks["seed_data"] = f"ok ({count} responders loaded)"
    else:
        checks["seed_data"] = "no_data"
        ready = False

    # -- Orchestrator -------------------------------------------------------
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is not None:
        checks["orchestrator"] = f"ok (tiers: {', '.join(orchestrator.tiers)})"
    else:
        checks["orchestrator"] = "not_initialised"
        ready = False

    if not ready:
        status = "not_ready"
    elif checks["gemini"] == "ok" and checks["places"] == "ok":
        status = "ready"
    else:
        status = "degraded"

    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks)
