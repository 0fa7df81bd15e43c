"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api`` prefix, the paths the web
client calls, so the FastAPI application only needs to include a single
router.

Includes:
    * Emergency: categorization, responder lookup, full resolution
    * Alerts: create, list, status transitions
    * Users: profile create, read, partial update
    * Health: liveness and readiness probes
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import alerts, emergency, health, users

api_router = APIRouter(prefix="/api")

api_router.include_router(emergency.router)
api_router.include_router(alerts.router)
api_router.include_router(users.router)
api_router.include_router(health.router)
