"""Emergency alert endpoints.

Alerts record a submitted emergency together with the responders that
were offered.  Storage is the injected :class:`AlertStore`.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request

from src.models.records import Alert, AlertCreate, AlertStatusUpdate
from src.services.storage import AlertStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _store(request: Request) -> AlertStore:
    store = getattr(request.app.state, "alert_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Alert store not available")
    return store


@router.post("", response_model=Alert, status_code=201)
async def create_alert(body: AlertCreate, request: Request) -> Alert:
    """Create an alert with status ``active`` and a server timestamp."""
    return await _store(request).create(body)


@router.get("", response_model=list[Alert])
async def list_alerts(request: Request) -> list[Alert]:
    return await _store(request).list()


@router.get("/user/{user_id}", response_model=list[Alert])
async def list_user_alerts(user_id: str, request: Request) -> list[Alert]:
    return await _store(request).list_by_user(user_id)


@router.get("/{alert_id}", response_model=Alert)
async def get_alert(alert_id: str, request: Request) -> Alert:
    alert = await _store(request).get(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.patch("/{alert_id}/status", response_model=Alert)
async def update_alert_status(alert_id: str, body: AlertStatusUpdate, request: Request) -> Alert:
    alert = await _store(request).update_status(alert_id, body.status)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert
