"""User profile endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Request

from src.models.records import User, UserCreate, UserUpdate
from src.services.storage import UserStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _store(request: Request) -> UserStore:
    store = getattr(request.app.state, "user_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="User store not available")
    return store


@router.post("", response_model=User, status_code=201)
async def create_user(body: UserCreate, request: Request) -> User:
    return await _store(request).create(body)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: str, request: Request) -> User:
    user = await _store(request).get(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=User)
async def update_user(user_id: str, body: UserUpdate, request: Request) -> User:
    """Partially update a user.  Only fields present in the body change."""
    user = await _store(request).update(user_id, body)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
